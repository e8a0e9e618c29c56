"""Login and single-post use cases for the authenticated user."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from post_purge.domain.entities import Principal
from post_purge.domain.models import CurrentUserResponse, PostListResponse, PostResponse
from post_purge.infrastructure.x_api import AuthorizationRequest, XApiClient, XOAuthClient

logger = logging.getLogger(__name__)


class LoginNotConfiguredError(RuntimeError):
    """Raised when login is attempted without an X client id."""


@dataclass(slots=True, frozen=True)
class CompletedLogin:
    """Tokens and profile obtained at the end of the PKCE flow."""

    tokens: dict[str, Any]
    user: dict[str, Any]


class AccountService:
    """Wraps the OAuth client and the post endpoints used outside bulk jobs."""

    def __init__(self, api_client: XApiClient, oauth_client: XOAuthClient | None) -> None:
        self._api_client = api_client
        self._oauth_client = oauth_client

    def begin_login(self) -> AuthorizationRequest:
        """Build the authorize redirect for a new login attempt."""

        return self._require_oauth_client().new_authorization_request()

    async def complete_login(self, code: str, code_verifier: str) -> CompletedLogin:
        """Exchange the authorization code and load the user's profile."""

        tokens = await self._require_oauth_client().exchange_code(code, code_verifier)
        user = await self._api_client.get_me(tokens["access_token"])
        logger.info("User '%s' logged in.", user.get("username") or user["id"])
        return CompletedLogin(tokens=tokens, user=user)

    def current_user(self, principal: Principal, profile: dict[str, Any]) -> CurrentUserResponse:
        return CurrentUserResponse(
            id=principal.user_id,
            username=principal.username,
            name=profile.get("name"),
        )

    async def list_posts(
        self,
        principal: Principal,
        pagination_token: str | None = None,
    ) -> PostListResponse:
        page = await self._api_client.list_posts(
            principal.access_token,
            principal.user_id,
            pagination_token=pagination_token,
        )
        return PostListResponse(
            posts=[PostResponse(id=post.post_id, text=post.text) for post in page.posts],
            next_token=page.next_token,
        )

    async def delete_post(self, principal: Principal, post_id: str) -> None:
        await self._api_client.delete_post(principal.access_token, post_id)
        logger.info("User '%s' deleted post '%s'.", principal.user_id, post_id)

    async def create_post(self, principal: Principal, text: str) -> PostResponse:
        post = await self._api_client.create_post(principal.access_token, text)
        return PostResponse(id=post.post_id, text=post.text)

    def _require_oauth_client(self) -> XOAuthClient:
        if self._oauth_client is None:
            raise LoginNotConfiguredError("POST_PURGE_X_CLIENT_ID is not configured.")
        return self._oauth_client


__all__ = ["AccountService", "CompletedLogin", "LoginNotConfiguredError"]
