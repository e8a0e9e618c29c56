"""OAuth2 authorization-code flow with PKCE against X."""

from __future__ import annotations

import base64
import hashlib
import secrets
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlencode

import httpx


class XOAuthError(RuntimeError):
    """Raised when the authorization or token exchange fails."""


@dataclass(slots=True, frozen=True)
class AuthorizationRequest:
    """Redirect target plus the secrets the callback must check."""

    url: str
    state: str
    code_verifier: str


def _b64url(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def new_code_verifier() -> str:
    """Return a 43-character PKCE verifier."""

    return _b64url(secrets.token_bytes(32))


def code_challenge_s256(code_verifier: str) -> str:
    """Derive the S256 challenge for a verifier."""

    return _b64url(hashlib.sha256(code_verifier.encode("ascii")).digest())


def new_state() -> str:
    return _b64url(secrets.token_bytes(16))


class XOAuthClient:
    """Build authorize redirects and exchange authorization codes."""

    def __init__(
        self,
        client_id: str,
        redirect_uri: str,
        scopes: str,
        authorize_url: str = "https://twitter.com/i/oauth2/authorize",
        token_url: str = "https://api.x.com/2/oauth2/token",
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not client_id.strip():
            raise XOAuthError("X client id cannot be empty.")
        self._client_id = client_id.strip()
        self._redirect_uri = redirect_uri
        self._scopes = scopes
        self._authorize_url = authorize_url
        self._token_url = token_url
        self._timeout_seconds = timeout_seconds
        self._transport = transport

    def new_authorization_request(self) -> AuthorizationRequest:
        """Create verifier, challenge and state for one login attempt."""

        code_verifier = new_code_verifier()
        state = new_state()
        params = urlencode(
            {
                "response_type": "code",
                "client_id": self._client_id,
                "redirect_uri": self._redirect_uri,
                "scope": self._scopes,
                "state": state,
                "code_challenge": code_challenge_s256(code_verifier),
                "code_challenge_method": "S256",
            }
        )
        return AuthorizationRequest(
            url=f"{self._authorize_url}?{params}",
            state=state,
            code_verifier=code_verifier,
        )

    async def exchange_code(self, code: str, code_verifier: str) -> dict[str, Any]:
        """Trade an authorization code for tokens."""

        form = {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": self._redirect_uri,
            "client_id": self._client_id,
            "code_verifier": code_verifier,
        }
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout_seconds,
                transport=self._transport,
            ) as http_client:
                response = await http_client.post(self._token_url, data=form)
        except httpx.HTTPError as exc:
            raise XOAuthError(f"POST {self._token_url} failed: {exc}") from exc

        if not response.is_success:
            raise XOAuthError(
                f"POST {self._token_url} failed: {response.status_code} "
                f"{response.text.strip() or '<no response body>'}"
            )
        try:
            tokens = response.json()
        except ValueError as exc:
            raise XOAuthError("Token endpoint returned invalid JSON.") from exc
        if not isinstance(tokens, dict) or not tokens.get("access_token"):
            raise XOAuthError("Token endpoint returned no access_token.")
        return tokens


__all__ = [
    "AuthorizationRequest",
    "XOAuthClient",
    "XOAuthError",
    "code_challenge_s256",
    "new_code_verifier",
    "new_state",
]
