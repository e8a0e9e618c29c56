"""OAuth2 PKCE login routes and session helpers."""

from __future__ import annotations

import logging
import secrets

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, RedirectResponse, Response

from post_purge.api.dependencies import get_account_service, get_current_principal
from post_purge.application.services import AccountService, LoginNotConfiguredError
from post_purge.domain.entities import Principal
from post_purge.domain.errors import UpstreamError
from post_purge.domain.models import AckResponse, CurrentUserResponse, ErrorResponse
from post_purge.infrastructure.x_api import XOAuthError

_SESSION_STATE_KEY = "oauth_state"
_SESSION_VERIFIER_KEY = "pkce_verifier"
_SESSION_TOKENS_KEY = "tokens"
_SESSION_USER_KEY = "user"

router = APIRouter(tags=["auth"])

logger = logging.getLogger(__name__)


def _bad_request(message: str) -> JSONResponse:
    return JSONResponse(status_code=400, content=ErrorResponse(error=message).model_dump())


@router.get("/login", response_class=RedirectResponse, status_code=307)
async def login(
    request: Request,
    service: AccountService = Depends(get_account_service),
) -> Response:
    """Redirect to the X authorize page with a fresh PKCE challenge."""

    try:
        authorization = service.begin_login()
    except LoginNotConfiguredError as exc:
        return JSONResponse(status_code=503, content=ErrorResponse(error=str(exc)).model_dump())

    request.session[_SESSION_VERIFIER_KEY] = authorization.code_verifier
    request.session[_SESSION_STATE_KEY] = authorization.state
    return RedirectResponse(authorization.url, status_code=307)


@router.get("/callback", response_class=RedirectResponse, status_code=303)
async def callback(
    request: Request,
    code: str | None = Query(default=None),
    state: str | None = Query(default=None),
    error: str | None = Query(default=None),
    error_description: str | None = Query(default=None),
    service: AccountService = Depends(get_account_service),
) -> Response:
    """Validate state, exchange the code and store the session."""

    if error:
        detail = f" - {error_description}" if error_description else ""
        return _bad_request(f"OAuth error: {error}{detail}")
    if not code or not state:
        return _bad_request("Missing code/state")
    expected_state = request.session.get(_SESSION_STATE_KEY)
    if not expected_state or not secrets.compare_digest(state, expected_state):
        return _bad_request("Invalid state (CSRF check failed)")
    code_verifier = request.session.get(_SESSION_VERIFIER_KEY)
    if not code_verifier:
        return _bad_request("Missing PKCE verifier")

    try:
        completed = await service.complete_login(code, code_verifier)
    except (LoginNotConfiguredError, XOAuthError, UpstreamError) as exc:
        logger.warning("OAuth callback failed: %s", exc)
        return JSONResponse(
            status_code=502,
            content=ErrorResponse(error=f"Callback error: {exc}").model_dump(),
        )

    request.session.pop(_SESSION_STATE_KEY, None)
    request.session.pop(_SESSION_VERIFIER_KEY, None)
    request.session[_SESSION_TOKENS_KEY] = completed.tokens
    request.session[_SESSION_USER_KEY] = completed.user
    return RedirectResponse(str(request.url_for("get_current_user")), status_code=303)


@router.post("/logout", response_model=AckResponse)
async def logout(request: Request) -> AckResponse:
    """Drop the session."""

    request.session.clear()
    return AckResponse()


@router.get("/me", response_model=CurrentUserResponse)
async def get_current_user(
    request: Request,
    principal: Principal = Depends(get_current_principal),
    service: AccountService = Depends(get_account_service),
) -> CurrentUserResponse:
    """Return the logged-in user."""

    return service.current_user(principal, request.session.get(_SESSION_USER_KEY) or {})


__all__ = ["router"]
