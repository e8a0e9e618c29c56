"""Single-post routes for the logged-in user."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Path, Query
from fastapi.responses import JSONResponse

from post_purge.api.dependencies import get_account_service, get_current_principal
from post_purge.application.services import AccountService
from post_purge.domain.entities import Principal
from post_purge.domain.errors import (
    UpstreamError,
    UpstreamNotFoundError,
    UpstreamRateLimitedError,
)
from post_purge.domain.models import (
    AckResponse,
    CreatePostRequest,
    ErrorResponse,
    PostListResponse,
    PostResponse,
)

router = APIRouter(prefix="/posts", tags=["posts"])


def _error_response(exc: Exception) -> JSONResponse:
    if isinstance(exc, UpstreamRateLimitedError):
        status_code = 429
    elif isinstance(exc, UpstreamNotFoundError):
        status_code = 404
    elif isinstance(exc, UpstreamError):
        status_code = 502
    else:
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(error="Unexpected post error").model_dump(),
        )
    return JSONResponse(status_code=status_code, content=ErrorResponse(error=str(exc)).model_dump())


@router.get("", response_model=PostListResponse, responses={502: {"model": ErrorResponse}})
async def list_posts(
    pagination_token: str | None = Query(default=None, alias="paginationToken"),
    principal: Principal = Depends(get_current_principal),
    service: AccountService = Depends(get_account_service),
) -> JSONResponse:
    """List one page of the caller's posts."""

    try:
        result = await service.list_posts(principal, pagination_token)
    except Exception as exc:  # noqa: BLE001
        return _error_response(exc)

    return JSONResponse(status_code=200, content=result.model_dump(by_alias=True))


@router.post("", response_model=PostResponse, status_code=201)
async def create_post(
    message: CreatePostRequest,
    principal: Principal = Depends(get_current_principal),
    service: AccountService = Depends(get_account_service),
) -> JSONResponse:
    """Publish a post as the caller."""

    try:
        result = await service.create_post(principal, message.text)
    except Exception as exc:  # noqa: BLE001
        return _error_response(exc)

    return JSONResponse(status_code=201, content=result.model_dump(by_alias=True))


@router.delete("/{post_id}", response_model=AckResponse, responses={404: {"model": ErrorResponse}})
async def delete_post(
    post_id: str = Path(...),
    principal: Principal = Depends(get_current_principal),
    service: AccountService = Depends(get_account_service),
) -> JSONResponse:
    """Delete one of the caller's posts."""

    try:
        await service.delete_post(principal, post_id)
    except Exception as exc:  # noqa: BLE001
        return _error_response(exc)

    return JSONResponse(status_code=200, content=AckResponse().model_dump())


__all__ = ["router"]
