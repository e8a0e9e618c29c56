"""Bulk deletion job routes polled by the dashboard."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from post_purge.api.dependencies import get_current_principal, get_deletion_job_service
from post_purge.application.services import DeletionJobService
from post_purge.domain.entities import Principal
from post_purge.domain.errors import (
    AuthRequiredError,
    DeletionJobNotFoundError,
    UpstreamError,
    UpstreamRateLimitedError,
)
from post_purge.domain.models import (
    AckResponse,
    CancelDeletionRequest,
    DeletionJobStatusResponse,
    ErrorResponse,
    StartDeletionResponse,
)

router = APIRouter(prefix="/delete", tags=["bulk deletion"])

logger = logging.getLogger(__name__)


async def _read_cancel_request(request: Request) -> CancelDeletionRequest:
    # The dashboard posts a form; API clients send JSON.
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        payload = await request.json()
    else:
        payload = dict(await request.form())
    return CancelDeletionRequest.model_validate(payload)


def _error_response(exc: Exception) -> JSONResponse:
    if isinstance(exc, DeletionJobNotFoundError):
        status_code = 404
    elif isinstance(exc, AuthRequiredError):
        status_code = 401
    elif isinstance(exc, UpstreamRateLimitedError):
        status_code = 429
    elif isinstance(exc, UpstreamError):
        status_code = 502
    else:
        logger.exception("Unexpected deletion job error.", exc_info=exc)
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(error="Unexpected deletion job error").model_dump(),
        )
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=str(exc)).model_dump(),
    )


@router.post(
    "/start",
    response_model=StartDeletionResponse,
    responses={401: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
)
async def start_deletion(
    principal: Principal = Depends(get_current_principal),
    service: DeletionJobService = Depends(get_deletion_job_service),
) -> JSONResponse:
    """Enumerate the caller's posts and start deleting them in the background."""

    try:
        result = await service.start(principal)
    except Exception as exc:  # noqa: BLE001
        return _error_response(exc)

    return JSONResponse(status_code=200, content=result.model_dump(by_alias=True))


@router.get(
    "/status",
    response_model=DeletionJobStatusResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_deletion_status(
    job_id: str = Query(alias="jobId"),
    principal: Principal = Depends(get_current_principal),
    service: DeletionJobService = Depends(get_deletion_job_service),
) -> JSONResponse:
    """Return progress of one deletion job."""

    try:
        result = await service.get_status(job_id, principal)
    except Exception as exc:  # noqa: BLE001
        return _error_response(exc)

    return JSONResponse(status_code=200, content=result.model_dump(by_alias=True, mode="json"))


@router.post(
    "/cancel",
    response_model=AckResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def cancel_deletion(
    request: Request,
    principal: Principal = Depends(get_current_principal),
    service: DeletionJobService = Depends(get_deletion_job_service),
) -> JSONResponse:
    """Request cancellation of a deletion job."""

    try:
        message = await _read_cancel_request(request)
    except ValueError:
        return JSONResponse(
            status_code=400,
            content=ErrorResponse(error="jobId is required").model_dump(),
        )

    try:
        await service.cancel(message.job_id, principal)
    except Exception as exc:  # noqa: BLE001
        return _error_response(exc)

    return JSONResponse(status_code=200, content=AckResponse().model_dump())


__all__ = ["router"]
