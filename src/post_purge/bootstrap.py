"""Application bootstrap/wiring."""

import logging

from post_purge.application.services import AccountService, DeletionJobService
from post_purge.config import Settings
from post_purge.infrastructure.repositories import InMemoryDeletionJobRepository
from post_purge.infrastructure.x_api import XApiClient, XOAuthClient

logger = logging.getLogger(__name__)


def build_x_api_client(settings: Settings) -> XApiClient:
    return XApiClient(
        base_url=settings.x_api_base_url,
        timeout_seconds=settings.x_timeout_seconds,
    )


def _build_oauth_client(settings: Settings) -> XOAuthClient | None:
    if not settings.x_client_id:
        logger.warning("POST_PURGE_X_CLIENT_ID is missing. Login is disabled.")
        return None
    return XOAuthClient(
        client_id=settings.x_client_id,
        redirect_uri=settings.effective_redirect_uri,
        scopes=settings.x_scopes,
        authorize_url=settings.x_authorize_url,
        token_url=f"{settings.x_api_base_url.strip().rstrip('/')}/2/oauth2/token",
        timeout_seconds=settings.x_timeout_seconds,
    )


def build_deletion_job_service(settings: Settings) -> DeletionJobService:
    """Compose the bulk-deletion service graph."""

    return DeletionJobService(
        repository=InMemoryDeletionJobRepository(),
        content_client=build_x_api_client(settings),
        page_size=settings.deletion_page_size,
        max_pages=settings.deletion_max_pages,
        pacing_seconds=settings.deletion_pacing_seconds,
        rate_limit_cooldown_seconds=settings.deletion_rate_limit_cooldown_seconds,
        transient_retry_attempts=settings.deletion_transient_retry_attempts,
        transient_retry_backoff_seconds=settings.deletion_transient_retry_backoff_seconds,
        call_timeout_seconds=settings.deletion_call_timeout_seconds,
        job_retention_seconds=settings.deletion_job_retention_seconds,
        reaper_interval_seconds=settings.deletion_job_reaper_interval_seconds,
    )


def build_account_service(settings: Settings) -> AccountService:
    """Compose login and single-post operations."""

    return AccountService(
        api_client=build_x_api_client(settings),
        oauth_client=_build_oauth_client(settings),
    )


__all__ = ["build_account_service", "build_deletion_job_service", "build_x_api_client"]
