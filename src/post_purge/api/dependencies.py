"""Dependency providers for FastAPI routes."""

from functools import lru_cache

from fastapi import Request

from post_purge.application.services import AccountService, DeletionJobService
from post_purge.bootstrap import build_account_service, build_deletion_job_service
from post_purge.config import Settings
from post_purge.domain.entities import Principal
from post_purge.domain.errors import AuthRequiredError


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return singleton settings."""

    return Settings()


@lru_cache(maxsize=1)
def get_deletion_job_service() -> DeletionJobService:
    """Return singleton deletion job service."""

    return build_deletion_job_service(get_settings())


@lru_cache(maxsize=1)
def get_account_service() -> AccountService:
    """Return singleton account service."""

    return build_account_service(get_settings())


def get_current_principal(request: Request) -> Principal:
    """Resolve the logged-in user from the session cookie."""

    tokens = request.session.get("tokens") or {}
    user = request.session.get("user") or {}
    access_token = tokens.get("access_token")
    user_id = user.get("id")
    if not access_token or not user_id:
        raise AuthRequiredError("Not authenticated")
    return Principal(
        user_id=str(user_id),
        access_token=str(access_token),
        username=user.get("username"),
    )


__all__ = [
    "get_account_service",
    "get_current_principal",
    "get_deletion_job_service",
    "get_settings",
]
