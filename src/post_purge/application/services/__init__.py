"""Application services public API."""

from post_purge.application.services.account_service import (
    AccountService,
    CompletedLogin,
    LoginNotConfiguredError,
)
from post_purge.application.services.deletion_job_service import DeletionJobService

__all__ = [
    "AccountService",
    "CompletedLogin",
    "DeletionJobService",
    "LoginNotConfiguredError",
]
