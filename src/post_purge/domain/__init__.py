"""Domain public API."""

from post_purge.domain.entities import DeletionJob, Post, PostPage, Principal
from post_purge.domain.errors import (
    AuthRequiredError,
    DeletionJobError,
    DeletionJobNotFoundError,
    UpstreamError,
    UpstreamFatalError,
    UpstreamNotFoundError,
    UpstreamRateLimitedError,
    UpstreamTransientError,
)
from post_purge.domain.job_status import TERMINAL_JOB_STATUSES, DeletionJobStatus
from post_purge.domain.models import (
    AckResponse,
    CancelDeletionRequest,
    CreatePostRequest,
    CurrentUserResponse,
    DeletionJobStatusResponse,
    ErrorResponse,
    PostListResponse,
    PostResponse,
    StartDeletionResponse,
)
from post_purge.domain.ports import ContentApiClient, DeletionJobRepository

__all__ = [
    "AckResponse",
    "AuthRequiredError",
    "CancelDeletionRequest",
    "ContentApiClient",
    "CreatePostRequest",
    "CurrentUserResponse",
    "DeletionJob",
    "DeletionJobError",
    "DeletionJobNotFoundError",
    "DeletionJobRepository",
    "DeletionJobStatus",
    "DeletionJobStatusResponse",
    "ErrorResponse",
    "Post",
    "PostListResponse",
    "PostPage",
    "PostResponse",
    "Principal",
    "StartDeletionResponse",
    "TERMINAL_JOB_STATUSES",
    "UpstreamError",
    "UpstreamFatalError",
    "UpstreamNotFoundError",
    "UpstreamRateLimitedError",
    "UpstreamTransientError",
]
