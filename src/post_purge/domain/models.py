"""Pydantic payloads exchanged with API callers."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from post_purge.domain.job_status import DeletionJobStatus


class ApiModel(BaseModel):
    """Base model for JSON routes."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class StartDeletionResponse(ApiModel):
    """Result of starting a bulk deletion."""

    ok: bool = True
    job_id: str | None = Field(default=None, alias="jobId")
    total: int = 0
    message: str | None = None


class DeletionJobStatusResponse(ApiModel):
    """Progress snapshot of one deletion job."""

    ok: bool = True
    job_id: str = Field(alias="jobId")
    status: DeletionJobStatus
    total: int
    deleted_count: int = Field(alias="deletedCount")
    skipped_count: int = Field(default=0, alias="skippedCount")
    error: str | None = None


class CancelDeletionRequest(ApiModel):
    """Cancel request body."""

    job_id: str = Field(alias="jobId")


class AckResponse(ApiModel):
    """Plain acknowledgement."""

    ok: bool = True


class ErrorResponse(ApiModel):
    """Error envelope."""

    ok: bool = False
    error: str


class PostResponse(ApiModel):
    """One post."""

    id: str
    text: str = ""


class PostListResponse(ApiModel):
    """One page of the caller's posts."""

    ok: bool = True
    posts: list[PostResponse] = Field(default_factory=list)
    next_token: str | None = Field(default=None, alias="nextToken")


class CreatePostRequest(ApiModel):
    """Create post body."""

    text: str = Field(default="Hello from X PKCE demo!", min_length=1, max_length=280)


class CurrentUserResponse(ApiModel):
    """Authenticated user details kept in the session."""

    ok: bool = True
    id: str
    username: str | None = None
    name: str | None = None


__all__ = [
    "AckResponse",
    "CancelDeletionRequest",
    "CreatePostRequest",
    "CurrentUserResponse",
    "DeletionJobStatusResponse",
    "ErrorResponse",
    "PostListResponse",
    "PostResponse",
    "StartDeletionResponse",
]
