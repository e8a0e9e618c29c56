"""Domain entities."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime

from post_purge.domain.job_status import TERMINAL_JOB_STATUSES, DeletionJobStatus


@dataclass(slots=True, frozen=True)
class Principal:
    """Authenticated caller and the bearer credential issued for them."""

    user_id: str
    access_token: str
    username: str | None = None


@dataclass(slots=True, frozen=True)
class Post:
    """Summary of one remote post."""

    post_id: str
    text: str = ""


@dataclass(slots=True, frozen=True)
class PostPage:
    """One page of remote posts plus the token for the following page."""

    posts: list[Post] = field(default_factory=list)
    next_token: str | None = None


@dataclass(slots=True)
class DeletionJob:
    """Mutable progress record of one bulk-deletion run.

    Only the job's own worker task mutates progress fields. Once the status is
    terminal every mutator is a no-op, so readers polling the record never see
    it leave a terminal state.
    """

    job_id: str
    owner_id: str
    target_ids: tuple[str, ...]
    status: DeletionJobStatus = DeletionJobStatus.RUNNING
    deleted_count: int = 0
    skipped_ids: list[str] = field(default_factory=list)
    cancel_requested: bool = False
    last_error: str | None = None
    started_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))
    finished_at: datetime | None = None

    @property
    def total(self) -> int:
        """Number of posts targeted when the job was created."""

        return len(self.target_ids)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_JOB_STATUSES

    def request_cancel(self) -> None:
        """Flag the job for cancellation at its next checkpoint."""

        self.cancel_requested = True

    def record_deleted(self) -> None:
        if self.is_terminal:
            return
        if self.deleted_count + len(self.skipped_ids) >= self.total:
            raise ValueError(f"Deletion job '{self.job_id}' has no unprocessed posts left.")
        self.deleted_count += 1

    def record_skipped(self, post_id: str) -> None:
        if self.is_terminal:
            return
        if self.deleted_count + len(self.skipped_ids) >= self.total:
            raise ValueError(f"Deletion job '{self.job_id}' has no unprocessed posts left.")
        self.skipped_ids.append(post_id)

    def mark_waiting_on_rate_limit(self) -> None:
        if self.is_terminal:
            return
        self.status = DeletionJobStatus.WAITING_ON_RATE_LIMIT

    def mark_running(self) -> None:
        if self.is_terminal:
            return
        self.status = DeletionJobStatus.RUNNING

    def finish(self, status: DeletionJobStatus, error: str | None = None) -> bool:
        """Move to a terminal status; return False when already terminal."""

        if status not in TERMINAL_JOB_STATUSES:
            raise ValueError(f"'{status}' is not a terminal deletion job status.")
        if self.is_terminal:
            return False
        if status is DeletionJobStatus.ERROR:
            self.last_error = error or "Deletion job failed."
        self.finished_at = datetime.now(tz=UTC)
        self.status = status
        return True


__all__ = ["DeletionJob", "Post", "PostPage", "Principal"]
