"""Deletion job states."""

from enum import StrEnum


class DeletionJobStatus(StrEnum):
    """Lifecycle states of one bulk-deletion run."""

    RUNNING = "running"
    WAITING_ON_RATE_LIMIT = "waiting_on_rate_limit"
    DONE = "done"
    ERROR = "error"
    CANCELED = "canceled"


TERMINAL_JOB_STATUSES = frozenset(
    {
        DeletionJobStatus.DONE,
        DeletionJobStatus.ERROR,
        DeletionJobStatus.CANCELED,
    }
)


__all__ = ["DeletionJobStatus", "TERMINAL_JOB_STATUSES"]
