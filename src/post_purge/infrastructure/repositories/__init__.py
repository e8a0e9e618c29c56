"""Repository implementations."""

from post_purge.infrastructure.repositories.in_memory_deletion_job_repository import (
    InMemoryDeletionJobRepository,
)

__all__ = ["InMemoryDeletionJobRepository"]
