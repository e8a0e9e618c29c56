"""In-memory repository implementation for deletion jobs."""

from __future__ import annotations

import asyncio
from datetime import datetime

from post_purge.domain.entities import DeletionJob
from post_purge.domain.ports import DeletionJobRepository


class InMemoryDeletionJobRepository(DeletionJobRepository):
    """Process-local job registry; contents are lost on restart."""

    def __init__(self) -> None:
        self._by_job_id: dict[str, DeletionJob] = {}
        self._lock = asyncio.Lock()

    async def add(self, job: DeletionJob) -> None:
        """Register a job under its id."""

        async with self._lock:
            if job.job_id in self._by_job_id:
                raise ValueError(f"Deletion job '{job.job_id}' already exists.")
            self._by_job_id[job.job_id] = job

    async def get(self, job_id: str) -> DeletionJob | None:
        """Return by job id."""

        return self._by_job_id.get(job_id)

    async def list_jobs(self) -> list[DeletionJob]:
        """Return all jobs in insertion order, for inspection outside the port."""

        async with self._lock:
            return list(self._by_job_id.values())

    async def remove_finished_before(self, cutoff: datetime) -> list[str]:
        """Evict terminal jobs whose finish time is older than `cutoff`."""

        async with self._lock:
            expired = [
                job.job_id
                for job in self._by_job_id.values()
                if job.is_terminal and job.finished_at is not None and job.finished_at < cutoff
            ]
            for job_id in expired:
                del self._by_job_id[job_id]
            return expired


__all__ = ["InMemoryDeletionJobRepository"]
