"""Ports for the remote content API and job storage."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from post_purge.domain.entities import DeletionJob, Post, PostPage


class ContentApiClient(Protocol):
    """Remote content API operations performed with a bearer credential."""

    async def list_posts(
        self,
        access_token: str,
        user_id: str,
        pagination_token: str | None = None,
        max_results: int = 100,
    ) -> PostPage:
        """Return one page of posts authored by `user_id`."""

    async def delete_post(self, access_token: str, post_id: str) -> None:
        """Delete one post."""

    async def create_post(self, access_token: str, text: str) -> Post:
        """Publish one post."""


class DeletionJobRepository(Protocol):
    """In-process registry of deletion jobs."""

    async def add(self, job: DeletionJob) -> None:
        """Register a fully constructed job."""

    async def get(self, job_id: str) -> DeletionJob | None:
        """Return a job by id."""

    async def remove_finished_before(self, cutoff: datetime) -> list[str]:
        """Drop terminal jobs finished before `cutoff`; return removed ids."""


__all__ = ["ContentApiClient", "DeletionJobRepository"]
