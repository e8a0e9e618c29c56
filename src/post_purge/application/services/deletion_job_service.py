"""Bulk post deletion use-case service."""

from __future__ import annotations

import asyncio
import logging
from contextlib import suppress
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from uuid import uuid4

from post_purge.domain.entities import DeletionJob, Principal
from post_purge.domain.errors import (
    AuthRequiredError,
    DeletionJobNotFoundError,
    UpstreamNotFoundError,
    UpstreamRateLimitedError,
    UpstreamTransientError,
)
from post_purge.domain.job_status import DeletionJobStatus
from post_purge.domain.models import DeletionJobStatusResponse, StartDeletionResponse
from post_purge.domain.ports import ContentApiClient, DeletionJobRepository

_DEFAULT_PAGE_SIZE = 100
_DEFAULT_MAX_PAGES = 10
_DEFAULT_PACING_SECONDS = 1.5
_DEFAULT_RATE_LIMIT_COOLDOWN_SECONDS = 120.0
_MIN_RATE_LIMIT_COOLDOWN_SECONDS = 0.1
_DEFAULT_TRANSIENT_RETRY_ATTEMPTS = 2
_DEFAULT_TRANSIENT_RETRY_BACKOFF_SECONDS = 1.0
_DEFAULT_CALL_TIMEOUT_SECONDS = 15.0
_DEFAULT_JOB_RETENTION_SECONDS = 3600.0
_DEFAULT_REAPER_INTERVAL_SECONDS = 60.0
_NO_POSTS_MESSAGE = "No posts to delete."

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class JobExecutionControl:
    """Runtime handles for one job's worker task."""

    cancel_event: asyncio.Event = field(default_factory=asyncio.Event)
    task: asyncio.Task[None] | None = None


class DeletionJobService:
    """Enumerates a user's posts and deletes them in a paced background task."""

    def __init__(
        self,
        repository: DeletionJobRepository,
        content_client: ContentApiClient,
        page_size: int = _DEFAULT_PAGE_SIZE,
        max_pages: int = _DEFAULT_MAX_PAGES,
        pacing_seconds: float = _DEFAULT_PACING_SECONDS,
        rate_limit_cooldown_seconds: float = _DEFAULT_RATE_LIMIT_COOLDOWN_SECONDS,
        transient_retry_attempts: int = _DEFAULT_TRANSIENT_RETRY_ATTEMPTS,
        transient_retry_backoff_seconds: float = _DEFAULT_TRANSIENT_RETRY_BACKOFF_SECONDS,
        call_timeout_seconds: float = _DEFAULT_CALL_TIMEOUT_SECONDS,
        job_retention_seconds: float = _DEFAULT_JOB_RETENTION_SECONDS,
        reaper_interval_seconds: float = _DEFAULT_REAPER_INTERVAL_SECONDS,
    ) -> None:
        self._repository = repository
        self._content_client = content_client
        self._page_size = max(1, min(page_size, 100))
        self._max_pages = max(max_pages, 1)
        self._pacing_seconds = max(pacing_seconds, 0.0)
        self._rate_limit_cooldown_seconds = max(
            rate_limit_cooldown_seconds, _MIN_RATE_LIMIT_COOLDOWN_SECONDS
        )
        self._transient_retry_attempts = max(transient_retry_attempts, 0)
        self._transient_retry_backoff_seconds = max(transient_retry_backoff_seconds, 0.0)
        self._call_timeout_seconds = max(call_timeout_seconds, 0.01)
        self._job_retention_seconds = max(job_retention_seconds, 0.0)
        self._reaper_interval_seconds = max(reaper_interval_seconds, 0.05)
        self._controls: dict[str, JobExecutionControl] = {}
        self._reaper_task: asyncio.Task[None] | None = None
        self._reaper_stop = asyncio.Event()

    async def startup(self) -> None:
        """Start the finished-job reaper."""

        task = self._reaper_task
        if task is not None and not task.done():
            return
        self._reaper_stop = asyncio.Event()
        self._reaper_task = asyncio.create_task(
            self._run_reaper_loop(),
            name="deletion-job-reaper-loop",
        )

    async def shutdown(self) -> None:
        """Stop the reaper and every running worker task."""

        await self._stop_reaper_loop()
        tasks = [
            control.task
            for control in list(self._controls.values())
            if control.task is not None and not control.task.done()
        ]
        for task in tasks:
            task.cancel()
        for task in tasks:
            with suppress(asyncio.CancelledError):
                await task

    async def start(self, principal: Principal | None) -> StartDeletionResponse:
        """Collect the caller's post ids and launch a deletion job for them."""

        if principal is None or not principal.access_token or not principal.user_id:
            raise AuthRequiredError("Not authenticated")

        target_ids = await self._collect_target_ids(principal)
        if not target_ids:
            return StartDeletionResponse(job_id=None, total=0, message=_NO_POSTS_MESSAGE)

        job = DeletionJob(
            job_id=str(uuid4()),
            owner_id=principal.user_id,
            target_ids=tuple(target_ids),
        )
        await self._repository.add(job)
        self._spawn_worker(job, principal.access_token)
        logger.info(
            "Started deletion job '%s' for user '%s' with %d posts.",
            job.job_id,
            job.owner_id,
            job.total,
        )
        return StartDeletionResponse(job_id=job.job_id, total=job.total)

    async def get_status(self, job_id: str, principal: Principal) -> DeletionJobStatusResponse:
        """Return a progress snapshot for a job owned by the caller."""

        job = await self._get_owned_job_or_raise(job_id, principal)
        return DeletionJobStatusResponse(
            job_id=job.job_id,
            status=job.status,
            total=job.total,
            deleted_count=job.deleted_count,
            skipped_count=len(job.skipped_ids),
            error=job.last_error,
        )

    async def cancel(self, job_id: str, principal: Principal) -> None:
        """Request cancellation; a no-op for jobs already in a terminal state."""

        job = await self._get_owned_job_or_raise(job_id, principal)
        if job.is_terminal:
            return
        job.request_cancel()
        control = self._controls.get(job_id)
        if control is not None:
            control.cancel_event.set()
        logger.info("Cancellation requested for deletion job '%s'.", job_id)

    async def reap_finished_jobs(self) -> list[str]:
        """Evict terminal jobs older than the retention window."""

        cutoff = datetime.now(tz=UTC) - timedelta(seconds=self._job_retention_seconds)
        removed = await self._repository.remove_finished_before(cutoff)
        if removed:
            logger.info("Evicted %d finished deletion jobs.", len(removed))
        return removed

    async def _collect_target_ids(self, principal: Principal) -> list[str]:
        """Page through the caller's timeline up to the page ceiling."""

        post_ids: list[str] = []
        seen: set[str] = set()
        pagination_token: str | None = None
        for _ in range(self._max_pages):
            try:
                page = await asyncio.wait_for(
                    self._content_client.list_posts(
                        principal.access_token,
                        principal.user_id,
                        pagination_token=pagination_token,
                        max_results=self._page_size,
                    ),
                    timeout=self._call_timeout_seconds,
                )
            except TimeoutError as exc:
                raise UpstreamTransientError("Listing posts timed out.") from exc

            for post in page.posts:
                if post.post_id in seen:
                    continue
                seen.add(post.post_id)
                post_ids.append(post.post_id)
            pagination_token = page.next_token
            if pagination_token is None:
                break
        else:
            logger.info(
                "Stopped enumerating posts for user '%s' at the %d page ceiling.",
                principal.user_id,
                self._max_pages,
            )
        return post_ids

    async def _get_owned_job_or_raise(self, job_id: str, principal: Principal) -> DeletionJob:
        job = await self._repository.get(job_id)
        # Foreign jobs are reported as missing so their ids are not confirmed.
        if job is None or job.owner_id != principal.user_id:
            raise DeletionJobNotFoundError("Job not found")
        return job

    def _spawn_worker(self, job: DeletionJob, access_token: str) -> None:
        control = JobExecutionControl()
        self._controls[job.job_id] = control
        control.task = asyncio.create_task(
            self._run_job(job, access_token, control),
            name=f"deletion-job-{job.job_id}",
        )

    async def _run_job(
        self,
        job: DeletionJob,
        access_token: str,
        control: JobExecutionControl,
    ) -> None:
        """Delete every target id in order until done, canceled or failed."""

        try:
            last_index = job.total - 1
            for index, post_id in enumerate(job.target_ids):
                if job.cancel_requested:
                    break
                await self._process_post(job, post_id, access_token, control)
                if index < last_index:
                    await self._pause(control, self._pacing_seconds)

            if job.cancel_requested:
                job.finish(DeletionJobStatus.CANCELED)
            else:
                job.finish(DeletionJobStatus.DONE)
            logger.info(
                "Deletion job '%s' finished as %s: %d/%d deleted, %d skipped.",
                job.job_id,
                job.status.value,
                job.deleted_count,
                job.total,
                len(job.skipped_ids),
            )
        except asyncio.CancelledError:
            job.finish(DeletionJobStatus.ERROR, error="Deletion job interrupted by shutdown.")
            raise
        except Exception as exc:  # noqa: BLE001
            error_message = str(exc).strip() or exc.__class__.__name__
            logger.exception("Deletion job '%s' failed: %s", job.job_id, error_message)
            job.finish(DeletionJobStatus.ERROR, error=error_message)
        finally:
            if not job.is_terminal:
                job.finish(DeletionJobStatus.ERROR, error="Deletion worker exited unexpectedly.")
            self._controls.pop(job.job_id, None)

    async def _process_post(
        self,
        job: DeletionJob,
        post_id: str,
        access_token: str,
        control: JobExecutionControl,
    ) -> None:
        """Delete one post, waiting out rate limits and retrying transient failures."""

        transient_failures = 0
        while not job.cancel_requested:
            try:
                await asyncio.wait_for(
                    self._content_client.delete_post(access_token, post_id),
                    timeout=self._call_timeout_seconds,
                )
            except UpstreamRateLimitedError as exc:
                # The server-announced reset wins when it is later than the cooldown.
                cooldown = max(self._rate_limit_cooldown_seconds, exc.retry_after_seconds or 0.0)
                logger.warning(
                    "Rate limited deleting post '%s' in job '%s'; pausing %.1fs: %s",
                    post_id,
                    job.job_id,
                    cooldown,
                    exc,
                )
                job.mark_waiting_on_rate_limit()
                await self._pause(control, cooldown)
                job.mark_running()
                continue
            except UpstreamNotFoundError:
                logger.warning("Post '%s' no longer exists; skipping.", post_id)
                job.record_skipped(post_id)
                return
            except (UpstreamTransientError, TimeoutError) as exc:
                transient_failures += 1
                if transient_failures > self._transient_retry_attempts:
                    logger.warning(
                        "Skipping post '%s' in job '%s' after %d failed attempts: %s",
                        post_id,
                        job.job_id,
                        transient_failures,
                        str(exc) or "timed out",
                    )
                    job.record_skipped(post_id)
                    return
                delay = self._transient_retry_backoff_seconds * 2 ** (transient_failures - 1)
                await self._pause(control, delay)
                continue

            job.record_deleted()
            return

    async def _pause(self, control: JobExecutionControl, seconds: float) -> None:
        """Sleep without blocking the loop; a cancel request ends the pause early."""

        if seconds <= 0:
            await asyncio.sleep(0)
            return
        try:
            await asyncio.wait_for(control.cancel_event.wait(), timeout=seconds)
        except TimeoutError:
            pass

    async def _run_reaper_loop(self) -> None:
        while not self._reaper_stop.is_set():
            try:
                await self.reap_finished_jobs()
            except Exception:
                logger.exception("Deletion job reaper failed.")

            try:
                await asyncio.wait_for(
                    self._reaper_stop.wait(),
                    timeout=self._reaper_interval_seconds,
                )
            except TimeoutError:
                pass

    async def _stop_reaper_loop(self) -> None:
        task = self._reaper_task
        if task is None:
            return
        self._reaper_task = None
        self._reaper_stop.set()
        task.cancel()
        with suppress(asyncio.CancelledError):
            await task


__all__ = ["DeletionJobService", "JobExecutionControl"]
