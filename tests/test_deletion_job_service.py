from __future__ import annotations

import asyncio
import time

import pytest

from post_purge.application.services import DeletionJobService
from post_purge.domain.entities import Post, PostPage, Principal
from post_purge.domain.errors import (
    AuthRequiredError,
    DeletionJobNotFoundError,
    UpstreamFatalError,
    UpstreamNotFoundError,
    UpstreamRateLimitedError,
    UpstreamTransientError,
)
from post_purge.domain.job_status import TERMINAL_JOB_STATUSES, DeletionJobStatus
from post_purge.domain.models import DeletionJobStatusResponse
from post_purge.domain.ports import ContentApiClient
from post_purge.infrastructure.repositories import InMemoryDeletionJobRepository

OWNER = Principal(user_id="user-1", access_token="token-1", username="alice")
STRANGER = Principal(user_id="user-2", access_token="token-2", username="mallory")


class FakeContentApiClient(ContentApiClient):
    """Scripted timeline and delete outcomes."""

    def __init__(
        self,
        pages: list[PostPage] | None = None,
        failures_by_call: dict[int, Exception] | None = None,
        failures_by_post: dict[str, Exception] | None = None,
        delete_delay_seconds: float = 0.0,
        endless_pages: bool = False,
    ) -> None:
        self.pages = pages or []
        self.failures_by_call = failures_by_call or {}
        self.failures_by_post = failures_by_post or {}
        self.delete_delay_seconds = delete_delay_seconds
        self.endless_pages = endless_pages
        self.list_calls: list[str | None] = []
        self.delete_calls: list[str] = []
        self.delete_times: list[float] = []
        self.list_error: Exception | None = None

    async def list_posts(
        self,
        access_token: str,
        user_id: str,
        pagination_token: str | None = None,
        max_results: int = 100,
    ) -> PostPage:
        self.list_calls.append(pagination_token)
        if self.list_error is not None:
            raise self.list_error
        index = len(self.list_calls) - 1
        if self.endless_pages:
            return PostPage(
                posts=[Post(post_id=f"p{index}-{n}") for n in range(max_results)],
                next_token=f"token-{index + 1}",
            )
        if index >= len(self.pages):
            return PostPage()
        return self.pages[index]

    async def delete_post(self, access_token: str, post_id: str) -> None:
        self.delete_calls.append(post_id)
        self.delete_times.append(time.monotonic())
        if self.delete_delay_seconds:
            await asyncio.sleep(self.delete_delay_seconds)
        failure = self.failures_by_call.get(len(self.delete_calls))
        if failure is None:
            failure = self.failures_by_post.get(post_id)
        if failure is not None:
            raise failure

    async def create_post(self, access_token: str, text: str) -> Post:
        return Post(post_id="new", text=text)


def timeline(total: int, per_page: int = 100) -> list[PostPage]:
    ids = [f"post-{n}" for n in range(1, total + 1)]
    chunks = [ids[start : start + per_page] for start in range(0, total, per_page)]
    return [
        PostPage(
            posts=[Post(post_id=post_id) for post_id in chunk],
            next_token=None if index == len(chunks) - 1 else f"next-{index + 1}",
        )
        for index, chunk in enumerate(chunks)
    ]


def build_service(client: FakeContentApiClient, **overrides: float) -> DeletionJobService:
    options: dict[str, float] = {
        "pacing_seconds": 0.0,
        "rate_limit_cooldown_seconds": 0.0,
        "transient_retry_attempts": 2,
        "transient_retry_backoff_seconds": 0.0,
        "call_timeout_seconds": 1.0,
    }
    options.update(overrides)
    return DeletionJobService(
        repository=InMemoryDeletionJobRepository(),
        content_client=client,
        **options,  # type: ignore[arg-type]
    )


async def wait_for_status(
    service: DeletionJobService,
    job_id: str,
    statuses: frozenset[DeletionJobStatus] = TERMINAL_JOB_STATUSES,
    timeout: float = 3.0,
    snapshots: list[DeletionJobStatusResponse] | None = None,
) -> DeletionJobStatusResponse:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while True:
        status = await service.get_status(job_id, OWNER)
        if snapshots is not None:
            snapshots.append(status)
        if status.status in statuses:
            return status
        if loop.time() > deadline:
            raise AssertionError(f"job {job_id} stuck in {status.status}")
        await asyncio.sleep(0.01)


def test_two_full_pages_are_deleted_until_done() -> None:
    client = FakeContentApiClient(pages=timeline(200))
    service = build_service(client)
    snapshots: list[DeletionJobStatusResponse] = []

    async def scenario() -> DeletionJobStatusResponse:
        started = await service.start(OWNER)
        assert started.job_id is not None
        assert started.total == 200
        final = await wait_for_status(service, started.job_id, snapshots=snapshots)
        again = await service.get_status(started.job_id, OWNER)
        assert again == final
        return final

    final = asyncio.run(scenario())

    assert client.list_calls == [None, "next-1"]
    assert final.status is DeletionJobStatus.DONE
    assert final.deleted_count == 200
    assert final.skipped_count == 0
    assert client.delete_calls == [f"post-{n}" for n in range(1, 201)]
    for snapshot in snapshots:
        assert 0 <= snapshot.deleted_count <= snapshot.total


def test_start_without_posts_creates_no_job() -> None:
    client = FakeContentApiClient(pages=[PostPage()])
    service = build_service(client)

    result = asyncio.run(service.start(OWNER))

    assert result.ok is True
    assert result.job_id is None
    assert result.message == "No posts to delete."
    assert asyncio.run(service._repository.list_jobs()) == []


def test_enumeration_stops_at_page_ceiling() -> None:
    client = FakeContentApiClient(endless_pages=True)
    service = build_service(client, max_pages=3, page_size=10)

    async def scenario() -> int:
        started = await service.start(OWNER)
        assert started.job_id is not None
        await service.cancel(started.job_id, OWNER)
        final = await wait_for_status(service, started.job_id)
        assert final.status is DeletionJobStatus.CANCELED
        return started.total

    total = asyncio.run(scenario())

    assert len(client.list_calls) == 3
    assert total == 30


def test_enumeration_drops_duplicate_ids_across_pages() -> None:
    client = FakeContentApiClient(
        pages=[
            PostPage(posts=[Post("a"), Post("b")], next_token="n1"),
            PostPage(posts=[Post("b"), Post("c")]),
        ]
    )
    service = build_service(client)

    async def scenario() -> DeletionJobStatusResponse:
        started = await service.start(OWNER)
        assert started.total == 3
        assert started.job_id is not None
        return await wait_for_status(service, started.job_id)

    final = asyncio.run(scenario())

    assert client.delete_calls == ["a", "b", "c"]
    assert final.deleted_count == 3


def test_enumeration_failure_fails_start_without_job() -> None:
    client = FakeContentApiClient(pages=timeline(5))
    client.list_error = UpstreamRateLimitedError("429 Too Many Requests")
    service = build_service(client)

    with pytest.raises(UpstreamRateLimitedError):
        asyncio.run(service.start(OWNER))

    assert asyncio.run(service._repository.list_jobs()) == []


def test_start_requires_credentials() -> None:
    service = build_service(FakeContentApiClient(pages=timeline(3)))

    with pytest.raises(AuthRequiredError):
        asyncio.run(service.start(None))
    with pytest.raises(AuthRequiredError):
        asyncio.run(service.start(Principal(user_id="user-1", access_token="")))


def test_rate_limit_pauses_job_and_retries_same_post() -> None:
    client = FakeContentApiClient(
        pages=timeline(10),
        failures_by_call={5: UpstreamRateLimitedError("429 Too Many Requests")},
    )
    service = build_service(client, rate_limit_cooldown_seconds=0.3)

    async def scenario() -> tuple[DeletionJobStatusResponse, DeletionJobStatusResponse]:
        started = await service.start(OWNER)
        assert started.job_id is not None
        waiting = await wait_for_status(
            service,
            started.job_id,
            statuses=frozenset({DeletionJobStatus.WAITING_ON_RATE_LIMIT}),
        )
        final = await wait_for_status(service, started.job_id)
        return waiting, final

    waiting, final = asyncio.run(scenario())

    assert waiting.deleted_count == 4
    assert final.status is DeletionJobStatus.DONE
    assert final.deleted_count == 10
    assert client.delete_calls[4] == "post-5"
    assert client.delete_calls[5] == "post-5"
    assert len(client.delete_calls) == 11


def test_rate_limit_waits_for_server_announced_reset() -> None:
    client = FakeContentApiClient(
        pages=timeline(2),
        failures_by_call={
            1: UpstreamRateLimitedError("429 Too Many Requests", retry_after_seconds=0.4)
        },
    )
    service = build_service(client, rate_limit_cooldown_seconds=0.1)

    async def scenario() -> DeletionJobStatusResponse:
        started = await service.start(OWNER)
        assert started.job_id is not None
        return await wait_for_status(service, started.job_id)

    final = asyncio.run(scenario())

    assert final.status is DeletionJobStatus.DONE
    assert client.delete_calls == ["post-1", "post-1", "post-2"]
    assert client.delete_times[1] - client.delete_times[0] >= 0.35


def test_zero_cooldown_still_pauses_before_retrying() -> None:
    client = FakeContentApiClient(
        pages=timeline(1),
        failures_by_call={1: UpstreamRateLimitedError("429 Too Many Requests")},
    )
    service = build_service(client, rate_limit_cooldown_seconds=0.0)

    async def scenario() -> DeletionJobStatusResponse:
        started = await service.start(OWNER)
        assert started.job_id is not None
        return await wait_for_status(service, started.job_id)

    final = asyncio.run(scenario())

    assert final.deleted_count == 1
    assert service._rate_limit_cooldown_seconds > 0
    assert client.delete_times[1] - client.delete_times[0] >= 0.08


def test_cancel_after_three_deletes_stops_job() -> None:
    client = FakeContentApiClient(pages=timeline(10))
    service = build_service(client, pacing_seconds=0.3)

    async def scenario() -> DeletionJobStatusResponse:
        started = await service.start(OWNER)
        assert started.job_id is not None
        loop = asyncio.get_running_loop()
        deadline = loop.time() + 5.0
        while (await service.get_status(started.job_id, OWNER)).deleted_count < 3:
            assert loop.time() < deadline
            await asyncio.sleep(0.01)
        await service.cancel(started.job_id, OWNER)
        return await wait_for_status(service, started.job_id, timeout=1.0)

    final = asyncio.run(scenario())

    assert final.status is DeletionJobStatus.CANCELED
    assert final.deleted_count == 3
    assert final.total == 10
    assert len(client.delete_calls) == 3


def test_cancel_interrupts_rate_limit_cooldown() -> None:
    client = FakeContentApiClient(
        pages=timeline(3),
        failures_by_call={1: UpstreamRateLimitedError("429 Too Many Requests")},
    )
    service = build_service(client, rate_limit_cooldown_seconds=30.0)

    async def scenario() -> DeletionJobStatusResponse:
        started = await service.start(OWNER)
        assert started.job_id is not None
        await wait_for_status(
            service,
            started.job_id,
            statuses=frozenset({DeletionJobStatus.WAITING_ON_RATE_LIMIT}),
        )
        await service.cancel(started.job_id, OWNER)
        return await wait_for_status(service, started.job_id, timeout=1.0)

    final = asyncio.run(scenario())

    assert final.status is DeletionJobStatus.CANCELED
    assert final.deleted_count == 0
    assert client.delete_calls == ["post-1"]


def test_cancel_on_finished_job_is_acknowledged_noop() -> None:
    service = build_service(FakeContentApiClient(pages=timeline(2)))

    async def scenario() -> DeletionJobStatusResponse:
        started = await service.start(OWNER)
        assert started.job_id is not None
        await wait_for_status(service, started.job_id)
        await service.cancel(started.job_id, OWNER)
        await service.cancel(started.job_id, OWNER)
        return await service.get_status(started.job_id, OWNER)

    final = asyncio.run(scenario())

    assert final.status is DeletionJobStatus.DONE
    assert final.deleted_count == 2


def test_status_for_unknown_job_raises_not_found() -> None:
    service = build_service(FakeContentApiClient())

    with pytest.raises(DeletionJobNotFoundError):
        asyncio.run(service.get_status("missing", OWNER))
    with pytest.raises(DeletionJobNotFoundError):
        asyncio.run(service.cancel("missing", OWNER))


def test_jobs_are_hidden_from_other_users() -> None:
    service = build_service(FakeContentApiClient(pages=timeline(2)), pacing_seconds=5.0)

    async def scenario() -> None:
        started = await service.start(OWNER)
        assert started.job_id is not None
        with pytest.raises(DeletionJobNotFoundError):
            await service.get_status(started.job_id, STRANGER)
        with pytest.raises(DeletionJobNotFoundError):
            await service.cancel(started.job_id, STRANGER)
        job = await service._repository.get(started.job_id)
        assert job is not None
        assert job.cancel_requested is False
        await service.cancel(started.job_id, OWNER)
        await wait_for_status(service, started.job_id)

    asyncio.run(scenario())


def test_transient_failure_is_retried_then_succeeds() -> None:
    client = FakeContentApiClient(
        pages=timeline(3),
        failures_by_call={2: UpstreamTransientError("503 Service Unavailable")},
    )
    service = build_service(client)

    async def scenario() -> DeletionJobStatusResponse:
        started = await service.start(OWNER)
        assert started.job_id is not None
        return await wait_for_status(service, started.job_id)

    final = asyncio.run(scenario())

    assert final.status is DeletionJobStatus.DONE
    assert final.deleted_count == 3
    assert client.delete_calls == ["post-1", "post-2", "post-2", "post-3"]


def test_persistent_transient_failure_skips_post_and_continues() -> None:
    client = FakeContentApiClient(
        pages=timeline(3),
        failures_by_post={"post-2": UpstreamTransientError("502 Bad Gateway")},
    )
    service = build_service(client, transient_retry_attempts=2)

    async def scenario() -> DeletionJobStatusResponse:
        started = await service.start(OWNER)
        assert started.job_id is not None
        return await wait_for_status(service, started.job_id)

    final = asyncio.run(scenario())

    assert final.status is DeletionJobStatus.DONE
    assert final.deleted_count == 2
    assert final.skipped_count == 1
    assert client.delete_calls.count("post-2") == 3
    assert final.error is None


def test_missing_post_is_skipped_without_retry() -> None:
    client = FakeContentApiClient(
        pages=timeline(2),
        failures_by_post={"post-1": UpstreamNotFoundError("404 Not Found")},
    )
    service = build_service(client)

    async def scenario() -> DeletionJobStatusResponse:
        started = await service.start(OWNER)
        assert started.job_id is not None
        return await wait_for_status(service, started.job_id)

    final = asyncio.run(scenario())

    assert client.delete_calls == ["post-1", "post-2"]
    assert final.deleted_count == 1
    assert final.skipped_count == 1


def test_delete_timeout_counts_as_transient_failure() -> None:
    client = FakeContentApiClient(pages=timeline(2), delete_delay_seconds=1.0)
    service = build_service(client, call_timeout_seconds=0.05, transient_retry_attempts=0)

    async def scenario() -> DeletionJobStatusResponse:
        started = await service.start(OWNER)
        assert started.job_id is not None
        return await wait_for_status(service, started.job_id)

    final = asyncio.run(scenario())

    assert final.status is DeletionJobStatus.DONE
    assert final.deleted_count == 0
    assert final.skipped_count == 2


def test_fatal_failure_moves_job_to_error() -> None:
    client = FakeContentApiClient(
        pages=timeline(5),
        failures_by_call={3: UpstreamFatalError("401 Unauthorized")},
    )
    service = build_service(client)

    async def scenario() -> DeletionJobStatusResponse:
        started = await service.start(OWNER)
        assert started.job_id is not None
        return await wait_for_status(service, started.job_id)

    final = asyncio.run(scenario())

    assert final.status is DeletionJobStatus.ERROR
    assert final.deleted_count == 2
    assert final.error == "401 Unauthorized"
    assert len(client.delete_calls) == 3


def test_unexpected_exception_moves_job_to_error() -> None:
    client = FakeContentApiClient(
        pages=timeline(2),
        failures_by_call={1: RuntimeError("boom")},
    )
    service = build_service(client)

    async def scenario() -> DeletionJobStatusResponse:
        started = await service.start(OWNER)
        assert started.job_id is not None
        return await wait_for_status(service, started.job_id)

    final = asyncio.run(scenario())

    assert final.status is DeletionJobStatus.ERROR
    assert final.error == "boom"
    assert service._controls == {}


def test_shutdown_terminates_running_jobs() -> None:
    client = FakeContentApiClient(
        pages=timeline(3),
        failures_by_call={1: UpstreamRateLimitedError("429 Too Many Requests")},
    )
    service = build_service(client, rate_limit_cooldown_seconds=30.0)

    async def scenario() -> DeletionJobStatusResponse:
        await service.startup()
        started = await service.start(OWNER)
        assert started.job_id is not None
        await wait_for_status(
            service,
            started.job_id,
            statuses=frozenset({DeletionJobStatus.WAITING_ON_RATE_LIMIT}),
        )
        await service.shutdown()
        return await service.get_status(started.job_id, OWNER)

    final = asyncio.run(scenario())

    assert final.status is DeletionJobStatus.ERROR
    assert final.error == "Deletion job interrupted by shutdown."


def test_reaper_evicts_only_finished_jobs_past_retention() -> None:
    service = build_service(
        FakeContentApiClient(pages=timeline(1)),
        job_retention_seconds=0.0,
    )

    async def scenario() -> tuple[list[str], list[str], str]:
        started = await service.start(OWNER)
        assert started.job_id is not None
        premature = await service.reap_finished_jobs()
        await wait_for_status(service, started.job_id)
        await asyncio.sleep(0.01)
        removed = await service.reap_finished_jobs()
        return premature, removed, started.job_id

    premature, removed, job_id = asyncio.run(scenario())

    assert premature == []
    assert removed == [job_id]
    with pytest.raises(DeletionJobNotFoundError):
        asyncio.run(service.get_status(job_id, OWNER))


def test_reaper_loop_runs_between_startup_and_shutdown() -> None:
    service = build_service(
        FakeContentApiClient(pages=timeline(1)),
        job_retention_seconds=0.0,
        reaper_interval_seconds=0.05,
    )

    async def scenario() -> list[object]:
        await service.startup()
        started = await service.start(OWNER)
        assert started.job_id is not None
        await wait_for_status(service, started.job_id)
        await asyncio.sleep(0.2)
        jobs = await service._repository.list_jobs()
        await service.shutdown()
        return list(jobs)

    assert asyncio.run(scenario()) == []
