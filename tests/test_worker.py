from __future__ import annotations

import asyncio
from typing import List

import redis

from app.core.job_queue import InMemoryJobQueue, QueuedJob, ScorePrJob, default_job_retry_policy
from app.worker import Worker


def job(delivery_id: str) -> ScorePrJob:
    return ScorePrJob(owner="octo", name="shop", pr_number=1, installation_id=42, delivery_id=delivery_id)


async def fill(queue: InMemoryJobQueue, count: int) -> List[str]:
    ids = []
    for i in range(count):
        item = job(f"d-{i}")
        await queue.enqueue(item.job_id, item)
        ids.append(item.job_id)
    return ids


async def test_worker_processes_jobs_until_stopped() -> None:
    queue = InMemoryJobQueue()
    ids = await fill(queue, 3)
    handled: List[str] = []

    async def handler(queued: QueuedJob) -> None:
        handled.append(queued.job_id)
        if len(handled) == 3:
            worker.stop()

    worker = Worker(queue, handler, concurrency=2, dequeue_timeout=0.01, housekeeping_interval=0.01)
    await asyncio.wait_for(worker.run(), timeout=5)

    assert sorted(handled) == sorted(ids)
    assert worker.processed == 3
    assert worker.failed == 0
    assert worker.in_flight == 0
    assert all(queue.states[i] == "completed" for i in ids)


async def test_failed_job_goes_back_to_queue() -> None:
    queue = InMemoryJobQueue(default_job_retry_policy(attempts=2, backoff_seconds=0.0))
    [job_id] = await fill(queue, 1)
    attempts: List[int] = []

    async def handler(queued: QueuedJob) -> None:
        attempts.append(queued.attempts_made)
        if len(attempts) == 2:
            worker.stop()
        raise RuntimeError("GitHub unavailable")

    worker = Worker(queue, handler, concurrency=1, dequeue_timeout=0.01, housekeeping_interval=0.01)
    await asyncio.wait_for(worker.run(), timeout=5)

    assert attempts == [0, 1]
    assert worker.failed == 2
    assert worker.processed == 0
    assert queue.states[job_id] == "failed"
    assert queue.errors[job_id] == "GitHub unavailable"


async def test_stop_is_idempotent() -> None:
    worker = Worker(InMemoryJobQueue(), lambda queued: asyncio.sleep(0), dequeue_timeout=0.01)
    worker.stop()
    worker.stop()
    assert worker.stopping
    await asyncio.wait_for(worker.run(), timeout=5)
    assert worker.processed == 0


class FlakyQueue(InMemoryJobQueue):
    """In-memory queue whose named operations raise a connection error once each."""

    def __init__(self, *failing: str, **kwargs) -> None:
        super().__init__(**kwargs)
        self.pending_failures = set(failing)

    def _maybe_fail(self, operation: str) -> None:
        if operation in self.pending_failures:
            self.pending_failures.discard(operation)
            raise redis.ConnectionError("connection reset")

    async def dequeue(self, timeout: float = 5.0):
        self._maybe_fail("dequeue")
        return await super().dequeue(timeout)

    async def complete(self, queued: QueuedJob) -> None:
        self._maybe_fail("complete")
        await super().complete(queued)

    async def fail(self, queued: QueuedJob, error: BaseException) -> bool:
        self._maybe_fail("fail")
        return await super().fail(queued, error)

    async def promote_due(self) -> int:
        self._maybe_fail("promote_due")
        return await super().promote_due()


def fast_worker(queue: InMemoryJobQueue, handler, concurrency: int = 1) -> Worker:
    return Worker(
        queue,
        handler,
        concurrency=concurrency,
        dequeue_timeout=0.01,
        housekeeping_interval=0.01,
        error_backoff=0.01,
    )


async def test_dequeue_error_does_not_stop_the_consumer() -> None:
    queue = FlakyQueue("dequeue")
    [job_id] = await fill(queue, 1)
    handled: List[str] = []

    async def handler(queued: QueuedJob) -> None:
        handled.append(queued.job_id)
        worker.stop()

    worker = fast_worker(queue, handler)
    await asyncio.wait_for(worker.run(), timeout=5)

    assert handled == [job_id]
    assert worker.queue_errors == 1
    assert queue.states[job_id] == "completed"


async def test_housekeeping_survives_errors_and_promotes_retries() -> None:
    queue = FlakyQueue("promote_due", retry_policy=default_job_retry_policy(attempts=2, backoff_seconds=0.0))
    [job_id] = await fill(queue, 1)
    attempts: List[int] = []

    async def handler(queued: QueuedJob) -> None:
        attempts.append(queued.attempts_made)
        if queued.attempts_made == 0:
            raise RuntimeError("GitHub unavailable")
        worker.stop()

    worker = fast_worker(queue, handler)
    await asyncio.wait_for(worker.run(), timeout=5)

    assert attempts == [0, 1]
    assert queue.states[job_id] == "completed"
    assert worker.queue_errors >= 1


async def test_errors_recording_results_are_contained() -> None:
    queue = FlakyQueue("fail", "complete")
    ids = await fill(queue, 3)
    handled: List[str] = []

    async def handler(queued: QueuedJob) -> None:
        handled.append(queued.job_id)
        if len(handled) == 1:
            raise RuntimeError("boom")
        if len(handled) == 3:
            worker.stop()

    worker = fast_worker(queue, handler)
    await asyncio.wait_for(worker.run(), timeout=5)

    assert handled == ids
    assert worker.queue_errors == 2
    assert worker.in_flight == 0
    # Neither outcome was recorded, so both jobs are still held as active
    assert [queue.states[i] for i in ids] == ["active", "active", "completed"]


async def test_run_cancels_housekeeping_on_exit() -> None:
    queue = InMemoryJobQueue()
    worker = fast_worker(queue, lambda queued: asyncio.sleep(0), concurrency=2)
    worker.stop()

    await asyncio.wait_for(worker.run(), timeout=5)
    names = {task.get_name() for task in asyncio.all_tasks()}
    assert "housekeeping" not in names
    assert not any(name.startswith("consumer-") for name in names)
