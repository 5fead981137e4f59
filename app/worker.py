"""
score_pr worker process.

Runs `WORKER_CONCURRENCY` consumer tasks against the shared job queue,
throttled by one token bucket, plus a housekeeping task that promotes
delayed retries and recovers jobs stalled by a crashed consumer.

SIGINT / SIGTERM stop dequeuing; in-flight jobs finish before the queue,
HTTP pool and database engine are closed.

Usage:
    python -m app.worker
"""

import asyncio
import signal
from typing import Any, Awaitable, Callable, List, Optional

import httpx
from dotenv import load_dotenv

from app.core.config import Settings, get_settings
from app.core.job_queue import (
    STALLED_AFTER_SECONDS,
    JobQueue,
    QueuedJob,
    RedisJobQueue,
    default_job_retry_policy,
)
from app.core.logging import get_logger, setup_logging
from app.core.rate_limit import TokenBucket
from app.db.session import build_engine, build_session_factory
from app.integrations.github.client import GitHubClientFactory
from app.integrations.github.errors import GitHubAuthError
from app.services.ai.analyst import AiAnalyst
from app.services.pr_scoring import MissingInstallationError, PullRequestStore, ScorePrService

logger = get_logger(__name__)

JobHandler = Callable[[QueuedJob], Awaitable[Any]]

HOUSEKEEPING_INTERVAL_SECONDS = 1.0
DEQUEUE_TIMEOUT_SECONDS = 5.0
QUEUE_ERROR_BACKOFF_SECONDS = 1.0


class Worker:
    """
    Consumer pool for one queue.

    Queue errors (a Valkey blip, a dropped connection) never end a consumer
    or the housekeeping loop: they are logged and the loop resumes after
    `error_backoff` seconds.

    Args:
        queue: Queue to consume.
        handler: Coroutine run for every job; raising marks the attempt failed.
        concurrency: Number of consumer tasks.
        limiter: Shared rate limiter, acquired once per dequeue.
        dequeue_timeout: Longest a consumer blocks before rechecking shutdown.
        error_backoff: Pause after a queue error.
    """

    def __init__(
        self,
        queue: JobQueue,
        handler: JobHandler,
        concurrency: int = 5,
        limiter: Optional[TokenBucket] = None,
        dequeue_timeout: float = DEQUEUE_TIMEOUT_SECONDS,
        housekeeping_interval: float = HOUSEKEEPING_INTERVAL_SECONDS,
        error_backoff: float = QUEUE_ERROR_BACKOFF_SECONDS,
    ):
        self._queue = queue
        self._handler = handler
        self._concurrency = concurrency
        self._limiter = limiter
        self._dequeue_timeout = dequeue_timeout
        self._housekeeping_interval = housekeeping_interval
        self._error_backoff = error_backoff
        self._stopping = asyncio.Event()
        self.in_flight = 0
        self.processed = 0
        self.failed = 0
        self.queue_errors = 0

    def stop(self) -> None:
        if not self._stopping.is_set():
            logger.info("Worker stopping: draining in-flight jobs")
            self._stopping.set()

    @property
    def stopping(self) -> bool:
        return self._stopping.is_set()

    async def run(self) -> None:
        """Consume until `stop()` is called, then wait for in-flight jobs."""
        logger.info("Worker started with concurrency %d", self._concurrency)
        consumers: List[asyncio.Task] = [
            asyncio.create_task(self._consume(i), name=f"consumer-{i}")
            for i in range(self._concurrency)
        ]
        housekeeping = asyncio.create_task(self._housekeeping(), name="housekeeping")
        tasks = [*consumers, housekeeping]
        try:
            await asyncio.gather(*consumers)
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.info(
            "Worker stopped: %d processed, %d failed attempts", self.processed, self.failed
        )

    async def _queue_error(self, what: str, exc: Exception) -> None:
        self.queue_errors += 1
        logger.error("Queue %s failed, retrying in %.1fs: %s", what, self._error_backoff, exc)
        await asyncio.sleep(self._error_backoff)

    async def _consume(self, index: int) -> None:
        while not self.stopping:
            if self._limiter is not None:
                await self._limiter.acquire()
                if self.stopping:
                    break
            try:
                queued = await self._queue.dequeue(timeout=self._dequeue_timeout)
            except Exception as exc:
                await self._queue_error(f"dequeue (consumer {index})", exc)
                continue
            if queued is None:
                continue
            await self._process(queued)

    async def _process(self, queued: QueuedJob) -> None:
        self.in_flight += 1
        try:
            try:
                await self._handler(queued)
            except Exception as exc:
                self.failed += 1
                await self._record_failure(queued, exc)
            else:
                self.processed += 1
                await self._record_success(queued)
        finally:
            self.in_flight -= 1

    async def _record_success(self, queued: QueuedJob) -> None:
        try:
            await self._queue.complete(queued)
        except Exception as exc:
            # Job stays in the active list; stalled-job recovery reruns it
            self.queue_errors += 1
            logger.error("Could not mark job %s completed: %s", queued.job_id, exc)

    async def _record_failure(self, queued: QueuedJob, error: Exception) -> None:
        try:
            rescheduled = await self._queue.fail(queued, error)
        except Exception as exc:
            # Job stays in the active list; stalled-job recovery reruns it
            self.queue_errors += 1
            logger.error(
                "Could not record failure of job %s (%s): %s", queued.job_id, error, exc
            )
            return
        if rescheduled:
            logger.warning(
                "Job %s failed (attempt %d), will retry: %s",
                queued.job_id,
                queued.attempts_made + 1,
                error,
            )
        else:
            logger.error(
                "Job %s failed permanently after %d attempt(s): %s",
                queued.job_id,
                queued.attempts_made + 1,
                error,
                exc_info=error,
            )

    async def _housekeeping(self) -> None:
        while True:
            try:
                await self._queue.promote_due()
                await self._queue.recover_stalled(STALLED_AFTER_SECONDS)
                await self._queue.prune_failed()
            except Exception as exc:
                await self._queue_error("housekeeping", exc)
                continue
            await asyncio.sleep(self._housekeeping_interval)


def _install_signal_handlers(worker: Worker) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, worker.stop)


async def run_worker(settings: Settings) -> None:
    """Build the worker's dependencies from settings and run until signalled."""
    engine = build_engine(settings.DATABASE_URL)
    http_client = httpx.AsyncClient(timeout=30.0)
    queue = RedisJobQueue.from_url(
        settings.VALKEY_URL,
        default_job_retry_policy(
            attempts=settings.JOB_ATTEMPTS,
            backoff_seconds=settings.JOB_BACKOFF_SECONDS,
            permanent_errors=(MissingInstallationError, GitHubAuthError),
        ),
    )
    service = ScorePrService(
        settings=settings,
        github=GitHubClientFactory.from_settings(settings, http_client),
        store=PullRequestStore(build_session_factory(engine)),
        analyst=AiAnalyst(settings),
    )
    worker = Worker(
        queue,
        service.run,
        concurrency=settings.WORKER_CONCURRENCY,
        limiter=TokenBucket(settings.WORKER_RATE_LIMIT_MAX, settings.WORKER_RATE_LIMIT_DURATION),
    )
    _install_signal_handlers(worker)
    try:
        await worker.run()
    finally:
        await queue.close()
        await http_client.aclose()
        await engine.dispose()
        logger.info("Worker resources released")


def main() -> None:
    load_dotenv()
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL)
    asyncio.run(run_worker(settings))


if __name__ == "__main__":
    main()
