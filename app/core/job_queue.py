"""
Job Queue Module

Durable `score_pr` job queue on Valkey (Redis-compatible), accessed through
the redis-py asyncio client, plus an in-memory implementation with the same
contract for local runs and tests.

Contract:
- `enqueue(job_id, job)` is idempotent per job_id: a second submission of an
  identity that is still known to the queue is a no-op and returns False.
- `dequeue()` hands each job to one consumer at a time with an attempt
  counter. Delivery is at-least-once: a consumer that dies mid-job leaves the
  job in the active list, and `recover_stalled()` puts it back.
- `fail()` reschedules with the queue's retry policy (exponential backoff)
  until attempts are exhausted, then moves the job to the failed set.
  `prune_failed()` drops dead-letter entries older than their retention.

Valkey layout (prefix = queue name):
    {name}:job:{id}   hash   payload, attempts, state, error, timestamps
    {name}:waiting    list   LPUSH on enqueue, consumed from the right
    {name}:active     list   jobs currently held by a consumer
    {name}:delayed    zset   retry jobs scored by their ready timestamp
    {name}:failed     zset   dead-lettered jobs scored by their failure time
"""

import asyncio
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Dict, List, Optional, Protocol, Tuple, Type

import redis.asyncio as redis
from redis.exceptions import WatchError
from pydantic import BaseModel, Field

from app.core.logging import get_logger
from app.core.retry import RetryPolicy, exponential_backoff

logger = get_logger(__name__)

QUEUE_NAME = "score_pr"

COMPLETED_RETENTION_SECONDS = 3600
FAILED_RETENTION_SECONDS = 86400
STALLED_AFTER_SECONDS = 600


class JobQueueError(RuntimeError):
    """Raised when the queue backend cannot accept or hand out a job."""


def build_job_id(owner: str, name: str, pr_number: int, delivery_id: str) -> str:
    """Deterministic job identity used for deduplication."""
    return f"pr-{owner}-{name}-{pr_number}-{delivery_id}"


class ScorePrJob(BaseModel):
    """Payload of a `score_pr` job."""

    owner: str
    name: str
    pr_number: int = Field(gt=0)
    installation_id: Optional[int] = None
    delivery_id: str

    @property
    def job_id(self) -> str:
        return build_job_id(self.owner, self.name, self.pr_number, self.delivery_id)

    @property
    def display_name(self) -> str:
        return f"{self.owner}/{self.name}#{self.pr_number}"


@dataclass
class QueuedJob:
    """A job handed to a consumer.

    `attempts_made` counts previous attempts, so it is also the zero-based
    index of the attempt about to run.
    """

    job_id: str
    job: ScorePrJob
    attempts_made: int = 0


class JobQueue(Protocol):
    """Queue interface consumed by the webhook dispatcher and the worker."""

    async def enqueue(self, job_id: str, job: ScorePrJob) -> bool: ...

    async def dequeue(self, timeout: float = 5.0) -> Optional[QueuedJob]: ...

    async def complete(self, queued: QueuedJob) -> None: ...

    async def fail(self, queued: QueuedJob, error: BaseException) -> bool: ...

    async def promote_due(self) -> int: ...

    async def recover_stalled(self, older_than: float = STALLED_AFTER_SECONDS) -> int: ...

    async def prune_failed(self, older_than: float = FAILED_RETENTION_SECONDS) -> int: ...

    async def close(self) -> None: ...


def default_job_retry_policy(
    attempts: int = 3,
    backoff_seconds: float = 2.0,
    permanent_errors: Tuple[Type[BaseException], ...] = (),
) -> RetryPolicy:
    """
    Queue-level retry: bounded attempts with exponential backoff.

    Errors of a type in `permanent_errors` go straight to the failed set.
    """
    return RetryPolicy(
        max_attempts=attempts,
        backoff=exponential_backoff(backoff_seconds),
        retryable=lambda error: not isinstance(error, permanent_errors),
        name="score_pr job",
    )


def _normalize_url(url: str) -> str:
    # redis-py only understands redis:// and rediss://
    return url.replace("valkeys://", "rediss://").replace("valkey://", "redis://")


class RedisJobQueue:
    """Valkey-backed implementation of `JobQueue`."""

    def __init__(
        self,
        client: redis.Redis,
        retry_policy: RetryPolicy,
        name: str = QUEUE_NAME,
        clock: Callable[[], float] = time.time,
    ):
        self._client = client
        self._policy = retry_policy
        self._clock = clock
        self.name = name
        self._waiting = f"{name}:waiting"
        self._active = f"{name}:active"
        self._delayed = f"{name}:delayed"
        self._failed = f"{name}:failed"

    @classmethod
    def from_url(cls, url: str, retry_policy: RetryPolicy, name: str = QUEUE_NAME) -> "RedisJobQueue":
        client = redis.from_url(_normalize_url(url), decode_responses=True)
        logger.info("Job queue %s connected to Valkey", name)
        return cls(client, retry_policy, name=name)

    def _job_key(self, job_id: str) -> str:
        return f"{self.name}:job:{job_id}"

    async def enqueue(self, job_id: str, job: ScorePrJob) -> bool:
        key = self._job_key(job_id)
        try:
            # Existence check, hash write and LPUSH commit together or not at all
            async with self._client.pipeline(transaction=True) as pipe:
                await pipe.watch(key)
                if await pipe.exists(key):
                    logger.info("Job %s already queued, ignoring duplicate", job_id)
                    return False
                pipe.multi()
                pipe.hset(
                    key,
                    mapping={
                        "payload": job.model_dump_json(),
                        "attempts": 0,
                        "state": "waiting",
                        "created_at": self._clock(),
                    },
                )
                pipe.lpush(self._waiting, job_id)
                await pipe.execute()
        except WatchError:
            logger.info("Job %s created concurrently, ignoring duplicate", job_id)
            return False
        except redis.RedisError as exc:
            raise JobQueueError(f"Failed to enqueue {job_id}: {exc}") from exc
        logger.debug("Enqueued %s", job_id)
        return True

    async def dequeue(self, timeout: float = 5.0) -> Optional[QueuedJob]:
        job_id = await self._client.blmove(
            self._waiting, self._active, timeout, src="RIGHT", dest="LEFT"
        )
        if job_id is None:
            return None

        key = self._job_key(job_id)
        data = await self._client.hgetall(key)
        if not data or "payload" not in data:
            # Hash expired or was removed while the id was still listed.
            await self._client.lrem(self._active, 1, job_id)
            logger.warning("Dropping job %s with no stored payload", job_id)
            return None

        await self._client.hset(key, mapping={"state": "active", "started_at": self._clock()})
        return QueuedJob(
            job_id=job_id,
            job=ScorePrJob.model_validate_json(data["payload"]),
            attempts_made=int(data.get("attempts", 0)),
        )

    async def complete(self, queued: QueuedJob) -> None:
        key = self._job_key(queued.job_id)
        async with self._client.pipeline(transaction=True) as pipe:
            pipe.lrem(self._active, 1, queued.job_id)
            pipe.hset(
                key,
                mapping={
                    "state": "completed",
                    "attempts": queued.attempts_made + 1,
                    "finished_at": self._clock(),
                },
            )
            pipe.expire(key, COMPLETED_RETENTION_SECONDS)
            await pipe.execute()

    async def fail(self, queued: QueuedJob, error: BaseException) -> bool:
        """Record a failed attempt. Returns True if the job was rescheduled."""
        key = self._job_key(queued.job_id)
        retry = self._policy.can_retry(queued.attempts_made, error)
        async with self._client.pipeline(transaction=True) as pipe:
            pipe.lrem(self._active, 1, queued.job_id)
            pipe.hset(
                key,
                mapping={"attempts": queued.attempts_made + 1, "error": str(error)[:2000]},
            )
            if retry:
                ready_at = self._clock() + self._policy.delay_for(queued.attempts_made, error)
                pipe.hset(key, "state", "delayed")
                pipe.zadd(self._delayed, {queued.job_id: ready_at})
            else:
                finished_at = self._clock()
                pipe.hset(key, mapping={"state": "failed", "finished_at": finished_at})
                pipe.zadd(self._failed, {queued.job_id: finished_at})
                pipe.expire(key, FAILED_RETENTION_SECONDS)
            await pipe.execute()
        return retry

    async def promote_due(self) -> int:
        """Move delayed jobs whose backoff elapsed back to the waiting list."""
        due = await self._client.zrangebyscore(self._delayed, 0, self._clock())
        promoted = 0
        for job_id in due:
            # zrem is the claim: only one consumer wins a given id
            if await self._client.zrem(self._delayed, job_id):
                await self._client.hset(self._job_key(job_id), "state", "waiting")
                await self._client.lpush(self._waiting, job_id)
                promoted += 1
        return promoted

    async def recover_stalled(self, older_than: float = STALLED_AFTER_SECONDS) -> int:
        """Requeue active jobs whose consumer has held them longer than `older_than`."""
        recovered = 0
        cutoff = self._clock() - older_than
        for job_id in await self._client.lrange(self._active, 0, -1):
            started_at = await self._client.hget(self._job_key(job_id), "started_at")
            if started_at is None or float(started_at) > cutoff:
                continue
            if await self._client.lrem(self._active, 1, job_id):
                await self._client.lpush(self._waiting, job_id)
                recovered += 1
                logger.warning("Recovered stalled job %s", job_id)
        return recovered

    async def prune_failed(self, older_than: float = FAILED_RETENTION_SECONDS) -> int:
        """Drop dead-letter entries whose job hash has reached its retention."""
        pruned = await self._client.zremrangebyscore(self._failed, 0, self._clock() - older_than)
        if pruned:
            logger.info("Pruned %d expired failed job(s)", pruned)
        return pruned

    async def close(self) -> None:
        await self._client.aclose()
        logger.info("Job queue %s closed.", self.name)


class InMemoryJobQueue:
    """
    Process-local `JobQueue`, for development and tests only.

    Same idempotency and retry semantics as `RedisJobQueue`; nothing survives
    a restart.
    """

    def __init__(
        self,
        retry_policy: Optional[RetryPolicy] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._policy = retry_policy or default_job_retry_policy()
        self._clock = clock
        self.jobs: Dict[str, ScorePrJob] = {}
        self.attempts: Dict[str, int] = {}
        self.states: Dict[str, str] = {}
        self.errors: Dict[str, str] = {}
        self.failed: Dict[str, float] = {}
        self._waiting: Deque[str] = deque()
        self._delayed: List[Tuple[float, str]] = []
        self._available = asyncio.Condition()

    async def enqueue(self, job_id: str, job: ScorePrJob) -> bool:
        if job_id in self.jobs:
            return False
        self.jobs[job_id] = job
        self.attempts[job_id] = 0
        self.states[job_id] = "waiting"
        async with self._available:
            self._waiting.appendleft(job_id)
            self._available.notify()
        return True

    async def dequeue(self, timeout: float = 5.0) -> Optional[QueuedJob]:
        async with self._available:
            try:
                await asyncio.wait_for(
                    self._available.wait_for(lambda: bool(self._waiting)), timeout=timeout
                )
            except asyncio.TimeoutError:
                return None
            job_id = self._waiting.pop()
        self.states[job_id] = "active"
        return QueuedJob(job_id=job_id, job=self.jobs[job_id], attempts_made=self.attempts[job_id])

    async def complete(self, queued: QueuedJob) -> None:
        self.attempts[queued.job_id] = queued.attempts_made + 1
        self.states[queued.job_id] = "completed"

    async def fail(self, queued: QueuedJob, error: BaseException) -> bool:
        self.attempts[queued.job_id] = queued.attempts_made + 1
        self.errors[queued.job_id] = str(error)
        if self._policy.can_retry(queued.attempts_made, error):
            ready_at = self._clock() + self._policy.delay_for(queued.attempts_made, error)
            self._delayed.append((ready_at, queued.job_id))
            self.states[queued.job_id] = "delayed"
            return True
        self.states[queued.job_id] = "failed"
        self.failed[queued.job_id] = self._clock()
        return False

    async def promote_due(self) -> int:
        now = self._clock()
        due = [job_id for ready_at, job_id in self._delayed if ready_at <= now]
        self._delayed = [(r, j) for r, j in self._delayed if r > now]
        async with self._available:
            for job_id in due:
                self.states[job_id] = "waiting"
                self._waiting.appendleft(job_id)
            if due:
                self._available.notify_all()
        return len(due)

    async def recover_stalled(self, older_than: float = STALLED_AFTER_SECONDS) -> int:
        return 0

    async def prune_failed(self, older_than: float = FAILED_RETENTION_SECONDS) -> int:
        cutoff = self._clock() - older_than
        expired = [job_id for job_id, failed_at in self.failed.items() if failed_at <= cutoff]
        for job_id in expired:
            del self.failed[job_id]
        return len(expired)

    async def close(self) -> None:
        return None
