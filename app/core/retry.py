"""
Retry policy shared by the GitHub client, the AI analyst and the job queue.

A policy is (max attempts, backoff function, retryable-error predicate).
Each caller instantiates its own policy; the policy never decides *what*
is transient, only how often and how long to wait.

Attempt numbers are zero-based: attempt 0 is the first call.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, TypeVar

from app.core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

BackoffFn = Callable[[int, BaseException], float]
RetryablePredicate = Callable[[BaseException], bool]
SleepFn = Callable[[float], Awaitable[None]]


def exponential_backoff(base_seconds: float) -> BackoffFn:
    """base, 2*base, 4*base, ..."""

    def _backoff(attempt: int, _error: BaseException) -> float:
        return base_seconds * (2**attempt)

    return _backoff


def linear_backoff(step_seconds: float) -> BackoffFn:
    """step, 2*step, 3*step, ..."""

    def _backoff(attempt: int, _error: BaseException) -> float:
        return step_seconds * (attempt + 1)

    return _backoff


def retry_all(_error: BaseException) -> bool:
    return True


@dataclass(frozen=True)
class RetryPolicy:
    """
    Bounded retry with a pluggable backoff.

    Attributes:
        max_attempts: Total number of attempts, including the first one.
        backoff: Seconds to wait after the failed attempt `attempt`.
        retryable: Whether an error may be retried at all.
        sleep: Awaitable sleep, injectable for tests.
        name: Label used in log lines.
    """

    max_attempts: int
    backoff: BackoffFn
    retryable: RetryablePredicate = retry_all
    sleep: SleepFn = field(default=asyncio.sleep, compare=False)
    name: str = "retry"

    def can_retry(self, attempt: int, error: BaseException) -> bool:
        """True when `error` raised by `attempt` should be followed by another attempt."""
        return attempt + 1 < self.max_attempts and self.retryable(error)

    def delay_for(self, attempt: int, error: BaseException) -> float:
        return max(0.0, float(self.backoff(attempt, error)))

    async def run(
        self,
        operation: Callable[[], Awaitable[T]],
        on_retry: Optional[Callable[[int, BaseException, float], None]] = None,
    ) -> T:
        """
        Await `operation` until it succeeds or the policy gives up.

        The last error is re-raised unchanged when attempts are exhausted or
        the error is not retryable.
        """
        attempt = 0
        while True:
            try:
                return await operation()
            except Exception as exc:
                if not self.can_retry(attempt, exc):
                    raise
                delay = self.delay_for(attempt, exc)
                if on_retry is not None:
                    on_retry(attempt, exc, delay)
                else:
                    logger.warning(
                        "%s: attempt %d/%d failed (%s), retrying in %.1fs",
                        self.name,
                        attempt + 1,
                        self.max_attempts,
                        exc,
                        delay,
                    )
                await self.sleep(delay)
                attempt += 1
