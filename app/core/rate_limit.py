"""
Token-bucket rate limiter for the worker's dequeue loop.

`max_events` tokens refill evenly over `period` seconds. Each `acquire()`
consumes one token, waiting when the bucket is empty. One limiter instance
is shared by every consumer task of a worker process.
"""

import asyncio
import time
from typing import Awaitable, Callable


class TokenBucket:
    """Async token bucket (e.g. 10 acquisitions per 1.0 second)."""

    def __init__(
        self,
        max_events: int,
        period: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if max_events <= 0:
            raise ValueError("max_events must be > 0")
        if period <= 0:
            raise ValueError("period must be > 0")
        self.capacity = float(max_events)
        self.rate = max_events / period
        self._tokens = float(max_events)
        self._clock = clock
        self._sleep = sleep
        self._updated = clock()
        self._lock = asyncio.Lock()

    def _refill(self) -> None:
        now = self._clock()
        elapsed = now - self._updated
        if elapsed > 0:
            self._tokens = min(self.capacity, self._tokens + elapsed * self.rate)
            self._updated = now

    @property
    def available(self) -> float:
        self._refill()
        return self._tokens

    async def acquire(self) -> None:
        """Take one token, sleeping until one is available."""
        async with self._lock:
            while True:
                self._refill()
                if self._tokens >= 1:
                    self._tokens -= 1
                    return
                await self._sleep((1 - self._tokens) / self.rate)
