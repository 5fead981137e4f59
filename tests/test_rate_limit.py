from __future__ import annotations

from typing import List

import pytest

from app.core.rate_limit import TokenBucket


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


async def test_burst_up_to_capacity_does_not_wait() -> None:
    clock = FakeClock()
    bucket = TokenBucket(3, 1.0, clock=clock, sleep=clock.sleep)

    for _ in range(3):
        await bucket.acquire()
    assert clock.sleeps == []


async def test_empty_bucket_waits_for_refill() -> None:
    clock = FakeClock()
    bucket = TokenBucket(10, 1.0, clock=clock, sleep=clock.sleep)

    for _ in range(11):
        await bucket.acquire()
    assert clock.sleeps == [pytest.approx(0.1)]


async def test_tokens_refill_over_time() -> None:
    clock = FakeClock()
    bucket = TokenBucket(2, 2.0, clock=clock, sleep=clock.sleep)
    await bucket.acquire()
    await bucket.acquire()
    assert bucket.available == 0

    clock.now += 1.0
    assert bucket.available == pytest.approx(1.0)
    clock.now += 10.0
    assert bucket.available == 2.0


@pytest.mark.parametrize("max_events, period", [(0, 1.0), (5, 0.0)])
def test_invalid_configuration(max_events: int, period: float) -> None:
    with pytest.raises(ValueError):
        TokenBucket(max_events, period)
