from __future__ import annotations

import random
from unittest.mock import AsyncMock, patch

import pytest

from marksync.core.backoff import compute_backoff_delay, sleep_backoff


class TestComputeBackoffDelay:
    def test_exponential_growth_without_jitter(self) -> None:
        delays = [
            compute_backoff_delay(n, base_delay=0.25, factor=3.0, max_delay=100.0, jitter=0)
            for n in range(4)
        ]
        assert delays == [0.25, 0.75, 2.25, 6.75]

    def test_capped_at_max_delay(self) -> None:
        assert compute_backoff_delay(10, base_delay=1.0, max_delay=5.0, jitter=0) == 5.0

    def test_jitter_stays_within_bounds(self) -> None:
        rng = random.Random(7)
        for attempt in range(6):
            base = min(5.0, 0.25 * 3.0**attempt)
            delay = compute_backoff_delay(
                attempt, base_delay=0.25, max_delay=5.0, factor=3.0, jitter=0.25, rng=rng
            )
            assert base * 0.75 <= delay <= base * 1.25

    def test_seeded_rng_is_deterministic(self) -> None:
        first = compute_backoff_delay(2, rng=random.Random(42))
        second = compute_backoff_delay(2, rng=random.Random(42))
        assert first == second

    def test_negative_attempt_treated_as_zero(self) -> None:
        assert compute_backoff_delay(-3, base_delay=0.5, jitter=0) == 0.5


@pytest.mark.asyncio
async def test_sleep_backoff_sleeps_computed_delay() -> None:
    with patch("marksync.core.backoff.asyncio.sleep", new_callable=AsyncMock) as sleep:
        await sleep_backoff(0, backoff_base=0.0)
    sleep.assert_awaited_once_with(0.0)
