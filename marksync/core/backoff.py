"""Shared exponential backoff with jitter.

Used by the GitHub client for transient HTTP failures and by the sync
orchestrator between version-conflict write attempts, so the algorithm lives
in one place.
"""

from __future__ import annotations

import asyncio
import random


def compute_backoff_delay(
    attempt: int,
    *,
    base_delay: float = 0.25,
    max_delay: float = 5.0,
    factor: float = 2.0,
    jitter: float = 0.25,
    rng: random.Random | None = None,
) -> float:
    """Return the delay before retry ``attempt`` (0-indexed).

    Delay formula: ``min(max_delay, base_delay * factor^attempt) * (1 + uniform(-jitter, jitter))``

    Args:
        attempt: Current attempt number (0-indexed).
        base_delay: Base delay in seconds.
        max_delay: Maximum base delay in seconds.
        factor: Growth factor per attempt.
        jitter: Relative jitter; 0 disables randomisation.
        rng: Optional random source (tests pass a seeded instance).
    """
    base = min(max_delay, max(0.0, base_delay * (factor ** max(0, attempt))))
    if jitter <= 0:
        return base
    source = rng or random
    return max(0.0, base * (1.0 + source.uniform(-jitter, jitter)))


async def sleep_backoff(
    attempt: int,
    backoff_base: float = 0.5,
    max_delay: float = 60.0,
) -> None:
    """Sleep with exponential backoff and jitter.

    Args:
        attempt: Current attempt number (0-indexed).
        backoff_base: Base delay in seconds. Defaults to 0.5.
        max_delay: Maximum base delay in seconds. Defaults to 60.0.
    """
    await asyncio.sleep(
        compute_backoff_delay(attempt, base_delay=backoff_base, max_delay=max_delay)
    )
