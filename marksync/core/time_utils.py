from __future__ import annotations

from datetime import UTC, datetime


def utc_now() -> datetime:
    """Return a timezone-aware UTC datetime."""
    return datetime.now(UTC)


def now_ms() -> int:
    """Current time as integer milliseconds since the epoch."""
    return int(utc_now().timestamp() * 1000)


def ms_to_datetime(value: int) -> datetime:
    """Convert epoch milliseconds to an aware UTC datetime."""
    return datetime.fromtimestamp(value / 1000, tz=UTC)


def utc_now_iso() -> str:
    """ISO-8601 timestamp (UTC, millisecond precision) used in document headers."""
    return utc_now().isoformat(timespec="milliseconds").replace("+00:00", "Z")
