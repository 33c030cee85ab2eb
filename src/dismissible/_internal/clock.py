"""Time source shared by the core engine and the rate limiter."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    """Wall-clock time, timezone-aware in UTC.

    Item timestamps and rate limit windows both read from here, so tests
    swap in a fake with a settable ``now()``.
    """

    def now(self) -> datetime:
        return datetime.now(UTC)
