# backend/tutorbook/core/clock.py
"""
Injectable wall clock.

Services never call datetime.now() directly; they read "now" from a Clock so
the change-request cutoff and the completion sweep stay deterministic under
test.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Protocol


class Clock(Protocol):
    """Protocol for clock implementations (real or frozen)."""

    def now(self) -> datetime:
        """Current instant as a timezone-aware UTC datetime."""
        ...


class SystemClock:
    """Real system clock."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock:
    """
    Frozen clock for tests.

    The instant only moves when set() or advance() is called.
    """

    def __init__(self, instant: Optional[datetime] = None):
        self._instant = _as_utc(instant or datetime.now(timezone.utc))

    def now(self) -> datetime:
        return self._instant

    def set(self, instant: datetime) -> None:
        self._instant = _as_utc(instant)

    def advance(self, delta: timedelta) -> None:
        self._instant = self._instant + delta


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


system_clock = SystemClock()
