"""Injectable "now" sources.

Lock expiry and past-slot filtering read time only through a Clock so
tests can pin and advance it.
"""

from datetime import datetime, timedelta
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime:
        ...


class SystemClock:
    """Wall clock in the single implicit local zone (naive datetimes)."""

    def now(self) -> datetime:
        return datetime.now().replace(microsecond=0)


class ManualClock:
    """A clock that only moves when told to. For tests and scripted demos."""

    def __init__(self, start: datetime) -> None:
        self._now = start

    def now(self) -> datetime:
        return self._now

    def set(self, value: datetime) -> None:
        self._now = value

    def advance(self, **delta: float) -> datetime:
        """Move forward by ``timedelta`` keyword arguments, e.g. ``advance(minutes=6)``."""
        self._now += timedelta(**delta)
        return self._now
