"""Injectable time source.

All waiting-list timestamps are naive UTC. Services never call
``datetime.utcnow()`` directly so that expiry and booking windows can be
driven deterministically in tests.
"""

from datetime import datetime, timedelta, timezone
from typing import Protocol


class Clock(Protocol):
    """Anything that can tell the current UTC time."""

    def now(self) -> datetime:
        ...


class SystemClock:
    """Wall clock, naive UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc).replace(tzinfo=None)


class FixedClock:
    """Clock frozen at a given instant until advanced."""

    def __init__(self, instant: datetime):
        self._instant = instant

    def now(self) -> datetime:
        return self._instant

    def set(self, instant: datetime) -> None:
        self._instant = instant

    def advance(self, **delta) -> datetime:
        """Move forward by ``timedelta(**delta)`` and return the new time."""
        self._instant = self._instant + timedelta(**delta)
        return self._instant


# Process-wide default
system_clock = SystemClock()


def utcnow() -> datetime:
    """Naive UTC now, for column defaults."""
    return system_clock.now()
