"""
Injectable time sources.

Payment dates and transfer timestamps come from a ``Clock`` passed to the
service, never from ``datetime.now()`` inside kernel code.  Both clocks
return timezone-aware UTC datetimes.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone


class Clock(ABC):
    @abstractmethod
    def now(self) -> datetime:
        ...


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Frozen clock for tests and seeding.

    ``now()`` keeps returning the start time until ``advance()`` moves it
    forward.  A naive start time is taken as UTC.
    """

    def __init__(self, start: datetime):
        if start.tzinfo is None:
            start = start.replace(tzinfo=timezone.utc)
        self._current = start

    def now(self) -> datetime:
        return self._current

    def advance(self, seconds: float) -> datetime:
        self._current += timedelta(seconds=seconds)
        return self._current
