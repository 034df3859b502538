"""
Clock -- injectable source of "now".

Services never call ``datetime.now()`` or ``date.today()`` themselves:
contract periods, cancellation and renewal timestamps, link times and
audit timestamps all come from the coordinator's clock.  All values are
timezone-aware UTC.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta, timezone


class Clock(ABC):
    @abstractmethod
    def now(self) -> datetime: ...

    def today(self) -> date:
        return self.now().date()


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Clock for tests.  Time stands still until moved explicitly, so two
    calls to ``now()`` in the same test agree.
    """

    DEFAULT_START = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __init__(self, start: datetime | None = None):
        self._current = start or self.DEFAULT_START

    def now(self) -> datetime:
        return self._current

    def advance(self, seconds: int = 1) -> None:
        self._current += timedelta(seconds=seconds)

    def advance_days(self, days: int) -> None:
        self._current += timedelta(days=days)
