"""
Clock -- Deterministic time abstraction.

Responsibility:
    Provides an injectable clock so that derivation, validation and Gantt
    code never call ``date.today()`` directly.  Validation needs the current
    calendar year (approval year rule) and the form session seeds new
    activities with today / tomorrow.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O (except SystemClock,
    which is the one sanctioned I/O boundary for time).
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta, timezone


class Clock(ABC):
    """
    Abstract clock interface.

    Contract:
        Components that need the current date receive a Clock instance via
        constructor or keyword injection.
    """

    @abstractmethod
    def now(self) -> datetime:
        """Get the current time (timezone-aware)."""
        ...

    def today(self) -> date:
        """Get the current calendar date."""
        return self.now().date()

    def current_year(self) -> int:
        """Get the current calendar year."""
        return self.today().year


class SystemClock(Clock):
    """Production clock that returns actual local system time."""

    def now(self) -> datetime:
        return datetime.now().astimezone()


class DeterministicClock(Clock):
    """
    Test clock with controlled time.

    ``now()`` returns the same value on repeated calls until ``advance()``
    or ``set_time()`` is called.
    """

    def __init__(self, fixed_time: datetime | None = None):
        self._fixed_time = fixed_time or datetime(
            2025, 6, 15, 12, 0, 0, tzinfo=timezone.utc
        )
        self._advance = timedelta(0)

    def now(self) -> datetime:
        return self._fixed_time + self._advance

    def set_time(self, time: datetime) -> None:
        """Set the clock to a specific time."""
        self._fixed_time = time
        self._advance = timedelta(0)

    def advance(self, days: int = 1) -> None:
        """Advance the clock by whole days."""
        self._advance += timedelta(days=days)
