"""
Clock -- injectable time source.

Responsibility:
    Every timestamp the kernel writes (item history, delete requests, barcode
    month, unique-id year) and every "today" window the reports compute comes
    from a Clock passed in by the caller.  Nothing in services/ or selectors/
    calls ``datetime.now()`` directly.

Architecture position:
    Kernel > Domain -- pure, zero I/O (SystemClock is the one sanctioned
    boundary to the wall clock).
"""

from abc import ABC, abstractmethod
from datetime import UTC, datetime, timedelta


class Clock(ABC):
    """
    Abstract clock interface.

    Guarantees:
        ``now()`` returns a timezone-aware UTC ``datetime``.
    """

    @abstractmethod
    def now(self) -> datetime:
        """Current instant in UTC."""
        ...


class SystemClock(Clock):
    """Production clock backed by the system time."""

    def now(self) -> datetime:
        return datetime.now(UTC)


class DeterministicClock(Clock):
    """
    Test clock with controlled time.

    ``now()`` returns the same instant until ``advance()`` or ``set_time()``
    moves it.
    """

    DEFAULT_TIME = datetime(2024, 1, 1, 12, 0, 0, tzinfo=UTC)

    def __init__(self, fixed_time: datetime | None = None):
        self._current = (fixed_time or self.DEFAULT_TIME).astimezone(UTC)

    def now(self) -> datetime:
        return self._current

    def set_time(self, moment: datetime) -> None:
        """Jump to ``moment`` (must be timezone-aware)."""
        if moment.tzinfo is None:
            raise ValueError("DeterministicClock requires an aware datetime")
        self._current = moment.astimezone(UTC)

    def advance(self, seconds: float | None = None, **delta: float) -> datetime:
        """Move forward by ``seconds`` plus any ``timedelta`` keyword parts (1s if neither)."""
        if seconds is None:
            seconds = 0 if delta else 1
        self._current += timedelta(seconds=seconds, **delta)
        return self._current
