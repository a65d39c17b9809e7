"""
Clock abstractions for real and simulated time.

Every time-dependent component (signal decay, intent cooldown, mood ticks,
position timestamps) reads time through a ``Clock`` so that decay and
cooldown behaviour can be tested deterministically without sleeping.

All timestamps in the core are integer epoch milliseconds.

Example (test or replay usage)::

    clock = ManualClock(start_ms=1_700_000_000_000)
    engine = SignalEngine(config, clock=clock)
    clock.advance(30 * 60 * 1000)  # fast-forward half an hour
"""
import time
from abc import ABC, abstractmethod
from datetime import date, datetime, timezone


class Clock(ABC):
    """Abstract clock interface for real or simulated time."""

    @abstractmethod
    def now_ms(self) -> int:
        """Return the current epoch time in milliseconds."""
        ...

    def today(self) -> date:
        """Return the current UTC calendar date."""
        return datetime.fromtimestamp(self.now_ms() / 1000, tz=timezone.utc).date()


class SystemClock(Clock):
    """Real wall-clock time (production default)."""

    def now_ms(self) -> int:
        return time.time_ns() // 1_000_000


class ManualClock(Clock):
    """
    Deterministically controllable time for tests and replays.

    Time only moves when ``advance`` or ``set`` is called.
    """

    def __init__(self, start_ms: int = 0):
        self._now_ms = int(start_ms)

    def now_ms(self) -> int:
        return self._now_ms

    def advance(self, ms: int) -> int:
        """Move time forward by ``ms`` milliseconds and return the new time."""
        if ms < 0:
            raise ValueError("ManualClock cannot move backwards")
        self._now_ms += int(ms)
        return self._now_ms

    def set(self, now_ms: int) -> None:
        """Jump to an absolute time. Moving backwards is rejected."""
        if now_ms < self._now_ms:
            raise ValueError("ManualClock cannot move backwards")
        self._now_ms = int(now_ms)
