"""
Event stream boundary.

Real ingestion (on-chain polling, market APIs, social feeds) lives outside the
core. The loop only depends on ``BaseEventStream``; ``ReplayEventStream`` feeds
recorded events back in timestamp order, which is what the CLI replay and the
integration tests use.
"""
import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable, List, Optional, Union

from moodtrader.events.core import Event, MalformedEventError
from moodtrader.utils.clock import Clock, SystemClock
from moodtrader.utils.logging import get_logger

logger = get_logger(__name__)


class BaseEventStream(ABC):
    """
    Abstract producer of typed events.
    """

    async def initialize(self) -> None:
        """Open connections or files. Failures here are fatal."""

    @abstractmethod
    async def poll(self) -> List[Event]:
        """
        Return the events observed since the previous poll.

        Returns:
            Newly observed events, oldest first.
        """
        pass

    @abstractmethod
    def tracked_tokens(self) -> List[str]:
        """Return the token addresses currently being watched."""
        pass

    @abstractmethod
    def track_token(self, token_address: str) -> None:
        """Add a token to the watch list."""
        pass

    async def shutdown(self) -> None:
        """Release connections or files."""


class ReplayEventStream(BaseEventStream):
    """
    Replays recorded events as the clock passes their timestamps.

    Each ``poll`` returns every not-yet-delivered event whose timestamp is at or
    before the current clock time. Tokens referenced by replayed events are
    tracked automatically.
    """

    def __init__(
        self,
        events: Iterable[Event],
        clock: Optional[Clock] = None,
        tracked_tokens: Optional[Iterable[str]] = None,
    ):
        self.clock = clock or SystemClock()
        self._pending: List[Event] = sorted(events, key=lambda e: e.timestamp)
        self._tracked: List[str] = []
        for token in tracked_tokens or []:
            self.track_token(token)

    @classmethod
    def from_jsonl(
        cls,
        path: Union[str, Path],
        clock: Optional[Clock] = None,
        tracked_tokens: Optional[Iterable[str]] = None,
    ) -> "ReplayEventStream":
        """
        Load a recording with one JSON event per line.

        Malformed lines are logged and skipped.
        """
        events: List[Event] = []
        with open(path, "r", encoding="utf-8") as f:
            for line_no, line in enumerate(f, start=1):
                if not line.strip():
                    continue
                try:
                    events.append(Event.from_dict(json.loads(line)))
                except (json.JSONDecodeError, MalformedEventError) as e:
                    logger.warning(f"Skipping malformed event at {path}:{line_no}: {e}")
        return cls(events, clock=clock, tracked_tokens=tracked_tokens)

    @property
    def remaining(self) -> int:
        """Number of events not yet delivered."""
        return len(self._pending)

    @property
    def first_timestamp(self) -> Optional[int]:
        return self._pending[0].timestamp if self._pending else None

    async def poll(self) -> List[Event]:
        now = self.clock.now_ms()
        due = [e for e in self._pending if e.timestamp <= now]
        self._pending = self._pending[len(due):]
        for event in due:
            if event.token_address:
                self.track_token(event.token_address)
        return due

    def tracked_tokens(self) -> List[str]:
        return list(self._tracked)

    def track_token(self, token_address: str) -> None:
        if token_address not in self._tracked:
            self._tracked.append(token_address)
