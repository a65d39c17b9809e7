"""
Executor interface.

Any executor (the paper simulator or a real DEX executor) accepts an approved
intent and returns a ``TradeResult``. Failures are reported through the result,
never raised past the executor boundary.
"""
import asyncio
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional

from moodtrader.decision.core import BUY_INTENTS, Intent
from moodtrader.utils.clock import Clock, SystemClock
from moodtrader.utils.logging import get_logger
from .core import Position, TradeDirection, TradeResult, TradeStatus

logger = get_logger(__name__)


def direction_for(intent: Intent) -> TradeDirection:
    return TradeDirection.BUY if intent.type in BUY_INTENTS else TradeDirection.SELL


def failed_result(
    intent: Intent,
    error: str,
    now: int,
    trade_id: Optional[str] = None,
    status: TradeStatus = TradeStatus.FAILED,
) -> TradeResult:
    """Build the result reported for an intent that could not be filled."""
    return TradeResult(
        id=trade_id or f"trade_{now}_{intent.id}",
        timestamp=now,
        intent_id=intent.id,
        token_address=intent.token_address or "",
        token_symbol=intent.token_symbol or "",
        direction=direction_for(intent),
        status=status,
        error=error,
        triggered_by_signals=list(intent.supporting_signal_ids),
        agent_mood_at_time=intent.state_snapshot.mood,
    )


class BaseExecutor(ABC):
    """
    Abstract base class for executors.
    """

    async def initialize(self) -> None:
        """Open wallet and venue connections. Failures here are fatal."""

    @abstractmethod
    async def execute(self, intent: Intent) -> TradeResult:
        """
        Execute an approved intent.

        Args:
            intent: Intent approved by the risk guardrails

        Returns:
            The trade result; failures are reported with status FAILED
        """
        pass

    @abstractmethod
    async def get_balance(self) -> float:
        """Return the free capital available for new positions."""
        pass

    @abstractmethod
    def get_positions(self) -> List[Position]:
        """Return snapshots of the open positions."""
        pass

    def update_positions(self, prices: Mapping[str, float]) -> None:
        """Mark open positions to the given prices. Executors that track prices themselves ignore this."""

    def snapshot(self) -> Optional[Dict[str, Any]]:
        """Return persistable portfolio state, or None when the venue is the source of truth."""
        return None

    def restore(self, data: Mapping[str, Any]) -> None:
        """Restore portfolio state produced by ``snapshot``."""

    async def shutdown(self) -> None:
        """Release connections."""


class TimeoutExecutor(BaseExecutor):
    """
    Wraps an executor so that no call can hold the tick loop indefinitely.

    A timed-out ``execute`` is reported as a FAILED trade. The underlying call
    is cancelled.
    """

    def __init__(self, inner: BaseExecutor, timeout_seconds: float, clock: Optional[Clock] = None):
        self.inner = inner
        self.timeout_seconds = timeout_seconds
        self.clock = clock or SystemClock()

    async def initialize(self) -> None:
        await asyncio.wait_for(self.inner.initialize(), timeout=self.timeout_seconds)

    async def execute(self, intent: Intent) -> TradeResult:
        try:
            return await asyncio.wait_for(self.inner.execute(intent), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning(f"Execution of intent {intent.id} timed out after {self.timeout_seconds}s")
            return failed_result(
                intent,
                f"Execution timed out after {self.timeout_seconds}s",
                self.clock.now_ms(),
            )

    async def get_balance(self) -> float:
        return await asyncio.wait_for(self.inner.get_balance(), timeout=self.timeout_seconds)

    def get_positions(self) -> List[Position]:
        return self.inner.get_positions()

    def update_positions(self, prices: Mapping[str, float]) -> None:
        self.inner.update_positions(prices)

    def snapshot(self) -> Optional[Dict[str, Any]]:
        return self.inner.snapshot()

    def restore(self, data: Mapping[str, Any]) -> None:
        self.inner.restore(data)

    async def shutdown(self) -> None:
        await self.inner.shutdown()
