"""
Paper trading simulator.

Simulates fills against a last-known price book without real settlement. The
simulator owns the position map and the free capital; every other component
only sees snapshots. The portfolio stays consistent at all times:

    total value = free capital + sum(amount * mark price)
"""
from typing import Any, Dict, List, Mapping, Optional

from moodtrader.config.settings import ExecutionSettings
from moodtrader.decision.core import Intent, IntentType
from moodtrader.utils.clock import Clock, SystemClock
from moodtrader.utils.logging import get_logger
from .base import BaseExecutor, direction_for, failed_result
from .core import Position, TradeResult, TradeStatus

logger = get_logger(__name__)


class SimulationError(Exception):
    """Raised inside the simulator when an intent cannot be filled."""


class InsufficientCapitalError(SimulationError):
    """Raised when a buy needs more capital than is free."""


class PositionNotFoundError(SimulationError):
    """Raised when ADD/REDUCE/EXIT targets a token without a position."""


class PaperTradingSimulator(BaseExecutor):
    """
    Simulated executor with slippage and a single position per token.
    """

    def __init__(self, config: Optional[ExecutionSettings] = None, clock: Optional[Clock] = None):
        """
        Initialize the simulator.

        Args:
            config: Initial capital and slippage
            clock: Time source for trade and position timestamps
        """
        self.config = config or ExecutionSettings()
        self.clock = clock or SystemClock()
        self.capital: float = float(self.config.INITIAL_CAPITAL)
        self._positions: Dict[str, Position] = {}
        self._prices: Dict[str, float] = {}
        self._trade_history: List[TradeResult] = []
        self._trade_counter = 0

    # -- executor interface ------------------------------------------------

    async def execute(self, intent: Intent) -> TradeResult:
        """
        Execute an intent in simulation.

        Failures (missing position, insufficient capital, unknown price) are
        returned as FAILED results; nothing is raised.
        """
        now = self.clock.now_ms()
        self._trade_counter += 1
        trade_id = f"sim_trade_{now}_{self._trade_counter}"

        try:
            result = self._execute(intent, trade_id, now)
        except SimulationError as e:
            result = failed_result(intent, str(e), now, trade_id=trade_id)
            logger.warning(f"Simulated {intent.type.value} failed for {intent.token_address}: {e}")
        else:
            if result.is_filled:
                logger.info(
                    f"Simulated {intent.type.value} {result.token_symbol or result.token_address}: "
                    f"amount={result.filled_amount:.6f} price={result.price:.6f} capital={self.capital:.4f}"
                )

        self._trade_history.append(result)
        return result

    async def get_balance(self) -> float:
        return self.capital

    def get_capital(self) -> float:
        return self.capital

    def get_positions(self) -> List[Position]:
        return [p.copy() for p in self._positions.values()]

    def get_position(self, token_address: str) -> Optional[Position]:
        position = self._positions.get(token_address)
        return position.copy() if position else None

    def get_total_value(self) -> float:
        """Free capital plus the mark-to-market value of every open position."""
        return self.capital + sum(p.market_value for p in self._positions.values())

    def get_trade_history(self) -> List[TradeResult]:
        return list(self._trade_history)

    # -- prices ------------------------------------------------------------

    def set_price(self, token_address: str, price: float) -> None:
        """Record the latest market price for a token."""
        if price is None or price <= 0:
            raise ValueError(f"Invalid price for {token_address}: {price!r}")
        self._prices[token_address] = float(price)

    def get_price(self, token_address: str) -> Optional[float]:
        return self._prices.get(token_address)

    def update_positions(self, prices: Mapping[str, float]) -> None:
        """
        Record fresh prices and recompute unrealized PnL for open positions.

        Capital is never touched. Invalid prices are skipped; positions without
        a fresh price keep their previous mark.
        """
        now = self.clock.now_ms()
        for token_address, price in prices.items():
            try:
                self.set_price(token_address, price)
            except (TypeError, ValueError) as e:
                logger.warning(f"Skipping price update: {e}")

        for token_address, position in self._positions.items():
            price = self._prices.get(token_address)
            if token_address in prices and price is not None:
                position.mark(price, now)

    # -- fills -------------------------------------------------------------

    def _execute(self, intent: Intent, trade_id: str, now: int) -> TradeResult:
        if intent.type == IntentType.ENTER:
            return self._simulate_enter(intent, trade_id, now)
        if intent.type == IntentType.EXIT:
            return self._simulate_exit(intent, trade_id, now)
        if intent.type == IntentType.ADD:
            return self._simulate_add(intent, trade_id, now)
        if intent.type == IntentType.REDUCE:
            return self._simulate_reduce(intent, trade_id, now)
        return failed_result(
            intent,
            f"Cannot execute {intent.type.value} in simulator",
            now,
            trade_id=trade_id,
            status=TradeStatus.CANCELLED,
        )

    @property
    def _slippage(self) -> float:
        return self.config.SLIPPAGE_PCT / 100

    def _require_token(self, intent: Intent, need_size: bool = True) -> str:
        if not intent.token_address or (need_size and intent.size_pct is None):
            raise SimulationError("Missing token address or size")
        if need_size and intent.size_pct <= 0:
            raise SimulationError(f"Invalid size {intent.size_pct:g}%: must be positive")
        return intent.token_address

    def _require_position(self, token_address: str, action: str) -> Position:
        position = self._positions.get(token_address)
        if position is None:
            raise PositionNotFoundError(f"No position to {action}")
        return position

    def _market_price(self, token_address: str) -> float:
        price = self._prices.get(token_address)
        if price is None:
            raise SimulationError(f"No price available for {token_address}")
        return price

    def _invest_amount(self, size_pct: float) -> float:
        invest = self.capital * (size_pct / 100)
        if invest > self.capital:
            raise InsufficientCapitalError(
                f"Insufficient capital: need {invest:.4f}, have {self.capital:.4f}"
            )
        return invest

    def _fill(
        self,
        intent: Intent,
        trade_id: str,
        now: int,
        amount: float,
        price: float,
        realized_pnl: Optional[float] = None,
    ) -> TradeResult:
        return TradeResult(
            id=trade_id,
            timestamp=now,
            intent_id=intent.id,
            token_address=intent.token_address or "",
            token_symbol=intent.token_symbol or "",
            direction=direction_for(intent),
            status=TradeStatus.FILLED,
            requested_amount=amount,
            filled_amount=amount,
            price=price,
            slippage=self.config.SLIPPAGE_PCT,
            realized_pnl=realized_pnl,
            triggered_by_signals=list(intent.supporting_signal_ids),
            agent_mood_at_time=intent.state_snapshot.mood,
        )

    def _simulate_enter(self, intent: Intent, trade_id: str, now: int) -> TradeResult:
        token = self._require_token(intent)
        if token in self._positions:
            raise SimulationError(f"Position already open for {token}")

        invest = self._invest_amount(intent.size_pct)
        market_price = self._market_price(token)
        actual_price = market_price * (1 + self._slippage)
        amount = invest / actual_price

        position = Position(
            token_address=token,
            token_symbol=intent.token_symbol or "",
            amount=amount,
            average_entry_price=actual_price,
            opened_at=now,
            last_updated_at=now,
            entry_intent_id=intent.id,
            trade_ids=[trade_id],
        )
        position.mark(market_price, now)
        self._positions[token] = position
        self.capital -= invest

        return self._fill(intent, trade_id, now, amount, actual_price)

    def _simulate_exit(self, intent: Intent, trade_id: str, now: int) -> TradeResult:
        token = self._require_token(intent, need_size=False)
        position = self._require_position(token, "exit")

        actual_price = self._market_price(token) * (1 - self._slippage)
        amount = position.amount
        realized = (actual_price - position.average_entry_price) * amount

        self.capital += amount * actual_price
        del self._positions[token]

        return self._fill(intent, trade_id, now, amount, actual_price, realized_pnl=realized)

    def _simulate_add(self, intent: Intent, trade_id: str, now: int) -> TradeResult:
        token = self._require_token(intent)
        position = self._require_position(token, "add to")

        invest = self._invest_amount(intent.size_pct)
        market_price = self._market_price(token)
        actual_price = market_price * (1 + self._slippage)
        additional = invest / actual_price

        total_cost = position.amount * position.average_entry_price + invest
        total_amount = position.amount + additional
        position.average_entry_price = total_cost / total_amount
        position.amount = total_amount
        position.trade_ids.append(trade_id)
        position.mark(market_price, now)
        self.capital -= invest

        return self._fill(intent, trade_id, now, additional, actual_price)

    def _simulate_reduce(self, intent: Intent, trade_id: str, now: int) -> TradeResult:
        token = self._require_token(intent)
        position = self._require_position(token, "reduce")

        market_price = self._market_price(token)
        actual_price = market_price * (1 - self._slippage)
        reduce_amount = position.amount * (min(intent.size_pct, 100.0) / 100)
        realized = (actual_price - position.average_entry_price) * reduce_amount

        self.capital += reduce_amount * actual_price
        # A fully reduced position stays open at zero amount
        position.amount -= reduce_amount
        position.trade_ids.append(trade_id)
        position.mark(market_price, now)

        return self._fill(intent, trade_id, now, reduce_amount, actual_price, realized_pnl=realized)

    # -- persistence -------------------------------------------------------

    def snapshot(self) -> Dict[str, Any]:
        """Return a JSON-serializable snapshot of capital, positions and prices."""
        return {
            "capital": self.capital,
            "positions": [p.to_dict() for p in self._positions.values()],
            "prices": dict(self._prices),
        }

    def restore(self, data: Mapping[str, Any]) -> None:
        """Restore capital, positions and prices from ``snapshot`` output."""
        self.capital = float(data.get("capital", self.config.INITIAL_CAPITAL))
        self._positions = {}
        for raw in data.get("positions", []):
            position = Position.from_dict(raw)
            self._positions[position.token_address] = position
        self._prices = {k: float(v) for k, v in (data.get("prices") or {}).items()}
        logger.info(
            f"Restored simulator: capital={self.capital:.4f}, positions={len(self._positions)}"
        )
