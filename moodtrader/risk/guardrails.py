"""
Risk guardrails: the only deterministic authority allowed to veto or shrink an
intent before it reaches execution.

Guardrails never change an intent's type. They approve, reject, or approve
with a smaller size. Safe mode is a pure function of the accumulated daily PnL
and is re-evaluated on every check.
"""
from collections import deque
from dataclasses import dataclass
from typing import Any, Deque, Dict, Iterable, List, Mapping, Optional, Sequence

from moodtrader.config.settings import RiskSettings
from moodtrader.decision.core import BUY_INTENTS, Intent, IntentType
from moodtrader.execution.core import Position, TradeResult
from moodtrader.state.core import OperationalMode
from moodtrader.utils.logging import get_logger

logger = get_logger(__name__)

HALTED_MODES = frozenset({OperationalMode.PAUSED, OperationalMode.FROZEN})
SIZED_INTENTS = BUY_INTENTS | {IntentType.REDUCE}


@dataclass(frozen=True)
class RiskCheckResult:
    """Outcome of a guardrail check."""
    approved: bool
    reason: Optional[str] = None
    adjusted_size_pct: Optional[float] = None


def calculate_exposure(positions: Sequence[Position], capital: float) -> float:
    """Total position market value as a percentage of ``capital``."""
    total_value = sum(p.market_value for p in positions)
    if capital <= 0:
        return float("inf") if total_value > 0 else 0.0
    return total_value / capital * 100


class RiskGuardrails:
    """
    Hard limits on position size, exposure, daily trades and daily loss.

    ``reset_daily`` must be called by the owner of the clock at every calendar
    day boundary; the guardrails have no clock of their own.
    """

    def __init__(self, config: Optional[RiskSettings] = None, starting_capital: float = 0.0):
        """
        Initialize the guardrails.

        Args:
            config: Risk limits
            starting_capital: Portfolio value at the start of the current day;
                the daily loss percentage is measured against it
        """
        self.config = config or RiskSettings()
        self.day_start_capital = float(starting_capital)
        self._daily_trades: List[TradeResult] = []
        self._daily_pnl = 0.0
        self._ledger: Deque[TradeResult] = deque(maxlen=self.config.TRADE_LEDGER_SIZE)

        self.stats = {
            'intents_checked': 0,
            'intents_approved': 0,
            'intents_rejected': 0,
            'intents_adjusted': 0,
        }

    @property
    def daily_pnl(self) -> float:
        return self._daily_pnl

    @property
    def daily_trade_count(self) -> int:
        return len(self._daily_trades)

    @property
    def daily_loss_pct(self) -> float:
        """Today's realized loss as a percentage of the day's starting capital (0 when in profit)."""
        if self.day_start_capital <= 0:
            return 0.0
        return max(0.0, -self._daily_pnl) / self.day_start_capital * 100

    def check_intent(
        self,
        intent: Intent,
        positions: Sequence[Position],
        capital: float,
        mode: Optional[OperationalMode] = None,
    ) -> RiskCheckResult:
        """
        Check whether an intent is allowed, possibly shrinking its size.

        The intent's ``risk_approved`` and ``risk_block_reason`` fields are set
        from the result.

        Args:
            intent: Intent to check
            positions: Open positions (snapshots)
            capital: Free capital
            mode: Current operational mode

        Returns:
            RiskCheckResult
        """
        self.stats['intents_checked'] += 1
        result = self._check(intent, positions, capital, mode)

        intent.risk_approved = result.approved
        intent.risk_block_reason = result.reason

        if not result.approved:
            self.stats['intents_rejected'] += 1
            logger.warning(f"Risk rejected {intent.type.value} {intent.token_address or ''}: {result.reason}")
        else:
            self.stats['intents_approved'] += 1
            if result.adjusted_size_pct is not None:
                self.stats['intents_adjusted'] += 1
                logger.info(f"Risk adjusted {intent.type.value} {intent.token_address}: {result.reason}")
        return result

    def _check(
        self,
        intent: Intent,
        positions: Sequence[Position],
        capital: float,
        mode: Optional[OperationalMode],
    ) -> RiskCheckResult:
        if intent.type in (IntentType.WAIT, IntentType.WATCH):
            return RiskCheckResult(approved=True)

        if mode in HALTED_MODES:
            return RiskCheckResult(approved=False, reason=f"Trading halted: agent is {mode.value}")

        limit = self.config.DAILY_TRADE_LIMIT
        if limit is not None and len(self._daily_trades) >= limit:
            return RiskCheckResult(approved=False, reason="Daily trade limit reached")

        if self.should_enter_safe_mode():
            return RiskCheckResult(
                approved=False,
                reason=f"Safe mode active due to losses ({self.daily_loss_pct:.1f}% daily loss)",
            )

        adjusted: Optional[float] = None
        adjust_reason: Optional[str] = None

        if intent.type in SIZED_INTENTS and intent.size_pct is not None and intent.size_pct <= 0:
            return RiskCheckResult(approved=False, reason=f"Invalid size {intent.size_pct:g}%")

        if intent.type in BUY_INTENTS:
            if mode == OperationalMode.SAFE_MODE:
                return RiskCheckResult(approved=False, reason="Safe mode active: no new exposure")

            if intent.size_pct is None:
                return RiskCheckResult(approved=False, reason="No size specified")

            max_allowed = self.config.MAX_POSITION_SIZE_PCT
            if intent.size_pct > max_allowed:
                adjusted = max_allowed
                adjust_reason = f"Size reduced from {intent.size_pct:g}% to {max_allowed:g}%"

        if intent.type == IntentType.ENTER:
            exposure = calculate_exposure(positions, capital)
            if exposure >= self.config.MAX_TOTAL_EXPOSURE_PCT:
                return RiskCheckResult(
                    approved=False,
                    reason=f"Maximum exposure reached ({exposure:.1f}%)",
                )

        return RiskCheckResult(approved=True, reason=adjust_reason, adjusted_size_pct=adjusted)

    def record_trade(self, trade: TradeResult) -> None:
        """Append a trade to the daily ledger and accumulate its realized PnL."""
        self._daily_trades.append(trade)
        self._ledger.append(trade)
        if trade.realized_pnl is not None:
            self._daily_pnl += trade.realized_pnl

    def should_enter_safe_mode(self) -> bool:
        """True once today's realized loss reaches the daily loss limit."""
        return self.daily_loss_pct >= self.config.MAX_DAILY_LOSS_PCT

    def reset_daily(self, starting_capital: Optional[float] = None) -> None:
        """
        Clear the daily ledger and PnL accumulator.

        Args:
            starting_capital: Portfolio value at the start of the new day
        """
        self._daily_trades = []
        self._daily_pnl = 0.0
        if starting_capital is not None:
            self.day_start_capital = float(starting_capital)
        logger.info(f"Daily risk counters reset (starting capital {self.day_start_capital:.4f})")

    def get_ledger(self) -> List[TradeResult]:
        """Return the trailing trade ledger, oldest first."""
        return list(self._ledger)

    def restore_ledger(self, trades: Iterable[TradeResult]) -> None:
        """Reload the trailing ledger from persistence. Daily counters are not affected."""
        self._ledger.clear()
        self._ledger.extend(trades)

    def daily_snapshot(self) -> Dict[str, Any]:
        """Today's counters in a JSON-serializable form."""
        return {
            "dayStartCapital": self.day_start_capital,
            "dailyPnl": self._daily_pnl,
            "dailyTrades": [t.to_dict() for t in self._daily_trades],
        }

    def restore_daily(self, data: Mapping[str, Any]) -> None:
        """Reload counters saved by ``daily_snapshot`` earlier the same day."""
        self.day_start_capital = float(data["dayStartCapital"])
        self._daily_pnl = float(data.get("dailyPnl", 0.0))
        self._daily_trades = [TradeResult.from_dict(t) for t in data.get("dailyTrades", [])]
