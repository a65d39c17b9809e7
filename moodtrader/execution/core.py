"""
Core data structures for execution: trade results and positions.
"""
import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional


class TradeStatus(Enum):
    PENDING = "pending"
    EXECUTING = "executing"
    FILLED = "filled"
    PARTIAL = "partial"
    FAILED = "failed"
    CANCELLED = "cancelled"


class TradeDirection(Enum):
    BUY = "buy"
    SELL = "sell"


@dataclass(frozen=True)
class TradeResult:
    """
    Immutable record of one fill (or failed attempt).

    Attributes:
        id: Unique trade identifier.
        timestamp: Epoch ms of the fill attempt.
        intent_id: Intent that requested the trade.
        token_address: Traded token.
        token_symbol: Traded symbol, if known.
        direction: BUY for ENTER/ADD, SELL for REDUCE/EXIT.
        status: Final status.
        requested_amount: Token amount requested.
        filled_amount: Token amount filled.
        price: Fill price including slippage.
        slippage: Slippage applied, in percent.
        realized_pnl: Profit realized by a sell, in capital units.
        tx_signature: On-chain signature for real executors.
        error: Failure description.
        triggered_by_signals: Signal ids that led to the intent.
        agent_mood_at_time: Primary mood when the intent was formed.
    """
    id: str
    timestamp: int
    intent_id: str
    token_address: str
    direction: TradeDirection
    status: TradeStatus
    token_symbol: str = ""
    requested_amount: float = 0.0
    filled_amount: Optional[float] = None
    price: Optional[float] = None
    slippage: Optional[float] = None
    realized_pnl: Optional[float] = None
    tx_signature: Optional[str] = None
    error: Optional[str] = None
    triggered_by_signals: List[str] = field(default_factory=list)
    agent_mood_at_time: str = ""

    @property
    def is_filled(self) -> bool:
        return self.status == TradeStatus.FILLED

    def to_dict(self) -> Dict[str, Any]:
        """Convert trade result to dictionary."""
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "intentId": self.intent_id,
            "tokenAddress": self.token_address,
            "tokenSymbol": self.token_symbol,
            "direction": self.direction.value,
            "status": self.status.value,
            "requestedAmount": self.requested_amount,
            "filledAmount": self.filled_amount,
            "price": self.price,
            "slippage": self.slippage,
            "realizedPnl": self.realized_pnl,
            "txSignature": self.tx_signature,
            "error": self.error,
            "triggeredBySignals": list(self.triggered_by_signals),
            "agentMoodAtTime": self.agent_mood_at_time,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TradeResult":
        """Create trade result from dictionary."""
        return cls(
            id=data["id"],
            timestamp=int(data["timestamp"]),
            intent_id=data.get("intentId", ""),
            token_address=data.get("tokenAddress", ""),
            token_symbol=data.get("tokenSymbol", ""),
            direction=TradeDirection(data["direction"]),
            status=TradeStatus(data["status"]),
            requested_amount=float(data.get("requestedAmount", 0.0)),
            filled_amount=data.get("filledAmount"),
            price=data.get("price"),
            slippage=data.get("slippage"),
            realized_pnl=data.get("realizedPnl"),
            tx_signature=data.get("txSignature"),
            error=data.get("error"),
            triggered_by_signals=list(data.get("triggeredBySignals", [])),
            agent_mood_at_time=data.get("agentMoodAtTime", ""),
        )


@dataclass
class Position:
    """
    An open position in one token. Owned by the executor.
    """
    token_address: str
    amount: float
    average_entry_price: float
    opened_at: int
    last_updated_at: int
    entry_intent_id: str
    token_symbol: str = ""
    current_price: Optional[float] = None
    unrealized_pnl: Optional[float] = None
    unrealized_pnl_pct: Optional[float] = None
    trade_ids: List[str] = field(default_factory=list)

    @property
    def mark_price(self) -> float:
        """Current price, falling back to the average entry price."""
        return self.current_price if self.current_price is not None else self.average_entry_price

    @property
    def market_value(self) -> float:
        return self.amount * self.mark_price

    def mark(self, price: float, now: int) -> None:
        """Mark the position to ``price`` and recompute unrealized PnL."""
        self.current_price = price
        self.unrealized_pnl = (price - self.average_entry_price) * self.amount
        if self.average_entry_price:
            self.unrealized_pnl_pct = (price - self.average_entry_price) / self.average_entry_price * 100
        else:
            self.unrealized_pnl_pct = 0.0
        self.last_updated_at = now

    def copy(self) -> "Position":
        return copy.deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tokenAddress": self.token_address,
            "tokenSymbol": self.token_symbol,
            "amount": self.amount,
            "averageEntryPrice": self.average_entry_price,
            "currentPrice": self.current_price,
            "unrealizedPnL": self.unrealized_pnl,
            "unrealizedPnLPct": self.unrealized_pnl_pct,
            "openedAt": self.opened_at,
            "lastUpdatedAt": self.last_updated_at,
            "entryIntentId": self.entry_intent_id,
            "tradeIds": list(self.trade_ids),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Position":
        return cls(
            token_address=data["tokenAddress"],
            token_symbol=data.get("tokenSymbol", ""),
            amount=float(data["amount"]),
            average_entry_price=float(data["averageEntryPrice"]),
            current_price=data.get("currentPrice"),
            unrealized_pnl=data.get("unrealizedPnL"),
            unrealized_pnl_pct=data.get("unrealizedPnLPct"),
            opened_at=int(data.get("openedAt", 0)),
            last_updated_at=int(data.get("lastUpdatedAt", 0)),
            entry_intent_id=data.get("entryIntentId", ""),
            trade_ids=list(data.get("tradeIds", [])),
        )
