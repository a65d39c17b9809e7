"""
Core data structures for the decision engine.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class IntentType(Enum):
    """What the agent wants to do this cycle."""
    WATCH = "watch"    # Add to watchlist, no action
    ENTER = "enter"    # Open new position
    ADD = "add"        # Add to existing position
    REDUCE = "reduce"  # Reduce position size
    EXIT = "exit"      # Close position completely
    FREEZE = "freeze"  # Stop all trading
    WAIT = "wait"      # Explicit decision to do nothing


# Intent types that never reach an executor
PASSIVE_INTENTS = frozenset({IntentType.WAIT, IntentType.WATCH})
# Intent types that increase exposure
BUY_INTENTS = frozenset({IntentType.ENTER, IntentType.ADD})


@dataclass(frozen=True)
class IntentStateSnapshot:
    """The slice of agent state an intent was formed under."""
    mood: str
    confidence: float
    risk_appetite: float
    mode: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mood": self.mood,
            "confidence": self.confidence,
            "riskAppetite": self.risk_appetite,
            "mode": self.mode,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "IntentStateSnapshot":
        return cls(
            mood=data["mood"],
            confidence=float(data["confidence"]),
            risk_appetite=float(data["riskAppetite"]),
            mode=data.get("mode", "observing"),
        )


@dataclass
class Intent:
    """
    A single action proposal produced by the decision engine.

    Only the risk guardrails write ``risk_approved`` and ``risk_block_reason``;
    every other field is fixed at creation.

    Attributes:
        id: Unique intent identifier.
        timestamp: Epoch ms when the intent was formed.
        type: Intent type.
        primary_reason: Human readable reason.
        state_snapshot: Mood, confidence, risk appetite and mode at decision time.
        token_address: Target token, if any.
        token_symbol: Target symbol, if known.
        size_pct: Percent of capital (ENTER/ADD) or of the position (REDUCE/EXIT).
        supporting_signal_ids: Signals that justified the intent.
        alternatives: What else was considered; informational only.
        probability_threshold: The threshold that was crossed.
        risk_approved: Set by the guardrails.
        risk_block_reason: Set by the guardrails on rejection or adjustment.
    """
    id: str
    timestamp: int
    type: IntentType
    primary_reason: str
    state_snapshot: IntentStateSnapshot
    token_address: Optional[str] = None
    token_symbol: Optional[str] = None
    size_pct: Optional[float] = None
    supporting_signal_ids: List[str] = field(default_factory=list)
    alternatives: List[str] = field(default_factory=list)
    probability_threshold: float = 0.5
    risk_approved: Optional[bool] = None
    risk_block_reason: Optional[str] = None

    @property
    def is_passive(self) -> bool:
        return self.type in PASSIVE_INTENTS

    def to_dict(self) -> Dict[str, Any]:
        """Convert intent to dictionary."""
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "type": self.type.value,
            "tokenAddress": self.token_address,
            "tokenSymbol": self.token_symbol,
            "sizePct": self.size_pct,
            "primaryReason": self.primary_reason,
            "supportingSignals": list(self.supporting_signal_ids),
            "stateSnapshot": self.state_snapshot.to_dict(),
            "alternatives": list(self.alternatives),
            "probabilityThreshold": self.probability_threshold,
            "riskApproved": self.risk_approved,
            "riskBlockReason": self.risk_block_reason,
        }
