"""
Core data structures for the signal engine.

A ``Signal`` is a scored, decaying interpretation of recent events for a token
(or for the market in general when ``token_address`` is None).
"""
import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class SignalType(Enum):
    """Types of signals."""
    # Market signals
    EARLY_MOMENTUM = "early_momentum"
    VOLUME_SURGE = "volume_surge"
    LIQUIDITY_PULL = "liquidity_pull"
    PRICE_EXHAUSTION = "price_exhaustion"
    DORMANCY = "dormancy"

    # Social signals
    HYPE_BURST = "hype_burst"
    NARRATIVE_SHIFT = "narrative_shift"
    COMMUNITY_FADE = "community_fade"

    # Pattern signals
    FAMILIAR_PATTERN = "familiar_pattern"
    UNUSUAL_BEHAVIOR = "unusual_behavior"
    FALSE_SIGNAL = "false_signal"


def clamp_unit(value: float) -> float:
    """Clamp ``value`` into [0, 1]."""
    return max(0.0, min(1.0, value))


@dataclass
class DetectorResult:
    """
    Raw output of a single detector before it becomes (or reinforces) a Signal.
    """
    type: SignalType
    confidence: float
    strength: float
    urgency: float
    description: str
    token_address: Optional[str] = None
    token_symbol: Optional[str] = None
    source_event_ids: List[str] = field(default_factory=list)


@dataclass
class Signal:
    """
    A scored, decaying interpretation of recent events.

    Attributes:
        id: Unique signal identifier.
        timestamp: Epoch ms when the signal was first created.
        type: Signal type.
        token_address: Token the signal refers to (None for market-wide).
        token_symbol: Human readable symbol, if known.
        confidence: Current, decayed confidence in [0, 1].
        strength: Magnitude of the underlying pattern in [0, 1].
        urgency: How quickly the signal should be acted on, in [0, 1].
        description: Human readable summary.
        source_event_ids: Events that produced or reinforced the signal.
        expires_at: Epoch ms after which the signal is evicted.
        decay_rate: Confidence multiplier per half-life.
        base_confidence: Confidence at ``decay_anchor``; decay is always
            recomputed from this value, never compounded.
        decay_anchor: Epoch ms from which decay is measured. Equals
            ``timestamp`` until the signal is reinforced.
    """
    id: str
    timestamp: int
    type: SignalType
    confidence: float
    strength: float
    urgency: float
    description: str
    expires_at: int
    decay_rate: float = 0.5
    token_address: Optional[str] = None
    token_symbol: Optional[str] = None
    source_event_ids: List[str] = field(default_factory=list)
    base_confidence: Optional[float] = None
    decay_anchor: Optional[int] = None

    def __post_init__(self):
        self.confidence = clamp_unit(self.confidence)
        self.strength = clamp_unit(self.strength)
        self.urgency = clamp_unit(self.urgency)
        if self.base_confidence is None:
            self.base_confidence = self.confidence
        if self.decay_anchor is None:
            self.decay_anchor = self.timestamp

    @property
    def key(self) -> tuple:
        """Identity used for reinforcement: one live signal per (type, token)."""
        return (self.type, self.token_address)

    @property
    def score(self) -> float:
        """Entry score used by the decision engine."""
        return self.confidence * self.strength * self.urgency

    def copy(self) -> "Signal":
        """Return an independent snapshot of this signal."""
        return copy.deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        """Convert signal to dictionary."""
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "type": self.type.value,
            "tokenAddress": self.token_address,
            "tokenSymbol": self.token_symbol,
            "confidence": self.confidence,
            "strength": self.strength,
            "urgency": self.urgency,
            "description": self.description,
            "sourceEventIds": list(self.source_event_ids),
            "expiresAt": self.expires_at,
            "decayRate": self.decay_rate,
            "baseConfidence": self.base_confidence,
            "decayAnchor": self.decay_anchor,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Signal":
        """Create signal from dictionary."""
        return cls(
            id=data["id"],
            timestamp=int(data["timestamp"]),
            type=SignalType(data["type"]),
            token_address=data.get("tokenAddress"),
            token_symbol=data.get("tokenSymbol"),
            confidence=float(data["confidence"]),
            strength=float(data["strength"]),
            urgency=float(data["urgency"]),
            description=data.get("description", ""),
            source_event_ids=list(data.get("sourceEventIds", [])),
            expires_at=int(data["expiresAt"]),
            decay_rate=float(data.get("decayRate", 0.5)),
            base_confidence=data.get("baseConfidence"),
            decay_anchor=data.get("decayAnchor"),
        )
