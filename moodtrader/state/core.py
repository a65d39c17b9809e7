"""
Core data structures for the psychological state model.
"""
import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple


class Mood(Enum):
    """Derived mood of the agent."""
    CAUTIOUS = "cautious"
    CONFIDENT = "confident"
    AGGRESSIVE = "aggressive"
    SUSPICIOUS = "suspicious"
    REGRETFUL = "regretful"
    FATIGUED = "fatigued"
    OBSESSED = "obsessed"
    NEUTRAL = "neutral"


class OperationalMode(Enum):
    """Operational mode. Only the state model's ``set_mode`` changes it."""
    ACTIVE = "active"
    OBSERVING = "observing"
    SAFE_MODE = "safe_mode"
    PAUSED = "paused"
    FROZEN = "frozen"


class TokenConvictions:
    """
    Per-token conviction scores in [0, 1].

    Unknown tokens read as ``DEFAULT`` (0.5); reading never inserts.
    """

    DEFAULT = 0.5

    def __init__(self, values: Optional[Mapping[str, float]] = None):
        self._values: Dict[str, float] = {}
        for token, conviction in (values or {}).items():
            self.set(token, conviction)

    def get(self, token_address: str) -> float:
        return self._values.get(token_address, self.DEFAULT)

    def set(self, token_address: str, conviction: float) -> float:
        value = max(0.0, min(1.0, float(conviction)))
        self._values[token_address] = value
        return value

    def adjust(self, token_address: str, delta: float) -> float:
        """Add ``delta`` to the token's conviction, clamped to [0, 1]. Returns the new value."""
        return self.set(token_address, self.get(token_address) + delta)

    def items(self) -> Iterator[Tuple[str, float]]:
        return iter(list(self._values.items()))

    def __contains__(self, token_address: str) -> bool:
        return token_address in self._values

    def __len__(self) -> int:
        return len(self._values)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, TokenConvictions) and self._values == other._values

    def copy(self) -> "TokenConvictions":
        return TokenConvictions(self._values)

    def to_list(self) -> List[Dict[str, Any]]:
        """Serialize as an explicit key/value list."""
        return [{"tokenAddress": token, "conviction": value} for token, value in self._values.items()]

    @classmethod
    def from_list(cls, entries: Iterable[Mapping[str, Any]]) -> "TokenConvictions":
        convictions = cls()
        for entry in entries:
            convictions.set(entry["tokenAddress"], entry["conviction"])
        return convictions


@dataclass
class AgentState:
    """
    The agent's psychological and operational state.

    Attributes:
        timestamp: Epoch ms of the last update.
        confidence: General confidence in its own reads.
        suspicion: Distrust of the market and of incoming signals.
        conviction: General conviction, decays without reinforcement.
        fatigue: Grows while the agent goes days without trading.
        aggression: Willingness to add to positions.
        regret: Residue of recent losses.
        primary_mood: Mood derived from the parameters above.
        secondary_mood: Runner-up mood, if its score exceeds 0.4.
        risk_appetite: Scales entry size.
        mode: Operational mode.
        recent_win_streak: Consecutive winning trades.
        recent_loss_streak: Consecutive losing trades.
        last_trade_timestamp: Epoch ms of the last trade outcome.
        days_since_last_trade: Recomputed on every tick.
        token_convictions: Per-token conviction scores.
        internal_monologue: Free-form note for external narrators.
    """
    timestamp: int = 0
    confidence: float = 0.5
    suspicion: float = 0.5
    conviction: float = 0.5
    fatigue: float = 0.0
    aggression: float = 0.3
    regret: float = 0.0
    primary_mood: Mood = Mood.NEUTRAL
    secondary_mood: Optional[Mood] = None
    risk_appetite: float = 0.4
    mode: OperationalMode = OperationalMode.OBSERVING
    recent_win_streak: int = 0
    recent_loss_streak: int = 0
    last_trade_timestamp: Optional[int] = None
    days_since_last_trade: float = 0.0
    token_convictions: TokenConvictions = field(default_factory=TokenConvictions)
    internal_monologue: Optional[str] = None

    def copy(self) -> "AgentState":
        """Return an independent snapshot."""
        return copy.deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        """Convert state to a JSON-serializable dictionary."""
        return {
            "timestamp": self.timestamp,
            "confidence": self.confidence,
            "suspicion": self.suspicion,
            "conviction": self.conviction,
            "fatigue": self.fatigue,
            "aggression": self.aggression,
            "regret": self.regret,
            "primaryMood": self.primary_mood.value,
            "secondaryMood": self.secondary_mood.value if self.secondary_mood else None,
            "riskAppetite": self.risk_appetite,
            "mode": self.mode.value,
            "recentWinStreak": self.recent_win_streak,
            "recentLossStreak": self.recent_loss_streak,
            "lastTradeTimestamp": self.last_trade_timestamp,
            "daysSinceLastTrade": self.days_since_last_trade,
            "tokenConvictions": self.token_convictions.to_list(),
            "internalMonologue": self.internal_monologue,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AgentState":
        """Create state from a persisted dictionary. Missing fields keep their defaults."""
        defaults = cls()
        secondary = data.get("secondaryMood")
        return cls(
            timestamp=int(data.get("timestamp", defaults.timestamp)),
            confidence=float(data.get("confidence", defaults.confidence)),
            suspicion=float(data.get("suspicion", defaults.suspicion)),
            conviction=float(data.get("conviction", defaults.conviction)),
            fatigue=float(data.get("fatigue", defaults.fatigue)),
            aggression=float(data.get("aggression", defaults.aggression)),
            regret=float(data.get("regret", defaults.regret)),
            primary_mood=Mood(data.get("primaryMood", defaults.primary_mood.value)),
            secondary_mood=Mood(secondary) if secondary else None,
            risk_appetite=float(data.get("riskAppetite", defaults.risk_appetite)),
            mode=OperationalMode(data.get("mode", defaults.mode.value)),
            recent_win_streak=int(data.get("recentWinStreak", 0)),
            recent_loss_streak=int(data.get("recentLossStreak", 0)),
            last_trade_timestamp=data.get("lastTradeTimestamp"),
            days_since_last_trade=float(data.get("daysSinceLastTrade", 0.0)),
            token_convictions=TokenConvictions.from_list(data.get("tokenConvictions", [])),
            internal_monologue=data.get("internalMonologue"),
        )
