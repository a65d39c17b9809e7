"""
Psychological state model.

Maintains a slowly evolving mood and risk posture that modulates decision
thresholds. This is the only component with explicit temporal decay toward a
baseline: emotions fade on every tick and trade outcomes nudge them back.
"""
from typing import List, Optional, Tuple

from moodtrader.config.settings import StateSettings
from moodtrader.execution.core import TradeResult, TradeStatus
from moodtrader.utils.clock import Clock, SystemClock
from moodtrader.utils.logging import get_logger
from .core import AgentState, Mood, OperationalMode

logger = get_logger(__name__)

MS_PER_DAY = 1000 * 60 * 60 * 24
CONFIDENCE_BASELINE = 0.5
SECONDARY_MOOD_THRESHOLD = 0.4


def derive_primary_mood(state: AgentState) -> Mood:
    """Fixed priority cascade; the first matching rule wins."""
    if state.regret > 0.6:
        return Mood.REGRETFUL
    if state.fatigue > 0.7:
        return Mood.FATIGUED
    if state.suspicion > 0.6:
        return Mood.SUSPICIOUS
    if state.confidence > 0.7 and state.conviction > 0.6:
        return Mood.CONFIDENT
    if state.aggression > 0.6 and state.confidence > 0.5:
        return Mood.AGGRESSIVE
    if state.conviction > 0.7:
        return Mood.OBSESSED
    if state.confidence < 0.4:
        return Mood.CAUTIOUS
    return Mood.NEUTRAL


def derive_moods(state: AgentState) -> Tuple[Mood, Optional[Mood]]:
    """
    Derive the primary and secondary mood from the psychological parameters.

    Args:
        state: State to read; it is not modified

    Returns:
        Tuple of (primary mood, secondary mood or None)
    """
    primary = derive_primary_mood(state)

    candidates: List[Tuple[Mood, float]] = [
        (Mood.REGRETFUL, state.regret),
        (Mood.SUSPICIOUS, state.suspicion),
        (Mood.CAUTIOUS, 0.8 if state.confidence < 0.5 else 0.0),
        (Mood.FATIGUED, state.fatigue),
    ]
    candidates = [c for c in candidates if c[0] != primary]
    # sorted() is stable, so ties keep the order above
    candidates = sorted(candidates, key=lambda c: c[1], reverse=True)

    secondary = None
    if candidates and candidates[0][1] > SECONDARY_MOOD_THRESHOLD:
        secondary = candidates[0][0]
    return primary, secondary


class StateModel:
    """
    Owner of the single mutable ``AgentState``.

    Consumers only ever receive copies through ``get_state``.
    """

    def __init__(self, config: Optional[StateSettings] = None, clock: Optional[Clock] = None):
        self.config = config or StateSettings()
        self.clock = clock or SystemClock()
        self._state = AgentState(
            timestamp=self.clock.now_ms(),
            risk_appetite=self.config.BASE_RISK_APPETITE,
        )

    def get_state(self) -> AgentState:
        """Return a snapshot of the current state."""
        return self._state.copy()

    @property
    def mode(self) -> OperationalMode:
        return self._state.mode

    def update_from_trade(self, trade: TradeResult) -> None:
        """
        Nudge the psychological parameters after a trade outcome.

        A filled trade with a positive fill counts as a win. A failed trade,
        or any trade carrying an error, counts as a loss. Anything else (for
        example a cancelled trade) leaves the parameters untouched.

        Args:
            trade: The outcome reported by the executor
        """
        s = self._state
        is_win = trade.status == TradeStatus.FILLED and (trade.filled_amount or 0) > 0 and not trade.error
        is_loss = trade.status == TradeStatus.FAILED or bool(trade.error)

        if is_win:
            s.confidence = min(0.95, s.confidence + 0.08)
            s.regret = max(0.0, s.regret - 0.05)
            s.conviction = min(0.95, s.conviction + 0.06)
            s.recent_win_streak += 1
            s.recent_loss_streak = 0
            s.risk_appetite = min(0.9, s.risk_appetite + 0.03)
        elif is_loss:
            s.confidence = max(0.1, s.confidence - 0.12)
            s.regret = min(0.9, s.regret + 0.15)
            s.suspicion = min(0.9, s.suspicion + 0.1)
            s.recent_loss_streak += 1
            s.recent_win_streak = 0
            s.risk_appetite = max(0.1, s.risk_appetite - 0.08)

        self._update_mood()
        s.last_trade_timestamp = trade.timestamp
        s.timestamp = self.clock.now_ms()

    def tick(self) -> None:
        """Apply one step of time-based decay toward baseline."""
        s = self._state
        now = self.clock.now_ms()

        if s.last_trade_timestamp is not None:
            s.days_since_last_trade = (now - s.last_trade_timestamp) / MS_PER_DAY
            if s.days_since_last_trade > 2:
                s.fatigue = min(0.9, s.fatigue + 0.02)

        s.regret *= 0.98
        s.suspicion *= 0.99
        s.aggression *= 0.97
        s.confidence += (CONFIDENCE_BASELINE - s.confidence) * 0.05
        s.conviction *= 0.95

        self._update_mood()
        s.timestamp = now

    def set_mode(self, mode: OperationalMode) -> None:
        """Set the operational mode. Psychological parameters are left as they are."""
        if mode != self._state.mode:
            logger.info(f"Operational mode changed: {self._state.mode.value} -> {mode.value}")
        self._state.mode = mode
        self._state.timestamp = self.clock.now_ms()

    def adjust_token_conviction(self, token_address: str, delta: float) -> float:
        """
        Adjust the conviction for one token.

        Returns:
            The new conviction, clamped to [0, 1]
        """
        value = self._state.token_convictions.adjust(token_address, delta)
        self._state.timestamp = self.clock.now_ms()
        return value

    def set_monologue(self, thought: str) -> None:
        self._state.internal_monologue = thought
        self._state.timestamp = self.clock.now_ms()

    def restore(self, state: AgentState) -> None:
        """Rehydrate from a persisted snapshot. Moods are re-derived from the parameters."""
        self._state = state.copy()
        self._update_mood()

    def _update_mood(self) -> None:
        previous = self._state.primary_mood
        primary, secondary = derive_moods(self._state)
        self._state.primary_mood = primary
        self._state.secondary_mood = secondary
        if primary != previous:
            logger.info(f"Mood changed: {previous.value} -> {primary.value}")
