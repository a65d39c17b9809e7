"""
Decision engine: turns active signals, agent state and open positions into at
most one intent per cycle.

Rules are evaluated in strict precedence (exit, reduce, enter, add, wait) and
the first applicable rule wins. A cooldown bounds how often intents are formed.
"""
from collections import OrderedDict
from typing import Dict, List, Optional, Sequence

from moodtrader.config.settings import DecisionSettings
from moodtrader.execution.core import Position
from moodtrader.signals.core import Signal, SignalType
from moodtrader.state.core import AgentState, Mood
from moodtrader.utils.clock import Clock, SystemClock
from moodtrader.utils.logging import get_logger
from .core import Intent, IntentStateSnapshot, IntentType

logger = get_logger(__name__)

BASE_ENTRY_THRESHOLD = 0.4
BASE_POSITION_SIZE_PCT = 10.0
MAX_POSITION_SIZE_PCT = 20.0
ADD_SIZE_PCT = 25.0
REDUCE_SIZE_PCT = 50.0
DEFAULT_PROBABILITY_THRESHOLD = 0.5

ENTRY_SIGNAL_TYPES = frozenset({SignalType.EARLY_MOMENTUM, SignalType.VOLUME_SURGE})
NO_ENTRY_MOODS = frozenset({Mood.CAUTIOUS, Mood.REGRETFUL})

ALTERNATIVES = {
    IntentType.ENTER: ["wait for confirmation", "watch"],
    IntentType.EXIT: ["reduce instead", "hold"],
    IntentType.WAIT: ["force entry on weak signal", "go dormant"],
}


def entry_threshold(confidence: float) -> float:
    """Score an entry signal must reach; higher agent confidence lowers the bar."""
    return BASE_ENTRY_THRESHOLD * (2 - confidence)


def entry_size_pct(state: AgentState) -> float:
    """Entry size in percent of capital, scaled by risk appetite and confidence."""
    return min(MAX_POSITION_SIZE_PCT, BASE_POSITION_SIZE_PCT * state.risk_appetite * state.confidence)


class DecisionEngine:
    """
    Produces at most one intent per invocation, honoring a cooldown.
    """

    def __init__(self, config: Optional[DecisionSettings] = None, clock: Optional[Clock] = None):
        self.config = config or DecisionSettings()
        self.clock = clock or SystemClock()
        self.last_intent_time: Optional[int] = None
        self._id_counter = 0

    def can_decide(self) -> bool:
        """True when the cooldown since the last intent has elapsed."""
        if self.last_intent_time is None:
            return True
        return self.clock.now_ms() - self.last_intent_time >= self.config.INTENT_COOLDOWN_MS

    def decide(
        self,
        signals: Sequence[Signal],
        state: AgentState,
        positions: Sequence[Position],
    ) -> Optional[Intent]:
        """
        Decide what to do given current signals and state.

        Args:
            signals: Active signals (snapshots)
            state: Agent state snapshot
            positions: Open positions (snapshots)

        Returns:
            The intent for this cycle, or None while the cooldown is running
        """
        if not self.can_decide():
            return None

        intent = self._evaluate(signals, state, positions)
        self.last_intent_time = self.clock.now_ms()

        if intent.type != IntentType.WAIT:
            logger.info(
                f"Intent formed: {intent.type.value} {intent.token_symbol or intent.token_address or ''} "
                f"size={intent.size_pct} reason='{intent.primary_reason}'"
            )
        else:
            logger.debug(f"Intent formed: wait ({intent.primary_reason})")
        return intent

    def _evaluate(
        self,
        signals: Sequence[Signal],
        state: AgentState,
        positions: Sequence[Position],
    ) -> Intent:
        valid = [s for s in signals if s.confidence >= self.config.MIN_SIGNAL_CONFIDENCE]
        if not valid:
            return self._create_intent(IntentType.WAIT, state, [], "No strong signals detected")

        by_token = self._group_by_token(valid)

        for position in positions:
            intent = self._check_exit(position, by_token, state)
            if intent:
                return intent

        for position in positions:
            intent = self._check_reduce(position, by_token, state)
            if intent:
                return intent

        intent = self._check_enter(by_token, positions, state)
        if intent:
            return intent

        for position in positions:
            intent = self._check_add(position, by_token, state)
            if intent:
                return intent

        return self._create_intent(IntentType.WAIT, state, valid, "Observing market conditions")

    @staticmethod
    def _group_by_token(signals: Sequence[Signal]) -> Dict[Optional[str], List[Signal]]:
        grouped: Dict[Optional[str], List[Signal]] = OrderedDict()
        for signal in signals:
            grouped.setdefault(signal.token_address, []).append(signal)
        return grouped

    @staticmethod
    def _find(signals: Sequence[Signal], signal_type: SignalType) -> Optional[Signal]:
        return next((s for s in signals if s.type == signal_type), None)

    def _check_exit(self, position: Position, by_token, state: AgentState) -> Optional[Intent]:
        signals = by_token.get(position.token_address, [])

        liquidity_pull = self._find(signals, SignalType.LIQUIDITY_PULL)
        if liquidity_pull and liquidity_pull.urgency > 0.7:
            return self._create_intent(
                IntentType.EXIT, state, [liquidity_pull], "Liquidity drying up - exit now",
                position.token_address, position.token_symbol, 100.0,
            )

        if position.unrealized_pnl_pct is not None and position.unrealized_pnl_pct > 10:
            exhaustion = self._find(signals, SignalType.PRICE_EXHAUSTION)
            if exhaustion:
                return self._create_intent(
                    IntentType.EXIT, state, [exhaustion], "Taking profit - momentum fading",
                    position.token_address, position.token_symbol, 100.0,
                )

        if state.token_convictions.get(position.token_address) < 0.3:
            return self._create_intent(
                IntentType.EXIT, state, signals, "Lost conviction in this token",
                position.token_address, position.token_symbol, 100.0,
            )

        return None

    def _check_reduce(self, position: Position, by_token, state: AgentState) -> Optional[Intent]:
        signals = by_token.get(position.token_address, [])

        if (
            state.primary_mood == Mood.SUSPICIOUS
            and position.unrealized_pnl_pct is not None
            and position.unrealized_pnl_pct > 5
        ):
            return self._create_intent(
                IntentType.REDUCE, state, signals, "Feeling suspicious - taking some off",
                position.token_address, position.token_symbol, REDUCE_SIZE_PCT,
            )
        return None

    def _check_enter(self, by_token, positions: Sequence[Position], state: AgentState) -> Optional[Intent]:
        if state.primary_mood in NO_ENTRY_MOODS:
            return None

        held = {p.token_address for p in positions}
        strongest: Optional[Signal] = None
        strongest_score = 0.0

        for token, signals in by_token.items():
            if token is None or token in held:
                continue
            for signal in signals:
                if signal.score > strongest_score:
                    strongest, strongest_score = signal, signal.score

        if strongest is None:
            return None

        threshold = entry_threshold(state.confidence)
        if strongest_score < threshold:
            return None

        if strongest.type not in ENTRY_SIGNAL_TYPES:
            return None

        return self._create_intent(
            IntentType.ENTER, state, [strongest], f"{strongest.description} - entering position",
            strongest.token_address, strongest.token_symbol, entry_size_pct(state),
            probability_threshold=threshold,
        )

    def _check_add(self, position: Position, by_token, state: AgentState) -> Optional[Intent]:
        if state.confidence < 0.6 and state.primary_mood != Mood.AGGRESSIVE:
            return None

        signals = by_token.get(position.token_address, [])
        volume_surge = self._find(signals, SignalType.VOLUME_SURGE)
        if volume_surge and volume_surge.confidence > 0.7:
            return self._create_intent(
                IntentType.ADD, state, [volume_surge], "Volume confirming - adding to position",
                position.token_address, position.token_symbol, ADD_SIZE_PCT,
            )
        return None

    def _create_intent(
        self,
        intent_type: IntentType,
        state: AgentState,
        signals: Sequence[Signal],
        reason: str,
        token_address: Optional[str] = None,
        token_symbol: Optional[str] = None,
        size_pct: Optional[float] = None,
        probability_threshold: float = DEFAULT_PROBABILITY_THRESHOLD,
    ) -> Intent:
        now = self.clock.now_ms()
        self._id_counter += 1
        return Intent(
            id=f"intent_{now}_{self._id_counter}",
            timestamp=now,
            type=intent_type,
            token_address=token_address,
            token_symbol=token_symbol,
            size_pct=size_pct,
            primary_reason=reason,
            supporting_signal_ids=[s.id for s in signals],
            state_snapshot=IntentStateSnapshot(
                mood=state.primary_mood.value,
                confidence=state.confidence,
                risk_appetite=state.risk_appetite,
                mode=state.mode.value,
            ),
            alternatives=list(ALTERNATIVES.get(intent_type, [])),
            probability_threshold=probability_threshold,
        )
