"""
Signal engine: converts a noisy event stream into a small set of decaying,
confidence-scored signals.

The engine keeps a rolling window of events, runs every detector against it
and either reinforces the live signal for the same ``(type, token)`` pair or
creates a new one. Confidence decays exponentially from the moment a signal
was created (or last reinforced) and is always recomputed from that anchor, so
calling ``update_signals`` repeatedly at the same instant is a no-op.
"""
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from moodtrader.config.settings import SignalSettings
from moodtrader.events.core import Event
from moodtrader.utils.clock import Clock, SystemClock
from moodtrader.utils.logging import get_logger
from .core import DetectorResult, Signal, SignalType
from .detectors import BaseSignalDetector, default_detectors

logger = get_logger(__name__)


class SignalEngine:
    """
    Maintains the event window and the set of active signals.

    There is at most one active signal per ``(type, token_address)`` pair.
    Every accessor returns copies; the live signals are owned by the engine.
    """

    def __init__(
        self,
        config: Optional[SignalSettings] = None,
        clock: Optional[Clock] = None,
        detectors: Optional[Sequence[BaseSignalDetector]] = None,
    ):
        """
        Initialize the signal engine.

        Args:
            config: Window, decay and reinforcement parameters
            clock: Time source; defaults to wall time
            detectors: Detectors to run; defaults to the built-in set
        """
        self.config = config or SignalSettings()
        self.clock = clock or SystemClock()
        self.detectors: List[BaseSignalDetector] = (
            list(detectors) if detectors is not None else default_detectors()
        )

        self._window: List[Event] = []
        self._signals: Dict[Tuple[SignalType, Optional[str]], Signal] = {}
        self._id_counter = 0

        self.stats = {
            'events_processed': 0,
            'events_rejected': 0,
            'signals_created': 0,
            'signals_reinforced': 0,
            'signals_evicted': 0,
            'detector_errors': 0,
        }

    @property
    def window(self) -> List[Event]:
        """Events currently inside the rolling window (copy)."""
        return list(self._window)

    def process_events(self, events: Iterable[Event], tracked_tokens: Sequence[str] = ()) -> List[Signal]:
        """
        Append events to the window, run detectors and merge their results.

        Args:
            events: Newly observed events
            tracked_tokens: Token addresses being watched (used for dormancy)

        Returns:
            Copies of the signals created by this call. Reinforced signals are
            not included.
        """
        now = self.clock.now_ms()

        for event in events:
            if not isinstance(event, Event):
                self.stats['events_rejected'] += 1
                logger.warning(f"Skipping malformed event: {event!r}")
                continue
            self._window.append(event)
            self.stats['events_processed'] += 1

        cutoff = now - self.config.WINDOW_SIZE_MS
        self._window = [e for e in self._window if e.timestamp > cutoff]

        window = tuple(self._window)
        tokens = list(tracked_tokens)
        new_signals: List[Signal] = []

        for detector in self.detectors:
            try:
                results = detector.detect(window, tokens)
            except Exception as e:
                self.stats['detector_errors'] += 1
                logger.error(f"Detector {detector.name} failed: {e}", exc_info=True)
                continue

            for result in results:
                if result.confidence < self.config.MIN_CONFIDENCE:
                    continue
                signal = self._merge(result, now)
                if signal is not None:
                    new_signals.append(signal.copy())

        if new_signals:
            logger.debug(f"New signals generated: {len(new_signals)}")

        return new_signals

    def _merge(self, result: DetectorResult, now: int) -> Optional[Signal]:
        """Reinforce the live signal for the result's key, or create one. Returns the new signal."""
        key = (result.type, result.token_address)
        existing = self._signals.get(key)

        if existing is not None and existing.expires_at > now:
            self._reinforce(existing, result, now)
            return None

        self._id_counter += 1
        signal = Signal(
            id=f"signal_{now}_{self._id_counter}",
            timestamp=now,
            type=result.type,
            token_address=result.token_address,
            token_symbol=result.token_symbol,
            confidence=result.confidence,
            strength=result.strength,
            urgency=result.urgency,
            description=result.description,
            source_event_ids=list(result.source_event_ids),
            expires_at=now + self.config.DECAY_HALF_LIFE_MS * 3,
            decay_rate=self.config.DECAY_RATE,
        )
        self._signals[key] = signal
        self.stats['signals_created'] += 1
        logger.debug(
            f"Created {signal.type.value} signal for {signal.token_address or 'market'} "
            f"(confidence={signal.confidence:.2f})"
        )
        return signal

    def _reinforce(self, signal: Signal, result: DetectorResult, now: int) -> None:
        current = self._decayed_confidence(signal, now)
        boosted = min(
            self.config.MAX_REINFORCED_CONFIDENCE,
            current + self.config.REINFORCEMENT_INCREMENT,
        )
        signal.confidence = boosted
        signal.base_confidence = boosted
        signal.decay_anchor = now
        signal.strength = max(signal.strength, result.strength)
        signal.expires_at = now + self.config.DECAY_HALF_LIFE_MS * 3
        for event_id in result.source_event_ids:
            if event_id not in signal.source_event_ids:
                signal.source_event_ids.append(event_id)
        if result.token_symbol and not signal.token_symbol:
            signal.token_symbol = result.token_symbol

        self.stats['signals_reinforced'] += 1
        logger.debug(
            f"Reinforced {signal.type.value} signal for {signal.token_address or 'market'} "
            f"(confidence={signal.confidence:.2f})"
        )

    def _decayed_confidence(self, signal: Signal, now: int) -> float:
        elapsed = max(0, now - signal.decay_anchor)
        half_lives = elapsed / self.config.DECAY_HALF_LIFE_MS
        return signal.base_confidence * (signal.decay_rate ** half_lives)

    def update_signals(self) -> List[Signal]:
        """
        Apply decay and evict expired or weak signals.

        Returns:
            Copies of the signals still active after decay.
        """
        now = self.clock.now_ms()

        for key, signal in list(self._signals.items()):
            signal.confidence = self._decayed_confidence(signal, now)
            if now >= signal.expires_at or signal.confidence < self.config.MIN_CONFIDENCE:
                del self._signals[key]
                self.stats['signals_evicted'] += 1
                logger.debug(
                    f"Evicted {signal.type.value} signal for {signal.token_address or 'market'}"
                )

        return self.get_active_signals()

    def get_active_signals(self) -> List[Signal]:
        """Return copies of all active signals, oldest first."""
        return [s.copy() for s in sorted(self._signals.values(), key=lambda s: s.timestamp)]

    def get_signals_for_token(self, token_address: str) -> List[Signal]:
        """Return copies of the active signals for one token."""
        return [s for s in self.get_active_signals() if s.token_address == token_address]

    def get_strongest_signal(self, token_address: Optional[str] = None) -> Optional[Signal]:
        """
        Return the active signal with the highest ``confidence * strength``.

        Args:
            token_address: Restrict the search to one token

        Returns:
            A copy of the strongest signal, or None when there are none.
        """
        signals = self.get_active_signals()
        if token_address:
            signals = [s for s in signals if s.token_address == token_address]
        if not signals:
            return None
        return max(signals, key=lambda s: s.confidence * s.strength)

    def restore(self, signals: Iterable[Signal]) -> None:
        """Replace the active signal set (used when rehydrating a snapshot)."""
        self._signals = {}
        for signal in signals:
            self._signals[signal.key] = signal.copy()
