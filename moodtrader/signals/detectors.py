"""
Pattern detectors for the signal engine.

Each detector is a pure function of the current event window: it never
mutates the window and never depends on other detectors. The engine runs them
independently so a failing detector cannot affect the others.
"""
from abc import ABC, abstractmethod
from collections import OrderedDict
from typing import Dict, List, Optional, Sequence

from moodtrader.events.core import SOCIAL_EVENT_TYPES, Event, EventType
from .core import DetectorResult, SignalType


def group_by_token(
    events: Sequence[Event],
    event_types: Optional[frozenset] = None,
    default_key: Optional[str] = None,
) -> Dict[Optional[str], List[Event]]:
    """
    Group events by token address, preserving arrival order.

    Events without a token address are grouped under ``default_key``; when
    ``default_key`` is None they are dropped.
    """
    grouped: Dict[Optional[str], List[Event]] = OrderedDict()
    for event in events:
        if event_types is not None and event.type not in event_types:
            continue
        key = event.token_address or default_key
        if key is None:
            continue
        grouped.setdefault(key, []).append(event)
    return grouped


class BaseSignalDetector(ABC):
    """
    Abstract base class for signal detectors.

    Each detector type implements specific logic for identifying a pattern in
    the rolling event window.
    """

    signal_type: SignalType

    @property
    def name(self) -> str:
        return self.signal_type.value

    @abstractmethod
    def detect(self, window: Sequence[Event], tracked_tokens: Sequence[str]) -> List[DetectorResult]:
        """
        Detect the pattern in the given window.

        Args:
            window: Events currently inside the rolling window, oldest first.
            tracked_tokens: Token addresses being watched.

        Returns:
            Detector results; may be empty.
        """
        pass


class VolumeSurgeDetector(BaseSignalDetector):
    """Two or more volume spikes for the same token."""

    signal_type = SignalType.VOLUME_SURGE

    def detect(self, window, tracked_tokens):
        results = []
        for token, spikes in group_by_token(window, frozenset({EventType.VOLUME_SPIKE})).items():
            if len(spikes) < 2:
                continue
            latest = spikes[-1]
            multiplier = latest.data.multiplier or 1.0
            results.append(DetectorResult(
                type=self.signal_type,
                confidence=min(0.95, 0.5 + (multiplier - 1) * 0.15),
                strength=min(1.0, multiplier / 5),
                urgency=0.8 if len(spikes) > 3 else 0.5,
                description=f"Volume spike {multiplier:.1f}x average",
                token_address=token,
                token_symbol=latest.token_symbol,
                source_event_ids=[e.id for e in spikes],
            ))
        return results


class EarlyMomentumDetector(BaseSignalDetector):
    """Price rising more than 5% while volume spikes for the same token."""

    signal_type = SignalType.EARLY_MOMENTUM

    def detect(self, window, tracked_tokens):
        results = []
        for token, events in group_by_token(window).items():
            price_events = [e for e in events if e.type == EventType.PRICE_CHANGE]
            volume_events = [e for e in events if e.type == EventType.VOLUME_SPIKE]
            if not price_events or not volume_events:
                continue

            latest_price = price_events[-1]
            price_change = latest_price.data.change_percent
            if price_change <= 5:
                continue

            results.append(DetectorResult(
                type=self.signal_type,
                confidence=0.6,
                strength=min(1.0, abs(price_change) / 20),
                urgency=0.7,
                description=f"Price +{price_change:.1f}% with volume",
                token_address=token,
                token_symbol=latest_price.token_symbol,
                source_event_ids=[e.id for e in price_events] + [e.id for e in volume_events],
            ))
        return results


class LiquidityPullDetector(BaseSignalDetector):
    """
    Liquidity dropping more than 15%.

    One result per token, built from the deepest drop in the window, so a run
    of withdrawals reinforces a single signal instead of stacking duplicates.
    """

    signal_type = SignalType.LIQUIDITY_PULL

    def detect(self, window, tracked_tokens):
        results = []
        grouped = group_by_token(window, frozenset({EventType.LIQUIDITY_CHANGE}))
        for token, events in grouped.items():
            drops = [e for e in events if e.data.change_percent < -15]
            if not drops:
                continue

            deepest = min(drops, key=lambda e: e.data.change_percent)
            change = deepest.data.change_percent
            results.append(DetectorResult(
                type=self.signal_type,
                confidence=0.75,
                strength=min(1.0, abs(change) / 30),
                urgency=0.9 if change < -30 else 0.6,
                description=f"Liquidity dropped {abs(change):.1f}%",
                token_address=token,
                token_symbol=deepest.token_symbol,
                source_event_ids=[e.id for e in drops],
            ))
        return results


class PriceExhaustionDetector(BaseSignalDetector):
    """Rapid rise (an earlier move above 10%) followed by a stall (last 3 average below 2%)."""

    signal_type = SignalType.PRICE_EXHAUSTION

    def detect(self, window, tracked_tokens):
        results = []
        for token, events in group_by_token(window, frozenset({EventType.PRICE_CHANGE})).items():
            if len(events) < 3:
                continue

            ordered = sorted(events, key=lambda e: e.timestamp)
            recent, earlier = ordered[-3:], ordered[:-3]
            avg_change = sum(e.data.change_percent for e in recent) / len(recent)

            if avg_change < 2 and any(e.data.change_percent > 10 for e in earlier):
                results.append(DetectorResult(
                    type=self.signal_type,
                    confidence=0.55,
                    strength=0.6,
                    urgency=0.4,
                    description="Price momentum slowing after spike",
                    token_address=token,
                    token_symbol=recent[0].token_symbol,
                    source_event_ids=[e.id for e in recent],
                ))
        return results


class DormancyDetector(BaseSignalDetector):
    """Tracked tokens with no events inside the window."""

    signal_type = SignalType.DORMANCY

    def detect(self, window, tracked_tokens):
        active = {e.token_address for e in window if e.token_address}
        return [
            DetectorResult(
                type=self.signal_type,
                confidence=0.7,
                strength=0.5,
                urgency=0.2,
                description="No recent activity detected",
                token_address=token,
            )
            for token in tracked_tokens
            if token not in active
        ]


class HypeBurstDetector(BaseSignalDetector):
    """Two or more social events (mention spikes, sentiment shifts) for the same key."""

    signal_type = SignalType.HYPE_BURST

    GENERAL_KEY = "general"

    def detect(self, window, tracked_tokens):
        results = []
        grouped = group_by_token(window, SOCIAL_EVENT_TYPES, default_key=self.GENERAL_KEY)
        for key, events in grouped.items():
            if len(events) < 2:
                continue
            results.append(DetectorResult(
                type=self.signal_type,
                confidence=0.5,
                strength=min(1.0, len(events) / 5),
                urgency=0.65,
                description=f"{len(events)} social signals detected",
                token_address=None if key == self.GENERAL_KEY else key,
                token_symbol=events[-1].token_symbol,
                source_event_ids=[e.id for e in events],
            ))
        return results


def default_detectors() -> List[BaseSignalDetector]:
    """Return a fresh instance of every built-in detector."""
    return [
        VolumeSurgeDetector(),
        EarlyMomentumDetector(),
        LiquidityPullDetector(),
        PriceExhaustionDetector(),
        HypeBurstDetector(),
        DormancyDetector(),
    ]
