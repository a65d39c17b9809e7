"""
Unit tests for the pattern detectors.
"""
import pytest

from moodtrader.events.core import EventSource, EventType
from moodtrader.signals.core import SignalType
from moodtrader.signals.detectors import (
    DormancyDetector,
    EarlyMomentumDetector,
    HypeBurstDetector,
    LiquidityPullDetector,
    PriceExhaustionDetector,
    VolumeSurgeDetector,
    default_detectors,
    group_by_token,
)


def test_group_by_token_preserves_order_and_drops_tokenless(make_event):
    events = [
        make_event(EventType.VOLUME_SPIKE, "TOKEN_B", multiplier=2.0),
        make_event(EventType.VOLUME_SPIKE, "TOKEN_A", multiplier=2.0),
        make_event(EventType.VOLUME_SPIKE, None, multiplier=2.0),
        make_event(EventType.PRICE_CHANGE, "TOKEN_A", change_percent=1.0),
    ]

    grouped = group_by_token(events, frozenset({EventType.VOLUME_SPIKE}))

    assert list(grouped.keys()) == ["TOKEN_B", "TOKEN_A"]
    assert len(grouped["TOKEN_A"]) == 1


class TestVolumeSurgeDetector:

    def test_needs_two_spikes(self, make_event):
        window = [make_event(EventType.VOLUME_SPIKE, "TOKEN_A", multiplier=4.0)]
        assert VolumeSurgeDetector().detect(window, []) == []

    def test_scores_latest_multiplier(self, make_event):
        window = [
            make_event(EventType.VOLUME_SPIKE, "TOKEN_A", multiplier=2.0),
            make_event(EventType.VOLUME_SPIKE, "TOKEN_A", multiplier=3.0),
        ]

        [result] = VolumeSurgeDetector().detect(window, [])

        assert result.type == SignalType.VOLUME_SURGE
        assert result.token_address == "TOKEN_A"
        assert result.confidence == pytest.approx(0.8)
        assert result.strength == pytest.approx(0.6)
        assert result.urgency == 0.5
        assert result.source_event_ids == [e.id for e in window]

    def test_many_spikes_raise_urgency_and_cap_confidence(self, make_event):
        window = [make_event(EventType.VOLUME_SPIKE, "TOKEN_A", multiplier=10.0) for _ in range(4)]

        [result] = VolumeSurgeDetector().detect(window, [])

        assert result.urgency == 0.8
        assert result.confidence == 0.95
        assert result.strength == 1.0


class TestEarlyMomentumDetector:

    def test_price_rise_with_volume(self, make_event):
        window = [
            make_event(EventType.PRICE_CHANGE, "TOKEN_A", change_percent=10.0),
            make_event(EventType.VOLUME_SPIKE, "TOKEN_A", multiplier=2.0),
        ]

        [result] = EarlyMomentumDetector().detect(window, [])

        assert result.confidence == 0.6
        assert result.strength == pytest.approx(0.5)
        assert result.urgency == 0.7

    def test_small_move_or_missing_volume_ignored(self, make_event):
        small = [
            make_event(EventType.PRICE_CHANGE, "TOKEN_A", change_percent=5.0),
            make_event(EventType.VOLUME_SPIKE, "TOKEN_A", multiplier=2.0),
        ]
        no_volume = [make_event(EventType.PRICE_CHANGE, "TOKEN_B", change_percent=30.0)]

        assert EarlyMomentumDetector().detect(small, []) == []
        assert EarlyMomentumDetector().detect(no_volume, []) == []


class TestLiquidityPullDetector:

    def test_deepest_drop_wins(self, make_event):
        window = [
            make_event(EventType.LIQUIDITY_CHANGE, "TOKEN_A", change_percent=-20.0),
            make_event(EventType.LIQUIDITY_CHANGE, "TOKEN_A", change_percent=-45.0),
            make_event(EventType.LIQUIDITY_CHANGE, "TOKEN_A", change_percent=-5.0),
        ]

        [result] = LiquidityPullDetector().detect(window, [])

        assert result.confidence == 0.75
        assert result.strength == 1.0
        assert result.urgency == 0.9
        assert result.source_event_ids == [window[0].id, window[1].id]

    def test_moderate_drop_has_lower_urgency(self, make_event):
        window = [make_event(EventType.LIQUIDITY_CHANGE, "TOKEN_A", change_percent=-20.0)]

        [result] = LiquidityPullDetector().detect(window, [])

        assert result.urgency == 0.6
        assert result.strength == pytest.approx(20 / 30)


class TestPriceExhaustionDetector:

    def test_spike_then_stall(self, make_event, clock):
        window = []
        for change in (15.0, 1.0, 0.5, 0.0):
            window.append(make_event(EventType.PRICE_CHANGE, "TOKEN_A", change_percent=change))
            clock.advance(1000)

        [result] = PriceExhaustionDetector().detect(window, [])

        assert (result.confidence, result.strength, result.urgency) == (0.55, 0.6, 0.4)
        assert result.source_event_ids == [e.id for e in window[1:]]

    def test_no_earlier_spike(self, make_event):
        window = [make_event(EventType.PRICE_CHANGE, "TOKEN_A", change_percent=1.0) for _ in range(4)]
        assert PriceExhaustionDetector().detect(window, []) == []


class TestDormancyDetector:

    def test_tracked_tokens_without_events(self, make_event):
        window = [make_event(EventType.PRICE_UPDATE, "TOKEN_A", price=1.0)]

        results = DormancyDetector().detect(window, ["TOKEN_A", "TOKEN_B"])

        assert [r.token_address for r in results] == ["TOKEN_B"]
        assert results[0].urgency == 0.2


class TestHypeBurstDetector:

    def test_tokenless_social_events_are_market_wide(self, make_event):
        window = [
            make_event(EventType.MENTION_SPIKE, None, source=EventSource.TWITTER, mentions=50),
            make_event(EventType.SENTIMENT_SHIFT, None, source=EventSource.TWITTER, sentiment=0.4),
            make_event(EventType.MENTION_SPIKE, None, source=EventSource.TWITTER, mentions=80),
        ]

        [result] = HypeBurstDetector().detect(window, [])

        assert result.token_address is None
        assert result.strength == pytest.approx(0.6)
        assert result.confidence == 0.5

    def test_influencer_posts_do_not_count(self, make_event):
        window = [
            make_event(EventType.INFLUENCER_POST, "TOKEN_A", source=EventSource.TWITTER),
            make_event(EventType.INFLUENCER_POST, "TOKEN_A", source=EventSource.TWITTER),
        ]
        assert HypeBurstDetector().detect(window, []) == []


def test_default_detectors_cover_market_and_social_patterns():
    types = {d.signal_type for d in default_detectors()}
    assert types == {
        SignalType.VOLUME_SURGE,
        SignalType.EARLY_MOMENTUM,
        SignalType.LIQUIDITY_PULL,
        SignalType.PRICE_EXHAUSTION,
        SignalType.HYPE_BURST,
        SignalType.DORMANCY,
    }
