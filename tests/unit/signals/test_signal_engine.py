"""
Unit tests for the SignalEngine: windowing, decay, reinforcement and eviction.
"""
import pytest

from moodtrader.config.settings import SignalSettings
from moodtrader.events.core import EventType
from moodtrader.signals.core import DetectorResult, Signal, SignalType
from moodtrader.signals.detectors import BaseSignalDetector
from moodtrader.signals.signal_engine import SignalEngine

HALF_LIFE_MS = 1_800_000


class StubDetector(BaseSignalDetector):
    """Returns whatever results the test queues, on every run."""

    signal_type = SignalType.VOLUME_SURGE

    def __init__(self, *results):
        self.results = list(results)
        self.calls = 0

    def detect(self, window, tracked_tokens):
        self.calls += 1
        return list(self.results)


class FailingDetector(BaseSignalDetector):

    signal_type = SignalType.FALSE_SIGNAL

    def detect(self, window, tracked_tokens):
        raise RuntimeError("detector exploded")


def surge(confidence=0.9, strength=0.5, token="TOKEN_A", event_ids=("e1",)):
    return DetectorResult(
        type=SignalType.VOLUME_SURGE,
        confidence=confidence,
        strength=strength,
        urgency=0.5,
        description="Volume spike",
        token_address=token,
        source_event_ids=list(event_ids),
    )


@pytest.fixture
def engine_factory(clock):
    def _make(*detectors, min_confidence=0.1):
        config = SignalSettings(
            WINDOW_SIZE_MS=3_600_000,
            DECAY_HALF_LIFE_MS=HALF_LIFE_MS,
            MIN_CONFIDENCE=min_confidence,
            DECAY_RATE=0.5,
        )
        return SignalEngine(config, clock=clock, detectors=list(detectors))
    return _make


class TestDecay:

    def test_confidence_halves_every_half_life(self, engine_factory, clock):
        engine = engine_factory(StubDetector(surge(confidence=0.9)))
        [created] = engine.process_events([])
        engine.detectors = []

        clock.advance(HALF_LIFE_MS)
        [signal] = engine.update_signals()
        assert signal.confidence == pytest.approx(0.45)

        clock.advance(HALF_LIFE_MS)
        [signal] = engine.update_signals()
        assert signal.confidence == pytest.approx(0.225)
        assert signal.id == created.id

    def test_update_is_idempotent_at_same_instant(self, engine_factory, clock):
        engine = engine_factory(StubDetector(surge(confidence=0.8)))
        engine.process_events([])
        clock.advance(HALF_LIFE_MS // 3)

        first = engine.update_signals()[0].confidence
        second = engine.update_signals()[0].confidence

        assert first == second
        assert first < 0.8

    def test_weak_signals_evicted(self, engine_factory, clock):
        engine = engine_factory(StubDetector(surge(confidence=0.5)), min_confidence=0.3)
        engine.process_events([])
        engine.detectors = []

        clock.advance(HALF_LIFE_MS)
        assert engine.update_signals() == []
        assert engine.stats['signals_evicted'] == 1

    def test_expired_signals_evicted_regardless_of_confidence(self, engine_factory, clock):
        engine = engine_factory(StubDetector(surge(confidence=0.99)))
        engine.process_events([])
        engine.detectors = []

        clock.advance(3 * HALF_LIFE_MS - 1)
        assert len(engine.update_signals()) == 1

        clock.advance(1)
        assert engine.update_signals() == []

    def test_results_below_min_confidence_never_become_signals(self, engine_factory):
        engine = engine_factory(StubDetector(surge(confidence=0.2)), min_confidence=0.3)
        assert engine.process_events([]) == []
        assert engine.get_active_signals() == []


class TestReinforcement:

    def test_same_type_and_token_reinforces(self, engine_factory, clock):
        detector = StubDetector(surge(confidence=0.6, strength=0.4, event_ids=("e1",)))
        engine = engine_factory(detector)
        [created] = engine.process_events([])

        clock.advance(HALF_LIFE_MS)
        detector.results = [surge(confidence=0.6, strength=0.7, event_ids=("e1", "e2"))]
        assert engine.process_events([]) == []

        [signal] = engine.get_active_signals()
        assert signal.id == created.id
        # decayed to 0.3, then boosted by 0.1
        assert signal.confidence == pytest.approx(0.4)
        assert signal.strength == 0.7
        assert signal.source_event_ids == ["e1", "e2"]
        assert signal.expires_at == clock.now_ms() + 3 * HALF_LIFE_MS
        assert engine.stats['signals_reinforced'] == 1

    def test_reinforced_signal_decays_from_new_anchor(self, engine_factory, clock):
        detector = StubDetector(surge(confidence=0.6))
        engine = engine_factory(detector)
        engine.process_events([])
        clock.advance(HALF_LIFE_MS)
        engine.process_events([])
        engine.detectors = []

        clock.advance(HALF_LIFE_MS)
        [signal] = engine.update_signals()
        assert signal.confidence == pytest.approx(0.2)

    def test_reinforcement_is_capped(self, engine_factory):
        engine = engine_factory(StubDetector(surge(confidence=0.95)))
        engine.process_events([])
        engine.process_events([])

        assert engine.get_active_signals()[0].confidence == 0.99

    def test_different_tokens_are_separate_signals(self, engine_factory):
        engine = engine_factory(StubDetector(surge(token="TOKEN_A"), surge(token="TOKEN_B")))

        created = engine.process_events([])

        assert {s.token_address for s in created} == {"TOKEN_A", "TOKEN_B"}
        assert len({s.id for s in created}) == 2


class TestWindowAndIsolation:

    def test_window_trims_old_events(self, clock, make_event):
        engine = SignalEngine(SignalSettings(WINDOW_SIZE_MS=60_000), clock=clock, detectors=[])
        engine.process_events([make_event(EventType.PRICE_UPDATE, "TOKEN_A", price=1.0)])
        assert len(engine.window) == 1

        clock.advance(60_000)
        engine.process_events([])
        assert engine.window == []

    def test_malformed_items_are_skipped(self, clock, make_event):
        engine = SignalEngine(clock=clock, detectors=[])

        engine.process_events(["not an event", make_event(EventType.HEARTBEAT)])

        assert engine.stats['events_rejected'] == 1
        assert engine.stats['events_processed'] == 1

    def test_failing_detector_does_not_block_others(self, engine_factory):
        good = StubDetector(surge())
        engine = engine_factory(FailingDetector(), good)

        created = engine.process_events([])

        assert len(created) == 1
        assert good.calls == 1
        assert engine.stats['detector_errors'] == 1

    def test_end_to_end_volume_surge(self, clock, make_event, signal_settings):
        engine = SignalEngine(signal_settings, clock=clock)
        events = [
            make_event(EventType.VOLUME_SPIKE, "TOKEN_A", multiplier=3.0),
            make_event(EventType.VOLUME_SPIKE, "TOKEN_A", multiplier=3.0),
        ]

        [signal] = engine.process_events(events, ["TOKEN_A"])

        assert signal.type == SignalType.VOLUME_SURGE
        assert signal.confidence == pytest.approx(0.8)
        assert signal.id.startswith(f"signal_{clock.now_ms()}_")


class TestAccessors:

    def test_accessors_return_copies(self, engine_factory):
        engine = engine_factory(StubDetector(surge()))
        engine.process_events([])

        snapshot = engine.get_active_signals()[0]
        snapshot.confidence = 0.0
        snapshot.source_event_ids.append("tampered")

        live = engine.get_active_signals()[0]
        assert live.confidence == pytest.approx(0.9)
        assert "tampered" not in live.source_event_ids

    def test_strongest_signal_uses_confidence_times_strength(self, engine_factory):
        engine = engine_factory(StubDetector(
            surge(confidence=0.9, strength=0.2, token="TOKEN_A"),
            surge(confidence=0.6, strength=0.6, token="TOKEN_B"),
        ))
        engine.process_events([])

        assert engine.get_strongest_signal().token_address == "TOKEN_B"
        assert engine.get_strongest_signal("TOKEN_A").token_address == "TOKEN_A"
        assert engine.get_strongest_signal("TOKEN_C") is None
        assert [s.token_address for s in engine.get_signals_for_token("TOKEN_A")] == ["TOKEN_A"]

    def test_restore_and_serialize(self, engine_factory):
        engine = engine_factory(StubDetector(surge()))
        [created] = engine.process_events([])

        other = engine_factory()
        other.restore([Signal.from_dict(created.to_dict())])

        [restored] = other.get_active_signals()
        assert restored.id == created.id
        assert restored.base_confidence == created.base_confidence
        assert restored.decay_anchor == created.decay_anchor
