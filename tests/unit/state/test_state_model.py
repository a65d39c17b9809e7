"""
Unit tests for the psychological state model.
"""
import pytest

from moodtrader.execution.core import TradeDirection, TradeResult, TradeStatus
from moodtrader.state.core import AgentState, Mood, OperationalMode, TokenConvictions
from moodtrader.state.state_model import MS_PER_DAY, StateModel, derive_moods, derive_primary_mood


def trade(status=TradeStatus.FILLED, filled=10.0, error=None, timestamp=0):
    return TradeResult(
        id="t1",
        timestamp=timestamp,
        intent_id="i1",
        token_address="TOKEN_A",
        direction=TradeDirection.BUY,
        status=status,
        filled_amount=filled,
        error=error,
    )


@pytest.fixture
def model(clock):
    return StateModel(clock=clock)


class TestMoodDerivation:

    def test_regret_outranks_suspicion(self):
        state = AgentState(regret=0.7, suspicion=0.8)

        primary, secondary = derive_moods(state)

        assert primary == Mood.REGRETFUL
        assert secondary == Mood.SUSPICIOUS

    @pytest.mark.parametrize("params, expected", [
        ({"fatigue": 0.75}, Mood.FATIGUED),
        ({"suspicion": 0.65}, Mood.SUSPICIOUS),
        ({"suspicion": 0.2, "confidence": 0.75, "conviction": 0.65}, Mood.CONFIDENT),
        ({"suspicion": 0.2, "confidence": 0.55, "aggression": 0.7}, Mood.AGGRESSIVE),
        ({"suspicion": 0.2, "conviction": 0.75}, Mood.OBSESSED),
        ({"confidence": 0.3}, Mood.CAUTIOUS),
        ({}, Mood.NEUTRAL),
    ])
    def test_priority_cascade(self, params, expected):
        assert derive_primary_mood(AgentState(**params)) == expected

    def test_secondary_needs_score_above_threshold(self):
        state = AgentState(suspicion=0.3, regret=0.1, fatigue=0.4)
        assert derive_moods(state) == (Mood.NEUTRAL, None)

    def test_low_confidence_yields_cautious_secondary(self):
        state = AgentState(confidence=0.45, suspicion=0.65)
        assert derive_moods(state) == (Mood.SUSPICIOUS, Mood.CAUTIOUS)


class TestTradeFeedback:

    def test_win_raises_confidence_and_streak(self, model):
        model.update_from_trade(trade())
        state = model.get_state()

        assert state.confidence == pytest.approx(0.58)
        assert state.conviction == pytest.approx(0.56)
        assert state.risk_appetite == pytest.approx(0.43)
        assert state.recent_win_streak == 1
        assert state.recent_loss_streak == 0

    def test_failed_trade_counts_as_loss(self, model):
        model.update_from_trade(trade(status=TradeStatus.FAILED, filled=None, error="No price"))
        state = model.get_state()

        assert state.confidence == pytest.approx(0.38)
        assert state.regret == pytest.approx(0.15)
        assert state.suspicion == pytest.approx(0.6)
        assert state.risk_appetite == pytest.approx(0.32)
        assert state.recent_loss_streak == 1

    def test_cancelled_trade_leaves_parameters(self, model):
        before = model.get_state()
        model.update_from_trade(trade(status=TradeStatus.CANCELLED, filled=None))
        after = model.get_state()

        assert after.confidence == before.confidence
        assert after.recent_win_streak == after.recent_loss_streak == 0

    def test_parameters_stay_bounded(self, model):
        for _ in range(30):
            model.update_from_trade(trade(status=TradeStatus.FAILED, error="boom"))
        state = model.get_state()

        assert state.confidence == pytest.approx(0.1)
        assert state.regret == pytest.approx(0.9)
        assert state.suspicion == pytest.approx(0.9)
        assert state.risk_appetite == pytest.approx(0.1)
        assert state.primary_mood == Mood.REGRETFUL


class TestTick:

    def test_emotions_decay_toward_baseline(self, model):
        model.update_from_trade(trade(status=TradeStatus.FAILED, error="boom"))
        model.tick()
        state = model.get_state()

        assert state.regret == pytest.approx(0.15 * 0.98)
        assert state.suspicion == pytest.approx(0.6 * 0.99)
        assert state.aggression == pytest.approx(0.3 * 0.97)
        assert state.confidence == pytest.approx(0.38 + (0.5 - 0.38) * 0.05)
        assert state.conviction == pytest.approx(0.5 * 0.95)

    def test_fatigue_grows_after_two_idle_days(self, model, clock):
        model.update_from_trade(trade(timestamp=clock.now_ms()))
        clock.advance(MS_PER_DAY)
        model.tick()
        assert model.get_state().fatigue == 0.0

        clock.advance(2 * MS_PER_DAY)
        model.tick()
        state = model.get_state()
        assert state.days_since_last_trade == pytest.approx(3.0)
        assert state.fatigue == pytest.approx(0.02)


class TestModeAndSnapshots:

    def test_set_mode_leaves_psychology(self, model):
        before = model.get_state()
        model.set_mode(OperationalMode.SAFE_MODE)
        after = model.get_state()

        assert model.mode == OperationalMode.SAFE_MODE
        assert after.confidence == before.confidence
        assert after.primary_mood == before.primary_mood

    def test_get_state_returns_independent_copy(self, model):
        snapshot = model.get_state()
        snapshot.confidence = 0.0
        snapshot.token_convictions.set("TOKEN_A", 0.0)

        state = model.get_state()
        assert state.confidence == 0.5
        assert "TOKEN_A" not in state.token_convictions

    def test_token_conviction_adjustments(self, model):
        assert model.adjust_token_conviction("TOKEN_A", -0.3) == pytest.approx(0.2)
        assert model.adjust_token_conviction("TOKEN_A", 5.0) == 1.0

    def test_restore_rederives_moods(self, model):
        model.restore(AgentState(regret=0.8, primary_mood=Mood.CONFIDENT, mode=OperationalMode.PAUSED))
        state = model.get_state()

        assert state.primary_mood == Mood.REGRETFUL
        assert state.mode == OperationalMode.PAUSED

    def test_state_serialization(self, model):
        model.adjust_token_conviction("TOKEN_A", 0.2)
        model.set_monologue("watching")
        data = model.get_state().to_dict()

        assert data["tokenConvictions"] == [{"tokenAddress": "TOKEN_A", "conviction": pytest.approx(0.7)}]
        assert AgentState.from_dict(data) == model.get_state()


class TestTokenConvictions:

    def test_reads_never_insert(self):
        convictions = TokenConvictions()

        assert convictions.get("TOKEN_A") == 0.5
        assert len(convictions) == 0

    def test_values_are_clamped(self):
        convictions = TokenConvictions({"TOKEN_A": 1.5, "TOKEN_B": -1})

        assert dict(convictions.items()) == {"TOKEN_A": 1.0, "TOKEN_B": 0.0}
        assert TokenConvictions.from_list(convictions.to_list()) == convictions
