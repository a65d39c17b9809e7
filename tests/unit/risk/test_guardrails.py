"""
Unit tests for the risk guardrails.
"""
import pytest

from moodtrader.config.settings import RiskSettings
from moodtrader.decision.core import IntentType
from moodtrader.execution.core import TradeDirection, TradeResult, TradeStatus
from moodtrader.risk.guardrails import RiskGuardrails, calculate_exposure
from moodtrader.state.core import OperationalMode


def sell(pnl, trade_id="t1"):
    return TradeResult(
        id=trade_id,
        timestamp=0,
        intent_id="i1",
        token_address="TOKEN_A",
        direction=TradeDirection.SELL,
        status=TradeStatus.FILLED,
        filled_amount=1.0,
        realized_pnl=pnl,
    )


@pytest.fixture
def guardrails(risk_settings):
    return RiskGuardrails(risk_settings, starting_capital=100.0)


class TestSizing:

    def test_oversized_entry_is_clamped(self, guardrails, make_intent):
        intent = make_intent(IntentType.ENTER, size_pct=15.0)

        result = guardrails.check_intent(intent, [], 100.0)

        assert result.approved
        assert result.adjusted_size_pct == 10.0
        assert result.reason == "Size reduced from 15% to 10%"
        assert intent.risk_approved is True
        assert intent.size_pct == 15.0

    def test_missing_size_rejected(self, guardrails, make_intent):
        result = guardrails.check_intent(make_intent(IntentType.ADD, size_pct=None), [], 100.0)

        assert not result.approved
        assert result.reason == "No size specified"

    @pytest.mark.parametrize("intent_type", [IntentType.ENTER, IntentType.ADD, IntentType.REDUCE])
    @pytest.mark.parametrize("size_pct", [0.0, -10.0])
    def test_non_positive_size_rejected(self, guardrails, make_intent, intent_type, size_pct):
        result = guardrails.check_intent(make_intent(intent_type, size_pct=size_pct), [], 100.0)

        assert not result.approved
        assert result.reason == f"Invalid size {size_pct:g}%"

    def test_passive_intents_always_approved(self, guardrails, make_intent):
        guardrails.record_trade(sell(-50.0))

        result = guardrails.check_intent(make_intent(IntentType.WAIT, token_address=None, size_pct=None), [], 0.0,
                                         OperationalMode.PAUSED)

        assert result.approved


class TestExposure:

    def test_calculate_exposure(self, make_position):
        positions = [make_position(amount=10.0, current_price=2.0), make_position("TOKEN_B", amount=5.0)]

        assert calculate_exposure(positions, 50.0) == pytest.approx(50.0)
        assert calculate_exposure([], 0.0) == 0.0
        assert calculate_exposure(positions, 0.0) == float("inf")

    def test_entry_blocked_at_max_exposure(self, guardrails, make_intent, make_position):
        positions = [make_position("TOKEN_B", amount=50.0, current_price=1.0)]

        result = guardrails.check_intent(make_intent(IntentType.ENTER, size_pct=5.0), positions, 100.0)

        assert not result.approved
        assert result.reason.startswith("Maximum exposure reached")

    def test_exit_allowed_at_max_exposure(self, guardrails, make_intent, make_position):
        positions = [make_position("TOKEN_A", amount=80.0, current_price=1.0)]

        result = guardrails.check_intent(make_intent(IntentType.EXIT, size_pct=100.0), positions, 100.0)

        assert result.approved
        assert result.adjusted_size_pct is None


class TestSafeMode:

    def test_daily_loss_trips_safe_mode(self, guardrails, make_intent):
        guardrails.record_trade(sell(-10.0, "t1"))
        assert not guardrails.should_enter_safe_mode()

        guardrails.record_trade(sell(-10.0, "t2"))
        assert guardrails.daily_loss_pct == pytest.approx(20.0)
        assert guardrails.should_enter_safe_mode()

        intent = make_intent(IntentType.EXIT, size_pct=100.0)
        result = guardrails.check_intent(intent, [], 80.0)
        assert not result.approved
        assert result.reason.startswith("Safe mode active due to losses")
        assert intent.risk_approved is False
        assert intent.risk_block_reason == result.reason

    def test_profit_never_trips_safe_mode(self, guardrails):
        guardrails.record_trade(sell(40.0))
        assert guardrails.daily_loss_pct == 0.0
        assert not guardrails.should_enter_safe_mode()

    def test_reset_daily_clears_pnl(self, guardrails):
        guardrails.record_trade(sell(-30.0))
        guardrails.reset_daily(starting_capital=70.0)

        assert guardrails.daily_pnl == 0.0
        assert guardrails.daily_trade_count == 0
        assert guardrails.day_start_capital == 70.0
        assert not guardrails.should_enter_safe_mode()
        assert len(guardrails.get_ledger()) == 1

    def test_safe_mode_vetoes_buys_but_not_sells(self, guardrails, make_intent, make_position):
        positions = [make_position(current_price=1.0)]

        enter = guardrails.check_intent(make_intent(IntentType.ADD), positions, 90.0, OperationalMode.SAFE_MODE)
        exit_ = guardrails.check_intent(make_intent(IntentType.EXIT), positions, 90.0, OperationalMode.SAFE_MODE)

        assert not enter.approved
        assert enter.reason == "Safe mode active: no new exposure"
        assert exit_.approved

    @pytest.mark.parametrize("mode", [OperationalMode.PAUSED, OperationalMode.FROZEN])
    def test_halted_modes_reject_everything_active(self, guardrails, make_intent, mode):
        result = guardrails.check_intent(make_intent(IntentType.EXIT), [], 100.0, mode)

        assert not result.approved
        assert result.reason == f"Trading halted: agent is {mode.value}"


class TestLimitsAndLedger:

    def test_daily_trade_limit(self, make_intent):
        guardrails = RiskGuardrails(RiskSettings(DAILY_TRADE_LIMIT=1), starting_capital=100.0)
        guardrails.record_trade(sell(1.0))

        result = guardrails.check_intent(make_intent(IntentType.EXIT), [], 100.0)

        assert not result.approved
        assert result.reason == "Daily trade limit reached"

    def test_ledger_is_bounded_and_restorable(self):
        guardrails = RiskGuardrails(RiskSettings(TRADE_LEDGER_SIZE=2))
        for i in range(3):
            guardrails.record_trade(sell(1.0, f"t{i}"))

        assert [t.id for t in guardrails.get_ledger()] == ["t1", "t2"]

        guardrails.restore_ledger([sell(0.0, "r1")])
        assert [t.id for t in guardrails.get_ledger()] == ["r1"]
        assert guardrails.daily_trade_count == 3

    def test_daily_counters_restorable(self, guardrails, risk_settings):
        guardrails.record_trade(sell(-25.0))
        snapshot = guardrails.daily_snapshot()

        restored = RiskGuardrails(risk_settings, starting_capital=75.0)
        restored.restore_daily(snapshot)

        assert restored.day_start_capital == 100.0
        assert restored.daily_pnl == pytest.approx(-25.0)
        assert restored.daily_trade_count == 1
        assert restored.should_enter_safe_mode()

    def test_stats_track_outcomes(self, guardrails, make_intent):
        guardrails.check_intent(make_intent(IntentType.ENTER, size_pct=15.0), [], 100.0)
        guardrails.check_intent(make_intent(IntentType.ADD, size_pct=None), [], 100.0)

        assert guardrails.stats == {
            'intents_checked': 2,
            'intents_approved': 1,
            'intents_rejected': 1,
            'intents_adjusted': 1,
        }
