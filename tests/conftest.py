"""
Pytest configuration and shared fixtures for the trading agent test suite.

Every time-dependent component is driven by a ``ManualClock`` so that decay,
cooldowns and day boundaries are deterministic.
"""

import itertools
from typing import Any, Dict, Optional

import pytest

from moodtrader.config.settings import (
    DecisionSettings,
    ExecutionSettings,
    LoopSettings,
    RiskSettings,
    Settings,
    SignalSettings,
    StateSettings,
)
from moodtrader.decision.core import Intent, IntentStateSnapshot, IntentType
from moodtrader.events.core import Event, EventSource, EventType, payload_type_for
from moodtrader.execution.core import Position
from moodtrader.state.core import AgentState
from moodtrader.utils.clock import ManualClock

# 2023-11-14T22:13:20Z
START_MS = 1_700_000_000_000
MINUTE_MS = 60_000


# ==============================
# Pytest Configuration
# ==============================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests for individual components"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests for component interactions"
    )


# ==============================
# Clock and Settings Fixtures
# ==============================

@pytest.fixture
def clock() -> ManualClock:
    """Manual clock starting at a fixed instant."""
    return ManualClock(start_ms=START_MS)


@pytest.fixture
def signal_settings() -> SignalSettings:
    return SignalSettings(
        WINDOW_SIZE_MS=3_600_000,
        DECAY_HALF_LIFE_MS=1_800_000,
        MIN_CONFIDENCE=0.3,
        DECAY_RATE=0.5,
    )


@pytest.fixture
def decision_settings() -> DecisionSettings:
    return DecisionSettings(INTENT_COOLDOWN_MS=60_000, MIN_SIGNAL_CONFIDENCE=0.5)


@pytest.fixture
def risk_settings() -> RiskSettings:
    return RiskSettings(
        MAX_POSITION_SIZE_PCT=10.0,
        MAX_DAILY_LOSS_PCT=20.0,
        MAX_TOTAL_EXPOSURE_PCT=50.0,
        DAILY_TRADE_LIMIT=None,
    )


@pytest.fixture
def execution_settings() -> ExecutionSettings:
    """Zero-slippage paper execution with 100 units of capital."""
    return ExecutionSettings(PAPER_MODE=True, INITIAL_CAPITAL=100.0, SLIPPAGE_PCT=0.0)


@pytest.fixture
def settings(signal_settings, decision_settings, risk_settings, execution_settings, tmp_path) -> Settings:
    """Full settings for orchestrator tests: every tick polls, decides and may save."""
    return Settings(
        signals=signal_settings,
        state=StateSettings(BASE_RISK_APPETITE=0.4),
        decision=decision_settings,
        risk=risk_settings,
        execution=execution_settings,
        loop=LoopSettings(
            TICK_INTERVAL_MS=MINUTE_MS,
            PERCEPTION_POLL_MS=MINUTE_MS,
            STATE_SAVE_INTERVAL_MS=MINUTE_MS,
            POLL_TIMEOUT_SECONDS=1.0,
        ),
        DATA_DIR=str(tmp_path),
    )


# ==============================
# Event Fixtures
# ==============================

@pytest.fixture
def make_event(clock):
    """
    Factory for events stamped at the current clock time.

    Usage:
        make_event(EventType.VOLUME_SPIKE, "TOKEN_A", multiplier=3.0)
    """
    counter = itertools.count(1)

    def _make(
        event_type: EventType,
        token_address: Optional[str] = None,
        timestamp: Optional[int] = None,
        source: EventSource = EventSource.SOLANA_MARKET,
        **data: Any,
    ) -> Event:
        payload_cls = payload_type_for(event_type)
        raw: Dict[str, Any] = {_camel(k): v for k, v in data.items()}
        return Event(
            id=f"evt_{next(counter)}",
            timestamp=clock.now_ms() if timestamp is None else timestamp,
            source=source,
            type=event_type,
            token_address=token_address,
            token_symbol=token_address.split("_")[-1] if token_address else None,
            data=payload_cls.from_dict(raw),
        )

    return _make


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


# ==============================
# State, Position and Intent Fixtures
# ==============================

@pytest.fixture
def neutral_state() -> AgentState:
    return AgentState(timestamp=START_MS)


@pytest.fixture
def make_position():
    """Factory for open positions marked at ``current_price``."""

    def _make(
        token_address: str = "TOKEN_A",
        amount: float = 10.0,
        average_entry_price: float = 1.0,
        current_price: Optional[float] = None,
    ) -> Position:
        position = Position(
            token_address=token_address,
            token_symbol=token_address.split("_")[-1],
            amount=amount,
            average_entry_price=average_entry_price,
            opened_at=START_MS,
            last_updated_at=START_MS,
            entry_intent_id="intent_test",
        )
        if current_price is not None:
            position.mark(current_price, START_MS)
        return position

    return _make


@pytest.fixture
def make_intent():
    """Factory for intents with a neutral state snapshot."""
    counter = itertools.count(1)

    def _make(
        intent_type: IntentType,
        token_address: Optional[str] = "TOKEN_A",
        size_pct: Optional[float] = 10.0,
        mood: str = "neutral",
    ) -> Intent:
        return Intent(
            id=f"intent_{next(counter)}",
            timestamp=START_MS,
            type=intent_type,
            primary_reason="test",
            state_snapshot=IntentStateSnapshot(
                mood=mood, confidence=0.5, risk_appetite=0.4, mode="observing"
            ),
            token_address=token_address,
            token_symbol=token_address.split("_")[-1] if token_address else None,
            size_pct=size_pct,
        )

    return _make
