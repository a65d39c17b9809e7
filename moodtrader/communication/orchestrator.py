"""
Orchestrates the closed decision loop.

One tick runs sequentially through: event stream -> signal engine -> state
model -> decision engine -> risk guardrails -> executor, then feeds the trade
outcome back into the state model and publishes snapshots. No two ticks ever
run concurrently; the only suspension points are the event stream poll and
the executor call, both bounded by timeouts.
"""
import asyncio
import dataclasses
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Dict, List, Optional

from moodtrader.config.settings import Settings
from moodtrader.decision.core import Intent, IntentType
from moodtrader.decision.decision_engine import DecisionEngine
from moodtrader.events.core import Event, EventType
from moodtrader.events.stream import BaseEventStream, ReplayEventStream
from moodtrader.execution.base import BaseExecutor, TimeoutExecutor
from moodtrader.execution.core import TradeResult
from moodtrader.execution.simulator import PaperTradingSimulator
from moodtrader.risk.guardrails import RiskCheckResult, RiskGuardrails
from moodtrader.signals.core import Signal
from moodtrader.signals.signal_engine import SignalEngine
from moodtrader.state.core import AgentState, OperationalMode
from moodtrader.state.state_model import StateModel
from moodtrader.utils.clock import Clock, SystemClock
from moodtrader.utils.logging import get_logger
from moodtrader.utils.persistence import JsonStore
from .message_bus import TOPIC_INTENT, TOPIC_MODE, TOPIC_SIGNALS, TOPIC_TRADE, MessageBus
from .state_manager import StateManager

logger = get_logger(__name__)

AGENT_STATE_FILE = "agent_state.json"
PORTFOLIO_FILE = "portfolio.json"
TRADES_FILE = "trades.jsonl"
TRACKED_TOKENS_FILE = "tracked_tokens.json"
RISK_STATE_FILE = "risk_state.json"

PRICE_EVENT_TYPES = frozenset({EventType.PRICE_UPDATE, EventType.PRICE_CHANGE})


class InitializationError(Exception):
    """Raised when a mandatory collaborator cannot be initialized."""


@dataclass
class TickReport:
    """What happened during one tick."""
    cycle: int
    timestamp: int
    events: List[Event] = field(default_factory=list)
    new_signals: List[Signal] = field(default_factory=list)
    active_signals: List[Signal] = field(default_factory=list)
    intent: Optional[Intent] = None
    risk_check: Optional[RiskCheckResult] = None
    trade: Optional[TradeResult] = None


def extract_prices(events: List[Event]) -> Dict[str, float]:
    """Latest reported price per token from price events."""
    prices: Dict[str, float] = {}
    for event in sorted(events, key=lambda e: e.timestamp):
        if event.type in PRICE_EVENT_TYPES and event.token_address and event.data.price:
            prices[event.token_address] = event.data.price
    return prices


class Orchestrator:
    """
    Owns every core component and drives the tick loop.
    """

    def __init__(
        self,
        config: Settings,
        event_stream: BaseEventStream,
        executor: BaseExecutor,
        clock: Optional[Clock] = None,
        store: Optional[JsonStore] = None,
        message_bus: Optional[MessageBus] = None,
        state_manager: Optional[StateManager] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            config: Application settings
            event_stream: Source of observations
            executor: Executor for approved intents (should already be timeout-wrapped)
            clock: Time source shared with every component
            store: Persistence; None disables persistence
            message_bus: Bus for external consumers
            state_manager: Snapshot store for external observers
        """
        self.config = config
        self.clock = clock or SystemClock()
        self.event_stream = event_stream
        self.executor = executor
        self.store = store
        self.message_bus = message_bus or MessageBus()
        self.state_manager = state_manager or StateManager()

        self.signal_engine = SignalEngine(config.signals, clock=self.clock)
        self.state_model = StateModel(config.state, clock=self.clock)
        self.decision_engine = DecisionEngine(config.decision, clock=self.clock)
        self.risk = RiskGuardrails(config.risk, starting_capital=config.execution.INITIAL_CAPITAL)

        self.running = False
        self.cycle = 0
        self._stop_event = asyncio.Event()
        self._last_poll: Optional[int] = None
        self._last_save: Optional[int] = None
        self._current_day: Optional[date] = None
        self._safe_mode_tripped = False

        self.metrics = {
            'ticks': 0,
            'tick_errors': 0,
            'events': 0,
            'intents': 0,
            'trades': 0,
            'rejections': 0,
        }

    # -- lifecycle ---------------------------------------------------------

    async def initialize(self) -> None:
        """
        Initialize collaborators and load persisted state.

        Raises:
            InitializationError: If the stream, the executor or persisted state
                cannot be loaded
        """
        logger.info("Initializing trading agent...")
        try:
            if self.store is not None:
                self.store.initialize()
            await self.event_stream.initialize()
            await self.executor.initialize()
            self._load_state()
            balance = await self.executor.get_balance()
            self._current_day = self.clock.today()
            if not self._restore_daily_risk():
                self.risk.reset_daily(starting_capital=balance + self._position_value())
        except Exception as e:
            logger.error(f"Initialization failed: {e}", exc_info=True)
            raise InitializationError(str(e)) from e

        await self._publish_snapshots()
        logger.info(f"Agent initialized with capital {balance:.4f}")

    async def run(self, max_ticks: Optional[int] = None) -> None:
        """
        Run ticks until ``stop`` is called (or ``max_ticks`` ticks have run).

        A failing tick is logged and the loop continues with the next one.
        """
        if self.running:
            logger.warning("Agent already running")
            return

        self.running = True
        self._stop_event.clear()
        logger.info("Agent started")
        ticks = 0

        while self.running:
            try:
                await self.tick()
            except Exception as e:
                self.metrics['tick_errors'] += 1
                logger.error(f"Tick error: {e}", exc_info=True)

            ticks += 1
            if max_ticks is not None and ticks >= max_ticks:
                break
            await self._sleep(self.config.loop.TICK_INTERVAL_MS / 1000)

        self.running = False
        logger.info("Agent loop exited")

    async def _sleep(self, seconds: float) -> None:
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass

    def stop(self) -> None:
        """Request a cooperative stop; the current tick completes first."""
        if self.running:
            logger.info("Stopping agent...")
        self.running = False
        self._stop_event.set()

    async def shutdown(self) -> None:
        """Flush persisted state and release collaborators."""
        self.save_state()
        await self.event_stream.shutdown()
        await self.executor.shutdown()
        logger.info("Agent stopped")

    # -- control surface ---------------------------------------------------

    def pause(self) -> None:
        logger.warning("Trading paused by operator")
        self._set_mode(OperationalMode.PAUSED)

    def resume(self) -> None:
        logger.info("Trading resumed by operator")
        self._set_mode(OperationalMode.OBSERVING)

    def set_safe_mode(self, enabled: bool) -> None:
        logger.warning(f"Safe mode {'enabled' if enabled else 'disabled'} by operator")
        self._set_mode(OperationalMode.SAFE_MODE if enabled else OperationalMode.OBSERVING)

    def _set_mode(self, mode: OperationalMode) -> None:
        self.state_model.set_mode(mode)
        self.message_bus.publish(TOPIC_MODE, mode)

    # -- tick --------------------------------------------------------------

    async def tick(self) -> TickReport:
        """Run one full pass through the pipeline."""
        self.cycle += 1
        self.metrics['ticks'] += 1
        now = self.clock.now_ms()
        report = TickReport(cycle=self.cycle, timestamp=now)
        logger.debug(f"Cycle {self.cycle}")

        # 1. Perception
        report.events = await self._poll_events(now)
        prices = extract_prices(report.events)
        if prices:
            self.executor.update_positions(prices)

        # 2. Signals
        if report.events:
            report.new_signals = self.signal_engine.process_events(
                report.events, self.event_stream.tracked_tokens()
            )
            for signal in report.new_signals:
                logger.info(
                    f"Signal {signal.type.value} {signal.token_symbol or signal.token_address or 'market'} "
                    f"confidence={signal.confidence:.2f} strength={signal.strength:.2f}"
                )
            if report.new_signals:
                self.message_bus.publish(TOPIC_SIGNALS, report.new_signals)
        report.active_signals = self.signal_engine.update_signals()

        # 3. State
        self.state_model.tick()
        await self._check_day_boundary()
        self._check_safe_mode()
        agent_state = self.state_model.get_state()

        # 4. Decision
        positions = self.executor.get_positions()
        intent = self.decision_engine.decide(report.active_signals, agent_state, positions)

        if intent is not None:
            self.metrics['intents'] += 1
            report.intent = intent

            # 5. Risk
            capital = await self.executor.get_balance()
            report.risk_check = self.risk.check_intent(intent, positions, capital, agent_state.mode)
            self.message_bus.publish(TOPIC_INTENT, intent)

            if not report.risk_check.approved:
                self.metrics['rejections'] += 1
            elif intent.type == IntentType.FREEZE:
                logger.warning(f"Freeze requested: {intent.primary_reason}")
                self._set_mode(OperationalMode.FROZEN)
            elif not intent.is_passive:
                # 6. Execution
                report.trade = await self._execute(intent, report.risk_check)

        await self._publish_snapshots(report.active_signals, report.intent)

        if self._last_save is None or now - self._last_save >= self.config.loop.STATE_SAVE_INTERVAL_MS:
            self.save_state()
            self._last_save = now

        return report

    async def _poll_events(self, now: int) -> List[Event]:
        if self._last_poll is not None and now - self._last_poll < self.config.loop.PERCEPTION_POLL_MS:
            return []
        self._last_poll = now

        try:
            events = await asyncio.wait_for(
                self.event_stream.poll(), timeout=self.config.loop.POLL_TIMEOUT_SECONDS
            )
        except asyncio.TimeoutError:
            logger.warning(f"Event poll timed out after {self.config.loop.POLL_TIMEOUT_SECONDS}s")
            return []
        except Exception as e:
            logger.error(f"Event poll failed: {e}", exc_info=True)
            return []

        if events:
            self.metrics['events'] += len(events)
            logger.debug(f"Perceived {len(events)} events")
        return list(events)

    async def _execute(self, intent: Intent, risk_check: RiskCheckResult) -> TradeResult:
        if risk_check.adjusted_size_pct is not None:
            intent = dataclasses.replace(intent, size_pct=risk_check.adjusted_size_pct)

        trade = await self.executor.execute(intent)
        self.metrics['trades'] += 1

        self.risk.record_trade(trade)
        self.state_model.update_from_trade(trade)
        if self.store is not None:
            self.store.append(TRADES_FILE, trade.to_dict())
        self.message_bus.publish(TOPIC_TRADE, trade)

        logger.info(
            f"Trade {trade.status.value}: {trade.direction.value} "
            f"{trade.token_symbol or trade.token_address}"
        )

        self._check_safe_mode()
        self._save_daily_risk()
        return trade

    async def _check_day_boundary(self) -> None:
        today = self.clock.today()
        if self._current_day is None:
            self._current_day = today
            return
        if today != self._current_day:
            logger.info(f"Day boundary crossed: {self._current_day} -> {today}")
            self._current_day = today
            self._safe_mode_tripped = False
            self.risk.reset_daily(starting_capital=await self._total_value())
            self._save_daily_risk()

    def _check_safe_mode(self) -> None:
        """Flip to SAFE_MODE once per day when the daily loss limit is breached."""
        if self._safe_mode_tripped or not self.risk.should_enter_safe_mode():
            return
        self._safe_mode_tripped = True
        if self.state_model.mode not in (OperationalMode.PAUSED, OperationalMode.FROZEN):
            logger.warning(
                f"Daily loss {self.risk.daily_loss_pct:.1f}% reached limit "
                f"{self.config.risk.MAX_DAILY_LOSS_PCT:.1f}%: entering safe mode"
            )
            self._set_mode(OperationalMode.SAFE_MODE)

    def _position_value(self) -> float:
        return sum(p.market_value for p in self.executor.get_positions())

    async def _total_value(self) -> float:
        return await self.executor.get_balance() + self._position_value()

    async def _publish_snapshots(
        self,
        signals: Optional[List[Signal]] = None,
        intent: Optional[Intent] = None,
    ) -> None:
        state = self.state_model.get_state()
        capital = await self.executor.get_balance()
        position_value = self._position_value()

        self.state_manager.set_agent_state(state.to_dict())
        self.state_manager.set_portfolio_state({
            "capital": capital,
            "totalValue": capital + position_value,
            "positions": [p.to_dict() for p in self.executor.get_positions()],
            "dailyPnl": self.risk.daily_pnl,
            "dailyTradeCount": self.risk.daily_trade_count,
            "safeMode": state.mode == OperationalMode.SAFE_MODE,
            "tradingPaused": state.mode == OperationalMode.PAUSED,
        })
        if signals is not None:
            self.state_manager.set_active_signals([s.to_dict() for s in signals])
        if intent is not None:
            self.state_manager.set_last_intent(intent.to_dict())

    def get_state(self) -> AgentState:
        return self.state_model.get_state()

    # -- persistence -------------------------------------------------------

    def save_state(self) -> None:
        """Persist agent state, portfolio, trailing ledger, tracked tokens and daily risk counters."""
        if self.store is None:
            return
        self.store.write(AGENT_STATE_FILE, self.state_model.get_state().to_dict())
        portfolio = self.executor.snapshot()
        if portfolio is not None:
            self.store.write(PORTFOLIO_FILE, portfolio)
        self.store.write_lines(TRADES_FILE, [t.to_dict() for t in self.risk.get_ledger()])
        self.store.write(TRACKED_TOKENS_FILE, self.event_stream.tracked_tokens())
        self._save_daily_risk()
        logger.debug("State persisted")

    def _load_state(self) -> None:
        if self.store is None:
            return

        raw_state = self.store.read(AGENT_STATE_FILE)
        if raw_state is not None:
            self.state_model.restore(AgentState.from_dict(raw_state))
            logger.info(f"Restored agent state (mode={self.state_model.mode.value})")

        portfolio = self.store.read(PORTFOLIO_FILE)
        if portfolio is not None:
            self.executor.restore(portfolio)

        trades = self.store.read_lines(TRADES_FILE)
        if trades:
            self.risk.restore_ledger(TradeResult.from_dict(t) for t in trades)

        for token in self.store.read(TRACKED_TOKENS_FILE) or []:
            self.event_stream.track_token(token)

    def _save_daily_risk(self) -> None:
        if self.store is None or self._current_day is None:
            return
        self.store.write(RISK_STATE_FILE, {
            "day": self._current_day.isoformat(),
            "safeModeTripped": self._safe_mode_tripped,
            **self.risk.daily_snapshot(),
        })

    def _restore_daily_risk(self) -> bool:
        """Reload today's risk counters. Returns False when none were saved today."""
        if self.store is None:
            return False
        data = self.store.read(RISK_STATE_FILE)
        if not data or data.get("day") != self._current_day.isoformat():
            return False
        self.risk.restore_daily(data)
        self._safe_mode_tripped = bool(data.get("safeModeTripped", False))
        logger.info(
            f"Restored daily risk counters: {self.risk.daily_trade_count} trades, "
            f"PnL {self.risk.daily_pnl:.4f}"
        )
        return True


def build_orchestrator(
    config: Settings,
    event_stream: Optional[BaseEventStream] = None,
    clock: Optional[Clock] = None,
    persist: bool = True,
) -> Orchestrator:
    """
    Wire an orchestrator from settings.

    Args:
        config: Application settings
        event_stream: Stream to poll; defaults to replaying ``EVENTS_FILE``
        clock: Shared time source
        persist: Whether to persist state under ``DATA_DIR/state``

    Raises:
        InitializationError: If no stream is available or live execution is requested
    """
    clock = clock or SystemClock()

    if not config.execution.PAPER_MODE:
        raise InitializationError("Live execution is not implemented; set EXECUTION_PAPER_MODE=true")

    if event_stream is None:
        if not config.EVENTS_FILE:
            raise InitializationError("No event stream configured; set EVENTS_FILE")
        try:
            event_stream = ReplayEventStream.from_jsonl(config.EVENTS_FILE, clock=clock)
        except OSError as e:
            raise InitializationError(f"Cannot open events file {config.EVENTS_FILE}: {e}") from e

    executor = TimeoutExecutor(
        PaperTradingSimulator(config.execution, clock=clock),
        timeout_seconds=config.execution.EXECUTOR_TIMEOUT_SECONDS,
        clock=clock,
    )
    store = JsonStore(Path(config.DATA_DIR) / "state") if persist else None

    return Orchestrator(config, event_stream, executor, clock=clock, store=store)
