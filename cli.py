#!/usr/bin/env python3
"""
Mood Trader - Command Line Interface

Replays a recorded event stream through the full decision loop on simulated
time and prints the resulting portfolio, agent state, signals and trades.

Usage:
    python cli.py replay events.jsonl
    python cli.py replay events.jsonl --capital 250 --tick-ms 5000
    python cli.py replay events.jsonl --format json

Examples:
    # Basic replay with default settings
    python cli.py replay recordings/session.jsonl

    # Persist state between replays
    python cli.py replay recordings/session.jsonl --data-dir data/replay

    # Debug output
    python cli.py replay recordings/session.jsonl --verbose=3
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Load environment variables FIRST before any imports that use settings
from dotenv import load_dotenv
load_dotenv()

from moodtrader.cli.formatter import OutputFormatter
from moodtrader.communication.orchestrator import InitializationError, build_orchestrator
from moodtrader.config.settings import Settings, settings
from moodtrader.events.stream import ReplayEventStream
from moodtrader.utils.clock import ManualClock
from moodtrader.utils.logging import configure_logging, level_for_verbosity

formatter = OutputFormatter()

# Ticks run after the last event so pending signals can decay and positions exit
TRAILING_TICKS = 10


def parse_arguments(argv=None):
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Mood Trader - Autonomous paper-trading agent",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s replay events.jsonl                      # Replay a recording
  %(prog)s replay events.jsonl --capital 250        # Custom starting capital
  %(prog)s replay events.jsonl --tick-ms 5000       # 5s simulated ticks
  %(prog)s replay events.jsonl --format json        # JSON output
  %(prog)s replay events.jsonl --data-dir data/run  # Persist agent state

Verbosity Levels:
  %(prog)s replay events.jsonl --verbose=0          # Silent (errors only)
  %(prog)s replay events.jsonl --verbose=1          # Normal (warnings + errors)
  %(prog)s replay events.jsonl --verbose=2          # Detailed (signals, trades, mood changes)
  %(prog)s replay events.jsonl --verbose=3          # Debug (full verbose output)
        """,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    replay = subparsers.add_parser("replay", help="Replay a recorded event stream")
    replay.add_argument(
        "events_file",
        type=str,
        help="JSONL file with one event per line",
    )
    replay.add_argument(
        "--capital",
        type=float,
        default=None,
        help=f"Starting capital (default: {settings.execution.INITIAL_CAPITAL})",
    )
    replay.add_argument(
        "--tick-ms",
        type=int,
        default=None,
        help=f"Simulated milliseconds per tick (default: {settings.loop.TICK_INTERVAL_MS})",
    )
    replay.add_argument(
        "--data-dir",
        type=str,
        default=None,
        help="Persist state under this directory (default: no persistence)",
    )
    replay.add_argument(
        "--format",
        choices=["table", "json"],
        default="table",
        help="Output format (default: table)",
    )
    replay.add_argument(
        "--verbose",
        "-v",
        nargs="?",
        const=1,
        type=int,
        choices=[0, 1, 2, 3],
        default=1,
        help="Verbosity level: 0=errors-only, 1=normal (default), 2=detailed, 3=debug",
    )

    return parser.parse_args(argv)


def replay_settings(base: Settings, capital=None, tick_ms=None, data_dir=None) -> Settings:
    """
    Derive settings for a replay run.

    Every tick polls the stream, so perception follows the simulated tick.
    """
    tick_ms = tick_ms or base.loop.TICK_INTERVAL_MS
    update = {
        "loop": base.loop.model_copy(update={"TICK_INTERVAL_MS": tick_ms, "PERCEPTION_POLL_MS": tick_ms}),
    }
    if capital is not None:
        update["execution"] = base.execution.model_copy(update={"INITIAL_CAPITAL": capital})
    if data_dir is not None:
        update["DATA_DIR"] = data_dir
    return base.model_copy(update=update)


async def run_replay(args) -> int:
    """
    Replay a recording and print the final report.

    Returns:
        Process exit code
    """
    events_path = Path(args.events_file)
    if not events_path.exists():
        formatter.print_error(f"Events file not found: {events_path}")
        return 1

    config = replay_settings(settings, args.capital, args.tick_ms, args.data_dir)
    clock = ManualClock()
    stream = ReplayEventStream.from_jsonl(events_path, clock=clock)
    if stream.first_timestamp is None:
        formatter.print_error(f"No valid events in {events_path}")
        return 1
    clock.set(stream.first_timestamp)

    try:
        orchestrator = build_orchestrator(
            config, event_stream=stream, clock=clock, persist=args.data_dir is not None
        )
        await orchestrator.initialize()
    except InitializationError as e:
        formatter.print_error(f"Initialization failed: {e}")
        return 1

    if args.format == "table":
        formatter.print_progress(f"Replaying {stream.remaining} events from {events_path}")

    trades = []
    trailing = 0
    try:
        while trailing < TRAILING_TICKS:
            report = await orchestrator.tick()
            if report.trade is not None:
                trades.append(report.trade.to_dict())
            if stream.remaining == 0:
                trailing += 1
            clock.advance(config.loop.TICK_INTERVAL_MS)
    finally:
        await orchestrator.shutdown()

    portfolio = orchestrator.state_manager.get_portfolio_state()
    state = orchestrator.state_manager.get_agent_state()
    signals = orchestrator.state_manager.get_active_signals() or []

    if args.format == "json":
        print(formatter.format_json({
            "portfolio": portfolio,
            "state": state,
            "signals": signals,
            "trades": trades,
            "metrics": orchestrator.metrics,
        }))
    else:
        formatter.format_portfolio(portfolio)
        formatter.format_state(state)
        formatter.format_signals(signals)
        formatter.format_trades(trades)
        formatter.print_success(
            f"Replay finished after {orchestrator.metrics['ticks']} ticks "
            f"({orchestrator.metrics['trades']} trades, {orchestrator.metrics['rejections']} rejected)"
        )
    return 0


def main(argv=None) -> int:
    """Main CLI entry point."""
    args = parse_arguments(argv)
    configure_logging(level_for_verbosity(args.verbose), stream=sys.stderr)

    if args.command == "replay":
        try:
            return asyncio.run(run_replay(args))
        except KeyboardInterrupt:
            formatter.print_error("Interrupted")
            return 130
    return 1


if __name__ == "__main__":
    sys.exit(main())
