"""
Output formatting for replay results.
"""
import json
from typing import Any, Dict, List

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

console = Console()


class OutputFormatter:
    """Format portfolio, signals, agent state and trades for display."""

    @staticmethod
    def _color_code_status(status: str) -> str:
        """Apply color coding to trade statuses and intent types."""
        if status in ("filled", "enter", "add", "buy"):
            return f"[green]{status.upper()}[/green]"
        elif status in ("failed", "exit", "sell", "freeze"):
            return f"[red]{status.upper()}[/red]"
        elif status in ("reduce", "partial", "cancelled"):
            return f"[yellow]{status.upper()}[/yellow]"
        else:
            return f"[dim]{status.upper()}[/dim]"

    @staticmethod
    def _color_pnl(value: Any) -> str:
        if value is None:
            return "[dim]-[/dim]"
        color = "green" if value >= 0 else "red"
        return f"[{color}]{value:+.4f}[/{color}]"

    @staticmethod
    def format_portfolio(portfolio: Dict[str, Any]) -> None:
        """
        Print the portfolio summary and open positions.

        Args:
            portfolio: Snapshot as published by the orchestrator
        """
        summary = (
            f"[bold]Capital:[/bold] {portfolio['capital']:.4f}    "
            f"[bold]Total value:[/bold] {portfolio['totalValue']:.4f}    "
            f"[bold]Daily PnL:[/bold] {OutputFormatter._color_pnl(portfolio.get('dailyPnl'))}"
        )
        console.print(Panel(summary, title="[*] Portfolio", border_style="cyan"))

        positions = portfolio.get("positions", [])
        if not positions:
            console.print("[yellow]No open positions[/yellow]")
            return

        table = Table(title="Open Positions", show_header=True, header_style="bold magenta")
        table.add_column("Token", style="cyan", no_wrap=True)
        table.add_column("Amount", justify="right")
        table.add_column("Avg Entry", justify="right")
        table.add_column("Price", justify="right")
        table.add_column("Unrealized PnL", justify="right")
        table.add_column("PnL %", justify="right")

        for position in positions:
            pnl_pct = position.get("unrealizedPnLPct")
            table.add_row(
                position.get("tokenSymbol") or position["tokenAddress"],
                f"{position['amount']:.6f}",
                f"{position['averageEntryPrice']:.6f}",
                f"{position['currentPrice']:.6f}" if position.get("currentPrice") is not None else "-",
                OutputFormatter._color_pnl(position.get("unrealizedPnL")),
                f"{pnl_pct:+.2f}%" if pnl_pct is not None else "-",
            )
        console.print(table)

    @staticmethod
    def format_state(state: Dict[str, Any]) -> None:
        """Print the agent's psychological state."""
        table = Table(title="Agent State", show_header=True, header_style="bold magenta")
        table.add_column("Parameter", style="cyan")
        table.add_column("Value", justify="right")

        table.add_row("Mode", state["mode"].upper())
        table.add_row("Mood", state["primaryMood"] + (f" / {state['secondaryMood']}" if state.get("secondaryMood") else ""))
        for key in ("confidence", "suspicion", "conviction", "fatigue", "aggression", "regret", "riskAppetite"):
            table.add_row(key, f"{state[key]:.3f}")
        table.add_row("Win / loss streak", f"{state['recentWinStreak']} / {state['recentLossStreak']}")
        console.print(table)

    @staticmethod
    def format_signals(signals: List[Dict[str, Any]]) -> None:
        """Print active signals."""
        if not signals:
            console.print("[yellow]No active signals[/yellow]")
            return

        table = Table(title="Active Signals", show_header=True, header_style="bold magenta")
        table.add_column("Type", style="cyan", no_wrap=True)
        table.add_column("Token", no_wrap=True)
        table.add_column("Confidence", justify="right")
        table.add_column("Strength", justify="right")
        table.add_column("Urgency", justify="right")
        table.add_column("Description", style="dim")

        for signal in signals:
            table.add_row(
                signal["type"],
                signal.get("tokenSymbol") or signal.get("tokenAddress") or "market",
                f"{signal['confidence']:.1%}",
                f"{signal['strength']:.2f}",
                f"{signal['urgency']:.2f}",
                signal["description"],
            )
        console.print(table)

    @staticmethod
    def format_trades(trades: List[Dict[str, Any]]) -> None:
        """Print the trade history."""
        if not trades:
            console.print("[yellow]No trades executed[/yellow]")
            return

        table = Table(title="Trades", show_header=True, header_style="bold magenta")
        table.add_column("Token", style="cyan", no_wrap=True)
        table.add_column("Side", no_wrap=True)
        table.add_column("Status", no_wrap=True)
        table.add_column("Amount", justify="right")
        table.add_column("Price", justify="right")
        table.add_column("Realized PnL", justify="right")
        table.add_column("Error", style="dim")

        for trade in trades:
            table.add_row(
                trade.get("tokenSymbol") or trade["tokenAddress"],
                OutputFormatter._color_code_status(trade["direction"]),
                OutputFormatter._color_code_status(trade["status"]),
                f"{trade['filledAmount']:.6f}" if trade.get("filledAmount") is not None else "-",
                f"{trade['price']:.6f}" if trade.get("price") is not None else "-",
                OutputFormatter._color_pnl(trade.get("realizedPnl")),
                trade.get("error") or "",
            )
        console.print(table)

    @staticmethod
    def format_json(report: Dict[str, Any]) -> str:
        """
        Format a replay report as JSON.

        Args:
            report: Dictionary with portfolio, state, signals and trades

        Returns:
            JSON string
        """
        return json.dumps(report, indent=2)

    @staticmethod
    def print_progress(message: str, emoji: str = "[*]") -> None:
        """Print a progress message."""
        console.print(f"{emoji} {message}", style="dim")

    @staticmethod
    def print_success(message: str) -> None:
        """Print a success message."""
        console.print(f"[OK] {message}", style="green")

    @staticmethod
    def print_error(message: str) -> None:
        """Print an error message."""
        console.print(f"[ERROR] {message}", style="red bold")
