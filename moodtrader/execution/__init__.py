"""
Execution: trade results, positions, the executor interface and the paper
trading simulator.
"""

from .core import Position, TradeDirection, TradeResult, TradeStatus
from .base import BaseExecutor, TimeoutExecutor, failed_result
from .simulator import (
    InsufficientCapitalError,
    PaperTradingSimulator,
    PositionNotFoundError,
    SimulationError,
)

__all__ = [
    "Position",
    "TradeDirection",
    "TradeResult",
    "TradeStatus",
    "BaseExecutor",
    "TimeoutExecutor",
    "failed_result",
    "InsufficientCapitalError",
    "PaperTradingSimulator",
    "PositionNotFoundError",
    "SimulationError",
]
