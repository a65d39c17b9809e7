"""
Configuration for the trading agent.
"""

from .settings import (
    DecisionSettings,
    ExecutionSettings,
    LoopSettings,
    RiskSettings,
    Settings,
    SignalSettings,
    StateSettings,
    settings,
)

__all__ = [
    "DecisionSettings",
    "ExecutionSettings",
    "LoopSettings",
    "RiskSettings",
    "Settings",
    "SignalSettings",
    "StateSettings",
    "settings",
]
