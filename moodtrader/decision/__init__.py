"""
Decision engine: precedence rules that turn signals and state into intents.
"""

from .core import BUY_INTENTS, PASSIVE_INTENTS, Intent, IntentStateSnapshot, IntentType
from .decision_engine import DecisionEngine, entry_size_pct, entry_threshold

__all__ = [
    "BUY_INTENTS",
    "PASSIVE_INTENTS",
    "Intent",
    "IntentStateSnapshot",
    "IntentType",
    "DecisionEngine",
    "entry_size_pct",
    "entry_threshold",
]
