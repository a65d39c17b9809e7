"""
Psychological state model: mood, risk appetite and operational mode.
"""

from .core import AgentState, Mood, OperationalMode, TokenConvictions
from .state_model import StateModel, derive_moods, derive_primary_mood

__all__ = [
    "AgentState",
    "Mood",
    "OperationalMode",
    "TokenConvictions",
    "StateModel",
    "derive_moods",
    "derive_primary_mood",
]
