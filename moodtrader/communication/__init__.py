"""
Tick loop orchestration, the message bus and the snapshot store.
"""

from .message_bus import TOPIC_INTENT, TOPIC_MODE, TOPIC_SIGNALS, TOPIC_TRADE, MessageBus
from .orchestrator import InitializationError, Orchestrator, TickReport, build_orchestrator, extract_prices
from .state_manager import StateManager

__all__ = [
    "TOPIC_INTENT",
    "TOPIC_MODE",
    "TOPIC_SIGNALS",
    "TOPIC_TRADE",
    "MessageBus",
    "InitializationError",
    "Orchestrator",
    "TickReport",
    "build_orchestrator",
    "extract_prices",
    "StateManager",
]
