"""
Snapshot store for external observers.

The tick loop writes the latest portfolio, agent state and signal snapshots
here; observers read them. Values are deep-copied on the way in and on the
way out, so no observer ever holds a live reference to loop-owned state.
"""
import copy
from typing import Any, Dict, List, Optional


class StateManager:
    """
    A simple in-memory snapshot store.

    This class is not suitable for multi-process applications; it serves the
    single-process loop and its in-process observers.
    """

    def __init__(self):
        """Initializes the StateManager with an empty state dictionary."""
        self._state: Dict[str, Any] = {}

    def get(self, key: str) -> Optional[Any]:
        """
        Retrieves a copy of a value by key.

        Args:
            key: The key of the value to retrieve.

        Returns:
            A copy of the stored value, or None if the key is not found.
        """
        return copy.deepcopy(self._state.get(key))

    def set(self, key: str, value: Any):
        """
        Stores a copy of a value.

        Args:
            key: The key of the value to set.
            value: The value to store.
        """
        self._state[key] = copy.deepcopy(value)

    def keys(self) -> List[str]:
        return list(self._state.keys())

    def get_portfolio_state(self) -> Optional[Dict[str, Any]]:
        return self.get("portfolio_state")

    def set_portfolio_state(self, portfolio_state: Dict[str, Any]):
        self.set("portfolio_state", portfolio_state)

    def get_agent_state(self) -> Optional[Dict[str, Any]]:
        return self.get("agent_state")

    def set_agent_state(self, agent_state: Dict[str, Any]):
        self.set("agent_state", agent_state)

    def get_active_signals(self) -> Optional[List[Dict[str, Any]]]:
        return self.get("active_signals")

    def set_active_signals(self, signals: List[Dict[str, Any]]):
        self.set("active_signals", signals)

    def get_last_intent(self) -> Optional[Dict[str, Any]]:
        return self.get("last_intent")

    def set_last_intent(self, intent: Dict[str, Any]):
        self.set("last_intent", intent)
