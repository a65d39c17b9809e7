"""
Simple in-memory message bus for handing loop outputs to external consumers
(memory, narration, dashboards).
"""
from typing import Any, Callable, Dict, List

from moodtrader.utils.logging import get_logger

logger = get_logger(__name__)

# Topics published by the orchestrator
TOPIC_SIGNALS = "signals.new"
TOPIC_INTENT = "decision.intent"
TOPIC_TRADE = "execution.trade"
TOPIC_MODE = "state.mode"


class MessageBus:
    """
    A simple in-memory message bus for event-driven communication.

    A failing subscriber is logged and skipped; it never prevents delivery to
    the remaining subscribers or propagates into the publisher.
    """

    def __init__(self):
        """Initializes the MessageBus."""
        self.listeners: Dict[str, List[Callable[[Any], None]]] = {}

    def subscribe(self, event_type: str, callback: Callable[[Any], None]):
        """
        Subscribes a callback to an event type.

        Args:
            event_type: The type of event to subscribe to.
            callback: The function to call when the event is published.
        """
        self.listeners.setdefault(event_type, []).append(callback)

    def unsubscribe(self, event_type: str, callback: Callable[[Any], None]):
        if callback in self.listeners.get(event_type, []):
            self.listeners[event_type].remove(callback)

    def publish(self, event_type: str, message: Any) -> int:
        """
        Publishes an event to all subscribed listeners.

        Args:
            event_type: The type of event being published.
            message: The message to send to the listeners.

        Returns:
            The number of listeners that handled the message without error.
        """
        delivered = 0
        for callback in list(self.listeners.get(event_type, [])):
            try:
                callback(message)
                delivered += 1
            except Exception as e:
                logger.error(f"Subscriber for '{event_type}' failed: {e}", exc_info=True)
        return delivered
