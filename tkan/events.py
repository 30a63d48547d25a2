"""
Event bridge: lets the UI layer hear about board changes and failures.

The reorder engine and session publish here after a mutation. Subscribers
(status bar, tests, a remote notifier) register per event type.

Event types:
    card_moved      card, column, index
    card_created    card
    card_updated    card
    card_deleted    card
    persist_failed  error, card_id
"""
import logging
from typing import Callable, Dict, List

logger = logging.getLogger(__name__)

CARD_MOVED = "card_moved"
CARD_CREATED = "card_created"
CARD_UPDATED = "card_updated"
CARD_DELETED = "card_deleted"
PERSIST_FAILED = "persist_failed"


class BoardEventBridge:
    """Routes board events to subscriber callbacks."""

    def __init__(self):
        self.subscribers: Dict[str, List[Callable]] = {}  # event_type -> callbacks

    def subscribe(self, event_type: str, callback: Callable) -> None:
        """Register a callback for an event type."""
        if event_type not in self.subscribers:
            self.subscribers[event_type] = []
        self.subscribers[event_type].append(callback)

    def unsubscribe(self, event_type: str, callback: Callable) -> None:
        callbacks = self.subscribers.get(event_type, [])
        if callback in callbacks:
            callbacks.remove(callback)

    def emit(self, event_type: str, **kwargs) -> None:
        """Emit an event to all subscribers. A failing subscriber is logged and skipped."""
        for callback in list(self.subscribers.get(event_type, [])):
            try:
                callback(**kwargs)
            except Exception as e:
                logger.error(f"Error in {event_type} callback: {e}")
