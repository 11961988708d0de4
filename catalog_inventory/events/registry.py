"""
Subscriber Registry - Maps event types to their named consumers
"""

from typing import Callable, List, Tuple


class SubscriberRegistry:
    """Ordered, named subscriptions per event type"""

    def __init__(self):
        self._subscribers = {}

    def subscribe(self, event_type: str, name: str, handler: Callable):
        """
        Register a consumer for an event type

        Args:
            event_type: The type of event to consume
            name: Stable consumer name, used to track per-consumer acknowledgement
            handler: Callable receiving the EventEnvelope
        """
        subscribers = self._subscribers.setdefault(event_type, [])
        if any(existing == name for existing, _ in subscribers):
            raise ValueError(f"Consumer {name} already subscribed to {event_type}")
        subscribers.append((name, handler))

    def get_subscribers(self, event_type: str) -> List[Tuple[str, Callable]]:
        return list(self._subscribers.get(event_type, []))

    def __contains__(self, event_type):
        return bool(self._subscribers.get(event_type))
