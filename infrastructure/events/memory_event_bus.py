import logging
from typing import Callable, Dict, List

from django.utils import timezone

from .event_bus_interface import EventBus


logger = logging.getLogger(__name__)


class InMemoryEventBus(EventBus):
    """Synchronous in-process event bus used in tests and single-process deployments."""

    def __init__(self):
        self._subscribers: Dict[str, List[Callable]] = {}
        self.published: List[dict] = []

    def publish(self, event_type: str, payload: dict):
        message = {"event_type": event_type, "occurred_at": timezone.now().isoformat(), "payload": payload}
        self.published.append(message)
        logger.info(f"Published event: {event_type}")

        for handler in self._subscribers.get(event_type, []):
            try:
                handler(message)
            except Exception as e:
                logger.error(f"Handler error for {event_type}: {str(e)}")

    def subscribe(self, event_type: str, handler: Callable):
        self._subscribers.setdefault(event_type, []).append(handler)
        logger.info(f"Registered handler for event: {event_type}")

    def events_of_type(self, event_type: str) -> List[dict]:
        return [message for message in self.published if message["event_type"] == event_type]
