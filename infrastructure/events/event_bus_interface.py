from abc import ABC, abstractmethod
from typing import Callable


class EventBus(ABC):
    """Publish/subscribe contract for domain events."""

    @abstractmethod
    def publish(self, event_type: str, payload: dict) -> None:
        """Publish an event. Implementations must not raise."""
        pass

    @abstractmethod
    def subscribe(self, event_type: str, handler: Callable) -> None:
        """Register a handler receiving the full event envelope."""
        pass
