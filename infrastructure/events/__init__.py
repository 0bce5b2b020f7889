from django.conf import settings

from .event_bus_interface import EventBus
from .memory_event_bus import InMemoryEventBus
from .redis_event_bus import RedisEventBus


# Singleton instance
_event_bus_instance = None


def get_event_bus() -> EventBus:
    """Get singleton event bus instance for the configured backend."""
    global _event_bus_instance
    if _event_bus_instance is None:
        backend = getattr(settings, "EVENT_BUS_BACKEND", "redis")
        if backend == "memory":
            _event_bus_instance = InMemoryEventBus()
        elif backend == "redis":
            _event_bus_instance = RedisEventBus()
        else:
            raise ValueError(f"Invalid event bus backend: {backend}. Must be 'redis' or 'memory'")
    return _event_bus_instance


def reset_event_bus() -> None:
    global _event_bus_instance
    _event_bus_instance = None


__all__ = ["EventBus", "InMemoryEventBus", "RedisEventBus", "get_event_bus", "reset_event_bus"]
