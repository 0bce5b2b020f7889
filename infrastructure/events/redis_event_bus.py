import json
import logging
import threading
from typing import Callable, Dict, List, Optional

import redis
from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.utils import timezone

from .event_bus_interface import EventBus


logger = logging.getLogger(__name__)


class RedisEventBus(EventBus):
    """
    Redis pub/sub implementation of the event bus.

    Each event type gets its own channel, ``<prefix>.<event_type>``, so a
    process only receives the marketplace events it subscribed to.
    Publishing never raises: an unreachable Redis drops the event with an
    error log and the order or commission flow carries on.
    """

    def __init__(self, redis_url: str = None, channel_prefix: str = None):
        self.redis_url = redis_url or getattr(settings, "EVENT_BUS_REDIS_URL", "redis://localhost:6379/0")
        self.channel_prefix = channel_prefix or getattr(settings, "EVENT_BUS_CHANNEL_PREFIX", "events")

        try:
            self.redis_client = redis.from_url(self.redis_url)
        except Exception as e:
            logger.error(f"Failed to connect to Redis at {self.redis_url}: {e}")
            self.redis_client = None

        self._subscribers: Dict[str, List[Callable]] = {}
        self._pubsub = None
        self._listening = False

    def channel_for(self, event_type: str) -> str:
        return f"{self.channel_prefix}.{event_type}"

    def publish(self, event_type: str, payload: dict):
        if not self.redis_client:
            logger.warning(f"Redis client not available. Event {event_type} dropped.")
            return

        message = {"event_type": event_type, "occurred_at": timezone.now().isoformat(), "payload": payload}
        try:
            # Payloads may carry UUIDs and Decimals
            self.redis_client.publish(self.channel_for(event_type), json.dumps(message, cls=DjangoJSONEncoder))
            logger.info(f"Published event: {event_type}")
        except Exception as e:
            logger.error(f"Failed to publish event {event_type}: {str(e)}")

    def subscribe(self, event_type: str, handler: Callable):
        self._subscribers.setdefault(event_type, []).append(handler)
        logger.info(f"Registered handler for event: {event_type}")

    def start_listening(self) -> Optional[threading.Thread]:
        """Listen on every subscribed channel from a daemon thread."""
        if self._listening or not self.redis_client or not self._subscribers:
            return None

        channels = [self.channel_for(event_type) for event_type in self._subscribers]
        self._pubsub = self.redis_client.pubsub(ignore_subscribe_messages=True)
        self._pubsub.subscribe(*channels)
        self._listening = True
        logger.info(f"EventBus listening on: {channels}")

        def listen():
            try:
                for message in self._pubsub.listen():
                    if not self._listening:
                        break
                    if message["type"] == "message":
                        self._handle_message(message)
            except Exception as e:
                logger.error(f"EventBus listener crashed: {e}")
            finally:
                self._listening = False

        thread = threading.Thread(target=listen, name="redis-event-bus", daemon=True)
        thread.start()
        return thread

    def stop_listening(self):
        self._listening = False
        if self._pubsub is not None:
            self._pubsub.close()
            self._pubsub = None

    def _handle_message(self, message):
        """Dispatch an incoming message to its handlers with the full envelope."""
        try:
            data = json.loads(message["data"])
            event_type = data["event_type"]
        except (ValueError, KeyError, TypeError) as e:
            logger.error(f"Failed to decode event message: {str(e)}")
            return

        for handler in self._subscribers.get(event_type, []):
            try:
                handler(data)
            except Exception as e:
                logger.error(f"Handler error for {event_type}: {str(e)}")
