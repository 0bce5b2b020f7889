"""
Notification Sink Abstraction Layer
===================================

Provides a unified, fire-and-forget interface for user notifications.
"""

from .database_sink import DatabaseNotificationSink
from .factory import NotificationFactory
from .interface import NotificationMessage, NotificationSinkInterface
from .mock_sink import MockNotificationSink

__all__ = [
    "NotificationSinkInterface",
    "NotificationMessage",
    "DatabaseNotificationSink",
    "MockNotificationSink",
    "NotificationFactory",
]
