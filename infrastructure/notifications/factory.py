"""
Notification Sink Factory
=========================

Factory pattern for creating notification sinks based on configuration.
"""

import logging
from typing import Literal

from django.conf import settings

from .database_sink import DatabaseNotificationSink
from .interface import NotificationSinkInterface
from .mock_sink import MockNotificationSink


logger = logging.getLogger(__name__)

NotificationBackend = Literal["database", "mock"]


class NotificationFactory:
    """
    Factory for creating notification sink instances.

    Usage:
        # In settings.py
        NOTIFICATION_SINK_BACKEND = 'database'  # or 'mock' for testing

        # In your code
        sink = NotificationFactory.create()
    """

    @staticmethod
    def create(backend: NotificationBackend | None = None) -> NotificationSinkInterface:
        """
        Create a notification sink instance.

        Args:
            backend: Sink type ('database' or 'mock')
                    If None, reads from settings.NOTIFICATION_SINK_BACKEND

        Returns:
            NotificationSinkInterface implementation

        Raises:
            ValueError: If backend type is invalid
        """
        is_testing = getattr(settings, "TESTING", False)
        default_backend = "mock" if is_testing else "database"

        backend_type = backend or getattr(settings, "NOTIFICATION_SINK_BACKEND", default_backend)

        logger.info(f"Creating notification sink backend: {backend_type}")

        if backend_type == "database":
            return DatabaseNotificationSink()
        elif backend_type == "mock":
            return MockNotificationSink()
        else:
            raise ValueError(f"Invalid notification backend: {backend_type}. Must be 'database' or 'mock'")
