"""
Database Notification Sink
==========================

Persists notifications as activity.Notification rows.
"""

import logging

from django.db import transaction

from .interface import NotificationSinkInterface

logger = logging.getLogger(__name__)


class DatabaseNotificationSink(NotificationSinkInterface):
    """
    Notification sink backed by the activity.Notification table.

    The insert runs inside its own savepoint so a failure never poisons the
    caller's transaction; errors are logged and swallowed.
    """

    def notify(self, recipient, title: str, body: str) -> bool:
        from activity.models import Notification

        try:
            with transaction.atomic():
                Notification.objects.create(recipient=recipient, title=title, content=body)
            logger.info(f"Notification '{title}' recorded for user {recipient.pk}")
            return True
        except Exception as e:
            logger.error(f"Failed to record notification '{title}' for user {getattr(recipient, 'pk', None)}: {e}")
            return False
