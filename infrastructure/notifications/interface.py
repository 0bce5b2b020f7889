"""
Notification Sink Interface
============================

Abstract base class defining the contract for user notifications.
Notifications are fire-and-forget: a failing sink never blocks the
operation that triggered it.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime

from django.db import transaction
from django.utils import timezone

logger = logging.getLogger(__name__)


@dataclass
class NotificationMessage:
    """
    Represents a notification addressed to one user.

    Attributes:
        recipient_id: Primary key of the recipient user
        title: Short headline
        body: Notification text
        created_at: When the notification was emitted
    """

    recipient_id: str
    title: str
    body: str
    created_at: datetime = field(default_factory=timezone.now)


class NotificationSinkInterface(ABC):
    """
    Abstract interface for notification delivery.

    Concrete implementations:
        - DatabaseNotificationSink: Persists activity.Notification rows
        - MockNotificationSink: Keeps notifications in memory for tests
    """

    @abstractmethod
    def notify(self, recipient, title: str, body: str) -> bool:
        """
        Deliver a notification to a single user.

        Args:
            recipient: User instance receiving the notification
            title: Notification title
            body: Notification body

        Returns:
            True if the notification was recorded, False otherwise.
            Implementations must not raise.
        """
        pass

    def notify_admins(self, title: str, body: str) -> int:
        """
        Deliver the same notification to every admin user.

        Returns:
            Number of admins successfully notified
        """
        from django.contrib.auth import get_user_model
        from django.db.models import Q

        User = get_user_model()
        try:
            admins = list(User.objects.filter(Q(role="admin") | Q(is_superuser=True)))
        except Exception as e:
            logger.error(f"Failed to load admins for notification '{title}': {e}")
            return 0

        return sum(1 for admin in admins if self.notify(admin, title, body))

    def notify_on_commit(self, recipient, title: str, body: str) -> None:
        """
        Deliver ``notify`` once the current transaction commits.

        Used from inside ``transaction.atomic`` blocks so the notification
        insert never shares the caller's transaction: a failing sink cannot
        roll back the business change, and a rolled back change sends nothing.
        """
        transaction.on_commit(lambda: self.notify(recipient, title, body))

    def notify_admins_on_commit(self, title: str, body: str) -> None:
        """Deliver ``notify_admins`` once the current transaction commits."""
        transaction.on_commit(lambda: self.notify_admins(title, body))
