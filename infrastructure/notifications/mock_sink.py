"""
Mock Notification Sink
======================

In-memory implementation of NotificationSinkInterface for testing.
"""

import logging
from typing import List

from .interface import NotificationMessage, NotificationSinkInterface

logger = logging.getLogger(__name__)


class MockNotificationSink(NotificationSinkInterface):
    """
    Mock notification sink for testing and development.

    Instead of persisting notifications, this sink:
        - Logs every notification
        - Stores them in memory for verification
        - Always returns success
    """

    def __init__(self):
        self.sent: List[NotificationMessage] = []

    def notify(self, recipient, title: str, body: str) -> bool:
        logger.info(f"[MOCK NOTIFICATION] To: {recipient.pk}, Title: {title}, Body: {body[:100]}")
        self.sent.append(NotificationMessage(recipient_id=str(recipient.pk), title=title, body=body))
        return True

    def for_recipient(self, recipient) -> List[NotificationMessage]:
        return [message for message in self.sent if message.recipient_id == str(recipient.pk)]

    def clear(self) -> None:
        self.sent.clear()
