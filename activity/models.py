import logging

from django.contrib.auth import get_user_model
from django.db import models

User = get_user_model()
logger = logging.getLogger(__name__)


class Notification(models.Model):
    """
    In-app notification addressed to a single user.

    Written by the database notification sink whenever the marketplace
    informs a vendor, customer or admin about an event (new order, status
    change, commission payout, approval decision).
    """

    recipient = models.ForeignKey(User, on_delete=models.CASCADE, related_name="notifications")
    title = models.CharField(max_length=200)
    content = models.TextField()
    is_read = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=["recipient", "is_read", "created_at"], name="notification_recipient_idx"),
        ]
        ordering = ["-created_at"]

    def mark_as_read(self):
        if not self.is_read:
            self.is_read = True
            self.save(update_fields=["is_read"])

    def __str__(self):
        return f"{self.recipient} - {self.title}"
