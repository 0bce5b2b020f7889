from django.conf import settings
from django.db import models
from django.utils import timezone


class ApprovalStatus(models.TextChoices):
    PENDING = "pending", "Pending Review"
    APPROVED = "approved", "Approved"
    REJECTED = "rejected", "Rejected"


class VendorProfile(models.Model):
    """Business profile of a marketplace vendor, gated by admin approval"""

    # Allowed approval transitions; APPROVED and REJECTED are terminal
    TRANSITIONS = {
        ApprovalStatus.PENDING: {ApprovalStatus.APPROVED, ApprovalStatus.REJECTED},
        ApprovalStatus.APPROVED: set(),
        ApprovalStatus.REJECTED: set(),
    }

    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="vendor_profile")

    business_name = models.CharField(max_length=200)
    business_description = models.TextField(blank=True)
    contact_phone = models.CharField(max_length=30, blank=True)
    logo_url = models.URLField(max_length=500, blank=True)

    # Approval workflow
    status = models.CharField(max_length=20, choices=ApprovalStatus.choices, default=ApprovalStatus.PENDING)
    rejection_reason = models.TextField(blank=True)
    reviewed_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        app_label = "authentication"
        ordering = ["created_at"]
        indexes = [
            models.Index(fields=["status", "created_at"], name="vendor_status_created_idx"),
        ]

    @property
    def is_approved(self):
        return self.status == ApprovalStatus.APPROVED

    def can_transition_to(self, status) -> bool:
        return status in self.TRANSITIONS.get(self.status, set())

    def approve(self):
        self.status = ApprovalStatus.APPROVED
        self.rejection_reason = ""
        self.reviewed_at = timezone.now()
        self.save(update_fields=["status", "rejection_reason", "reviewed_at", "updated_at"])

    def reject(self, reason: str):
        self.status = ApprovalStatus.REJECTED
        self.rejection_reason = reason
        self.reviewed_at = timezone.now()
        self.save(update_fields=["status", "rejection_reason", "reviewed_at", "updated_at"])

    def __str__(self):
        return f"{self.business_name} ({self.get_status_display()})"
