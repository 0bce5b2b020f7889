from decimal import Decimal

from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models


class CommissionRate(models.Model):
    """
    Configurable platform commission percentage.

    A rate may be scoped to a vendor, a category, both, or neither.
    Only active rates take part in resolution.
    """

    vendor = models.ForeignKey(
        "authentication.VendorProfile",
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="commission_rates",
    )
    category = models.ForeignKey(
        "marketplace.Category",
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="commission_rates",
    )
    rate = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0")), MaxValueValidator(Decimal("100"))],
        help_text="Commission percentage (0-100)",
    )
    description = models.CharField(max_length=255, blank=True)
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        app_label = "payment_system"
        indexes = [
            models.Index(fields=["vendor", "category", "is_active"], name="commrate_vendor_category_idx"),
            models.Index(fields=["category", "is_active"], name="commrate_category_idx"),
        ]

    def __str__(self):
        return f"{self.rate}% (vendor={self.vendor_id}, category={self.category_id})"


class CommissionStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    PAID = "paid", "Paid"


class Commission(models.Model):
    """
    Platform cut of a single order.

    Amounts and rate are snapshots taken when the order was placed.
    """

    order = models.OneToOneField("marketplace.Order", on_delete=models.CASCADE, related_name="commission")
    vendor = models.ForeignKey(
        "authentication.VendorProfile", on_delete=models.CASCADE, related_name="commissions"
    )

    order_amount = models.DecimalField(max_digits=12, decimal_places=2)
    commission_rate = models.DecimalField(max_digits=5, decimal_places=2)
    commission_amount = models.DecimalField(max_digits=12, decimal_places=2)
    vendor_earnings = models.DecimalField(max_digits=12, decimal_places=2)

    status = models.CharField(max_length=20, choices=CommissionStatus.choices, default=CommissionStatus.PENDING)
    paid_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        app_label = "payment_system"
        indexes = [
            models.Index(fields=["vendor", "status"], name="commission_vendor_status_idx"),
            models.Index(fields=["vendor", "-created_at"], name="commission_vendor_created_idx"),
            models.Index(fields=["created_at"], name="commission_created_idx"),
        ]

    def __str__(self):
        return f"Commission {self.commission_amount} on order {str(self.order_id)[:8]} ({self.status})"
