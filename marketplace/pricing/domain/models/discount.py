from decimal import ROUND_HALF_UP, Decimal

from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from marketplace.catalog.domain.models.catalog import Product
from marketplace.catalog.domain.models.category import Category


class DiscountType(models.TextChoices):
    PERCENTAGE = "percentage", "Percentage"
    FIXED = "fixed", "Fixed Amount"


class Discount(models.Model):
    code = models.CharField(max_length=50)
    description = models.CharField(max_length=255)
    type = models.CharField(max_length=20, choices=DiscountType.choices)
    value = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(0)])

    # Validity window and usage
    start_date = models.DateTimeField()
    end_date = models.DateTimeField()
    usage_limit = models.PositiveIntegerField(default=0, help_text="0 means unlimited")
    usage_count = models.PositiveIntegerField(default=0)

    # Optional scope
    category = models.ForeignKey(
        Category, on_delete=models.CASCADE, null=True, blank=True, related_name="discounts"
    )
    product = models.ForeignKey(Product, on_delete=models.CASCADE, null=True, blank=True, related_name="discounts")
    vendor = models.ForeignKey(
        "authentication.VendorProfile", on_delete=models.CASCADE, null=True, blank=True, related_name="discounts"
    )

    minimum_order_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        app_label = "marketplace"
        indexes = [
            models.Index(fields=["code", "is_active"], name="discount_code_active_idx"),
            models.Index(fields=["is_active", "start_date", "end_date"], name="discount_active_window_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["code"], condition=models.Q(is_active=True), name="unique_active_discount_code"
            ),
        ]

    def __str__(self):
        return f"{self.code} ({self.get_type_display()} {self.value})"

    def is_within_window(self, at=None) -> bool:
        now = at or timezone.now()
        return self.start_date <= now <= self.end_date

    @property
    def is_exhausted(self) -> bool:
        return self.usage_limit > 0 and self.usage_count >= self.usage_limit

    def amount_for(self, order_amount: Decimal) -> Decimal:
        """
        Reduction this discount grants on an order of ``order_amount``.

        Zero below the minimum order amount. Percentage discounts round
        half-up to cents; fixed discounts never exceed the order amount.
        """
        order_amount = Decimal(order_amount)
        if order_amount < self.minimum_order_amount:
            return Decimal("0.00")

        if self.type == DiscountType.PERCENTAGE:
            reduction = order_amount * self.value / Decimal("100")
        else:
            reduction = min(self.value, order_amount)

        return reduction.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
