from decimal import Decimal

from django.db import models

from .catalog import Product


class ProductVariation(models.Model):
    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name="variations")
    sku = models.CharField(max_length=100)
    # e.g. {"size": "M", "colour": "oak"}
    attributes = models.JSONField(default=dict, blank=True)
    stock_quantity = models.PositiveIntegerField(default=0)
    price_adjustment = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["sku"]
        app_label = "marketplace"
        constraints = [
            models.UniqueConstraint(fields=["product", "sku"], name="unique_variation_sku_per_product"),
        ]

    def __str__(self):
        return f"{self.product.name} [{self.sku}]"

    @property
    def unit_price(self) -> Decimal:
        return self.product.price + self.price_adjustment
