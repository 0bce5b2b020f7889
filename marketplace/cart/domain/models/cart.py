from django.conf import settings
from django.db import models

from marketplace.catalog.domain.models.catalog import Product
from marketplace.catalog.domain.models.variation import ProductVariation


class Cart(models.Model):
    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="cart")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Shopping Cart"
        verbose_name_plural = "Shopping Carts"
        app_label = "marketplace"

    @classmethod
    def get_or_create_cart(cls, user):
        """Get existing cart or create a new one for the user."""
        cart, _ = cls.objects.get_or_create(user=user)
        return cart

    def __str__(self):
        return f"Cart for {self.user.username}"


class CartItem(models.Model):
    cart = models.ForeignKey(Cart, on_delete=models.CASCADE, related_name="items")
    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name="cart_items")
    variation = models.ForeignKey(
        ProductVariation, on_delete=models.CASCADE, null=True, blank=True, related_name="cart_items"
    )
    quantity = models.PositiveIntegerField(default=1)
    added_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["added_at", "id"]
        app_label = "marketplace"
        constraints = [
            models.UniqueConstraint(
                fields=["cart", "product"],
                condition=models.Q(variation__isnull=True),
                name="unique_cart_product",
            ),
            models.UniqueConstraint(
                fields=["cart", "product", "variation"],
                condition=models.Q(variation__isnull=False),
                name="unique_cart_product_variation",
            ),
        ]

    @property
    def unit_price(self):
        if self.variation_id is not None:
            return self.variation.unit_price
        return self.product.price

    @property
    def total_price(self):
        return self.quantity * self.unit_price

    @property
    def available_stock(self) -> int:
        if self.variation_id is not None:
            return self.variation.stock_quantity
        return self.product.stock_quantity

    def __str__(self):
        return f"{self.quantity}x {self.product.name} in {self.cart.user.username}'s cart"
