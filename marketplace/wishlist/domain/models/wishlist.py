from django.conf import settings
from django.db import models

from marketplace.catalog.domain.models.catalog import Product


class Wishlist(models.Model):
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="wishlists")
    name = models.CharField(max_length=100)
    description = models.TextField(blank=True)
    is_public = models.BooleanField(default=False)
    products = models.ManyToManyField(Product, blank=True, related_name="wishlists")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        app_label = "marketplace"
        indexes = [
            models.Index(fields=["user", "-created_at"], name="wishlist_user_created_idx"),
        ]

    def __str__(self):
        return f"{self.name} ({self.user.username})"
