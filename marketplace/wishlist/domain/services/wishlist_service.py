"""
WishlistService - Saved Product Lists

Customers keep any number of named wishlists. A wishlist is only visible to
its owner unless it is marked public.
"""

import logging
from typing import Any, Dict, List

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction

from marketplace.catalog.domain.models.catalog import Product
from marketplace.domain.exceptions import BadRequestError, NotFoundError, ValidationError
from marketplace.services.base import BaseService, ErrorCodes
from marketplace.wishlist.domain.models.wishlist import Wishlist


User = get_user_model()
logger = logging.getLogger(__name__)


class WishlistService(BaseService):
    """
    Service for managing wishlists.

    Responsibilities:
    - List, fetch, create, update and delete the user's wishlists
    - Add products to / remove products from a wishlist
    - Find public wishlists containing a product
    """

    EDITABLE_FIELDS = ["name", "description", "is_public"]

    def _clean_name(self, name) -> str:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Wishlist name is required", ErrorCodes.INVALID_INPUT)
        return name

    def get_user_wishlists(self, user: User) -> List[Wishlist]:
        return list(Wishlist.objects.filter(user=user).prefetch_related("products"))

    def get_wishlist(self, wishlist_id, user: User) -> Wishlist:
        """The user's own wishlist; another user's wishlist is reported as missing."""
        try:
            return Wishlist.objects.prefetch_related("products").get(id=wishlist_id, user=user)
        except (Wishlist.DoesNotExist, ValueError):
            raise NotFoundError("Wishlist not found", ErrorCodes.WISHLIST_NOT_FOUND)

    @BaseService.log_performance
    def create_wishlist(self, user: User, data: Dict[str, Any]) -> Wishlist:
        wishlist = Wishlist.objects.create(
            user=user,
            name=self._clean_name(data.get("name")),
            description=data.get("description", ""),
            is_public=bool(data.get("is_public", False)),
        )
        self.logger.info(f"Created wishlist {wishlist.id} for user {user.id}")
        return wishlist

    @BaseService.log_performance
    @transaction.atomic
    def update_wishlist(self, wishlist_id, user: User, data: Dict[str, Any]) -> Wishlist:
        wishlist = self.get_wishlist(wishlist_id, user)

        updated_fields = []
        for field in self.EDITABLE_FIELDS:
            if field not in data:
                continue
            value = data[field]
            if field == "name":
                value = self._clean_name(value)
            elif field == "is_public":
                value = bool(value)
            setattr(wishlist, field, value)
            updated_fields.append(field)

        if updated_fields:
            updated_fields.append("updated_at")
            wishlist.save(update_fields=updated_fields)

        self.logger.info(f"Updated wishlist {wishlist.id}, fields={updated_fields}")
        return wishlist

    @BaseService.log_performance
    @transaction.atomic
    def delete_wishlist(self, wishlist_id, user: User) -> None:
        wishlist = self.get_wishlist(wishlist_id, user)
        wishlist.delete()
        self.logger.info(f"Deleted wishlist {wishlist_id} of user {user.id}")

    @BaseService.log_performance
    @transaction.atomic
    def add_product(self, wishlist_id, product_id, user: User) -> Wishlist:
        wishlist = self.get_wishlist(wishlist_id, user)
        try:
            product = Product.objects.get(id=product_id)
        except (Product.DoesNotExist, DjangoValidationError, ValueError):
            raise NotFoundError(f"Product {product_id} not found", ErrorCodes.PRODUCT_NOT_FOUND)

        if wishlist.products.filter(id=product.id).exists():
            raise BadRequestError("Product is already in this wishlist", ErrorCodes.PRODUCT_ALREADY_IN_WISHLIST)

        wishlist.products.add(product)
        self.logger.info(f"Wishlist {wishlist.id}: added product {product.id}")
        return wishlist

    @BaseService.log_performance
    @transaction.atomic
    def remove_product(self, wishlist_id, product_id, user: User) -> Wishlist:
        wishlist = self.get_wishlist(wishlist_id, user)
        try:
            in_wishlist = wishlist.products.filter(id=product_id).exists()
        except (DjangoValidationError, ValueError):
            in_wishlist = False
        if not in_wishlist:
            raise BadRequestError("Product is not in this wishlist", ErrorCodes.PRODUCT_NOT_IN_WISHLIST)

        wishlist.products.remove(product_id)
        self.logger.info(f"Wishlist {wishlist.id}: removed product {product_id}")
        return wishlist

    def get_public_wishlists_for_product(self, product_id) -> List[Wishlist]:
        return list(Wishlist.objects.filter(is_public=True, products__id=product_id).select_related("user").distinct())
