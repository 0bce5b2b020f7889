"""
CartService - Shopping Cart Operations

Handles shopping cart operations including add, remove, update, and clear.
Only listed products with enough stock can go in a cart; when a variation is
chosen its own stock and price adjustment apply. Cart summaries group the
items by vendor, one group per order the cart would turn into.
"""

import logging
from decimal import Decimal
from typing import Any, Dict

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction

from marketplace.cart.domain.models.cart import Cart, CartItem
from marketplace.catalog.domain.models.catalog import Product
from marketplace.catalog.domain.models.variation import ProductVariation
from marketplace.domain.exceptions import BadRequestError, NotFoundError, ValidationError
from marketplace.services.base import BaseService, ErrorCodes


User = get_user_model()
logger = logging.getLogger(__name__)


def _to_quantity(value) -> int:
    try:
        quantity = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid quantity: {value}", ErrorCodes.INVALID_QUANTITY)
    if quantity < 1:
        raise ValidationError("Quantity must be at least 1", ErrorCodes.INVALID_QUANTITY)
    return quantity


class CartService(BaseService):
    """
    Service for managing shopping cart operations.

    Responsibilities:
    - Get user's cart and its per-vendor summary
    - Add items to cart (with listing and stock validation)
    - Update item quantities
    - Remove items / clear cart

    Every mutating operation returns the refreshed cart summary.
    """

    @BaseService.log_performance
    def get_cart(self, user: User) -> Dict[str, Any]:
        """
        Get user's shopping cart with items grouped by vendor and totals.

        Example:
            >>> summary = cart_service.get_cart(user)
            >>> summary["total"], summary["total_items"]
            (Decimal('75.00'), 3)
            >>> [group["vendor_name"] for group in summary["vendors"]]
            ['Oak & Iron']
        """
        cart = Cart.get_or_create_cart(user)
        return self._summarize(cart)

    def _summarize(self, cart: Cart) -> Dict[str, Any]:
        items = cart.items.select_related("product__vendor", "variation").order_by("added_at", "id")

        groups: Dict[Any, Dict[str, Any]] = {}
        total_items = 0
        total = Decimal("0.00")
        for item in items:
            vendor = item.product.vendor
            group = groups.setdefault(
                vendor.id,
                {"vendor_id": vendor.id, "vendor_name": vendor.business_name, "items": [], "subtotal": Decimal("0.00")},
            )
            line_total = item.total_price
            group["items"].append(
                {
                    "id": item.id,
                    "product_id": item.product_id,
                    "product_name": item.product.name,
                    "variation_id": item.variation_id,
                    "unit_price": item.unit_price,
                    "quantity": item.quantity,
                    "total_price": line_total,
                }
            )
            group["subtotal"] += line_total
            total_items += item.quantity
            total += line_total

        return {
            "id": cart.id,
            "user_id": cart.user_id,
            "vendors": list(groups.values()),
            "total_items": total_items,
            "total": total,
        }

    def _get_own_item(self, cart: Cart, item_id) -> CartItem:
        try:
            item = CartItem.objects.select_related("product", "variation").get(id=item_id)
        except (CartItem.DoesNotExist, ValueError):
            raise NotFoundError(f"Cart item {item_id} not found", ErrorCodes.CART_ITEM_NOT_FOUND)

        if item.cart_id != cart.id:
            raise BadRequestError("Cart item does not belong to your cart", ErrorCodes.NOT_CART_OWNER)
        return item

    @BaseService.log_performance
    @transaction.atomic
    def add_item(self, user: User, product_id, quantity: int = 1, variation_id=None) -> Dict[str, Any]:
        """
        Add item to cart (with stock validation).

        Adding a product (and variation) already in the cart increases that
        line's quantity, provided the combined quantity is still in stock.
        """
        quantity = _to_quantity(quantity)
        cart = Cart.get_or_create_cart(user)

        try:
            product = Product.objects.select_for_update().get(id=product_id)
        except (Product.DoesNotExist, DjangoValidationError, ValueError):
            raise NotFoundError(f"Product {product_id} not found", ErrorCodes.PRODUCT_NOT_FOUND)

        if not product.is_listed:
            raise BadRequestError("Product is not available for purchase", ErrorCodes.PRODUCT_NOT_AVAILABLE)

        available_stock = product.stock_quantity
        variation = None
        if variation_id is not None:
            try:
                variation = ProductVariation.objects.get(id=variation_id)
            except (ProductVariation.DoesNotExist, ValueError):
                raise NotFoundError(f"Product variation {variation_id} not found", ErrorCodes.VARIATION_NOT_FOUND)
            if variation.product_id != product.id:
                raise BadRequestError("Variation does not belong to this product", ErrorCodes.VARIATION_MISMATCH)
            if not variation.is_active:
                raise BadRequestError("Product variation is not available", ErrorCodes.VARIATION_NOT_AVAILABLE)
            available_stock = variation.stock_quantity

        if quantity > available_stock:
            raise BadRequestError(
                f"Not enough stock available. Only {available_stock} items left.", ErrorCodes.INSUFFICIENT_STOCK
            )

        item = CartItem.objects.filter(cart=cart, product=product, variation=variation).first()
        if item is not None:
            new_quantity = item.quantity + quantity
            if new_quantity > available_stock:
                raise BadRequestError(
                    f"Cannot add more items. Only {available_stock} items available.", ErrorCodes.INSUFFICIENT_STOCK
                )
            item.quantity = new_quantity
            item.save(update_fields=["quantity", "updated_at"])
            self.logger.info(f"Cart {cart.id}: {product.name} quantity {new_quantity - quantity} -> {new_quantity}")
        else:
            CartItem.objects.create(cart=cart, product=product, variation=variation, quantity=quantity)
            self.logger.info(f"Cart {cart.id}: added {quantity}x {product.name}")

        return self._summarize(cart)

    @BaseService.log_performance
    @transaction.atomic
    def update_item(self, user: User, item_id, quantity: int) -> Dict[str, Any]:
        quantity = _to_quantity(quantity)
        cart = Cart.get_or_create_cart(user)
        item = self._get_own_item(cart, item_id)

        available_stock = item.available_stock
        if quantity > available_stock:
            raise BadRequestError(
                f"Not enough stock available. Only {available_stock} items left.", ErrorCodes.INSUFFICIENT_STOCK
            )

        item.quantity = quantity
        item.save(update_fields=["quantity", "updated_at"])
        self.logger.info(f"Cart {cart.id}: item {item.id} quantity set to {quantity}")
        return self._summarize(cart)

    @BaseService.log_performance
    @transaction.atomic
    def remove_item(self, user: User, item_id) -> Dict[str, Any]:
        cart = Cart.get_or_create_cart(user)
        item = self._get_own_item(cart, item_id)
        item.delete()
        self.logger.info(f"Cart {cart.id}: removed item {item_id}")
        return self._summarize(cart)

    @BaseService.log_performance
    @transaction.atomic
    def clear_cart(self, user: User) -> Dict[str, Any]:
        cart = Cart.get_or_create_cart(user)
        removed, _ = cart.items.all().delete()
        self.logger.info(f"Cart {cart.id}: cleared {removed} items")
        return self._summarize(cart)
