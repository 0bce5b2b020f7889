"""
CatalogService - Product Management

Vendor-facing product creation and updates. Only approved vendors may add
products, and only the owning vendor may change one.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction

from marketplace.catalog.domain.models.catalog import Product
from marketplace.catalog.domain.models.category import Category
from marketplace.domain.exceptions import BadRequestError, NotFoundError, ValidationError
from marketplace.services.base import BaseService, ErrorCodes


User = get_user_model()
logger = logging.getLogger(__name__)


def _to_price(value) -> Decimal:
    try:
        price = Decimal(str(value))
    except (InvalidOperation, TypeError):
        raise ValidationError(f"Invalid price: {value}", ErrorCodes.INVALID_PRODUCT_DATA)
    if price < 0:
        raise ValidationError("Price cannot be negative", ErrorCodes.INVALID_PRODUCT_DATA)
    return price


def _to_stock(value) -> int:
    try:
        stock = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid stock quantity: {value}", ErrorCodes.INVALID_PRODUCT_DATA)
    if stock < 0:
        raise ValidationError("Stock quantity cannot be negative", ErrorCodes.INVALID_PRODUCT_DATA)
    return stock


class CatalogService(BaseService):
    """
    Service for managing the product catalog.

    Responsibilities:
    - Create products (approved vendors only)
    - Update products (owning vendor only)
    """

    UPDATABLE_FIELDS = ["name", "description", "price", "stock_quantity"]

    def __init__(self, vendor_service=None):
        """
        Initialize CatalogService.

        Args:
            vendor_service: Vendor directory (injected via DI container)
        """
        super().__init__()
        if vendor_service is None:
            from infrastructure.container import container

            vendor_service = container.vendor_service()
        self.vendor_service = vendor_service

    def _get_category(self, category_id) -> Category:
        try:
            return Category.objects.get(id=category_id)
        except (Category.DoesNotExist, ValueError):
            raise NotFoundError(f"Category {category_id} not found", ErrorCodes.CATEGORY_NOT_FOUND)

    @BaseService.log_performance
    @transaction.atomic
    def create_product(self, user: User, data: Dict[str, Any]) -> Product:
        """
        Create a listed product for the user's vendor profile.

        Example:
            >>> product = catalog_service.create_product(
            ...     vendor_user,
            ...     {"name": "Oak Stool", "price": "49.90", "stock_quantity": 5, "category_id": category.id},
            ... )
        """
        vendor = self.vendor_service.find_vendor_by_user_id(user.id)
        if not vendor.is_approved:
            raise BadRequestError("Vendor account is not approved", ErrorCodes.VENDOR_NOT_APPROVED)

        name = (data.get("name") or "").strip()
        if not name:
            raise ValidationError("Product name is required", ErrorCodes.INVALID_PRODUCT_DATA)
        if "price" not in data:
            raise ValidationError("Product price is required", ErrorCodes.INVALID_PRODUCT_DATA)

        category = None
        if data.get("category_id") is not None:
            category = self._get_category(data["category_id"])

        product = Product.objects.create(
            name=name,
            description=data.get("description", ""),
            price=_to_price(data["price"]),
            stock_quantity=_to_stock(data.get("stock_quantity", 0)),
            category=category,
            vendor=vendor,
            is_listed=True,
        )

        self.logger.info(f"Created product: {product.name} (id={product.id}) by vendor {vendor.id}")
        return product

    @BaseService.log_performance
    @transaction.atomic
    def update_product(self, product_id, user: User, data: Dict[str, Any]) -> Product:
        """
        Partially update a product owned by the user's vendor profile.

        Ownership is checked with a single joined query on product and
        vendor instead of traversing relations on the loaded product.
        """
        try:
            product = Product.objects.select_for_update().get(id=product_id)
        except (Product.DoesNotExist, DjangoValidationError):
            raise NotFoundError(f"Product {product_id} not found", ErrorCodes.PRODUCT_NOT_FOUND)

        owns_product = Product.objects.filter(id=product.id, vendor__user_id=user.id).exists()
        if not owns_product:
            raise BadRequestError("You do not own this product", ErrorCodes.NOT_PRODUCT_OWNER)

        updated_fields = []
        for field in self.UPDATABLE_FIELDS:
            if field not in data:
                continue
            value = data[field]
            if field == "price":
                value = _to_price(value)
            elif field == "stock_quantity":
                value = _to_stock(value)
            setattr(product, field, value)
            updated_fields.append(field)

        if "category_id" in data:
            product.category = self._get_category(data["category_id"]) if data["category_id"] is not None else None
            updated_fields.append("category")

        if updated_fields:
            updated_fields.append("updated_at")
            product.save(update_fields=updated_fields)

        self.logger.info(f"Updated product: {product.name} (id={product_id}), fields={updated_fields}")
        return product
