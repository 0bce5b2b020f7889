"""
VariationService - Product Variations

Vendors describe sized or coloured versions of a product as variations, each
with its own SKU, stock and price adjustment. Only the vendor owning the
product may change its variations.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction

from marketplace.catalog.domain.models.catalog import Product
from marketplace.catalog.domain.models.variation import ProductVariation
from marketplace.domain.exceptions import BadRequestError, NotFoundError, ValidationError
from marketplace.services.base import BaseService, ErrorCodes

from .catalog_service import _to_stock


User = get_user_model()
logger = logging.getLogger(__name__)


def _to_adjustment(value) -> Decimal:
    try:
        return Decimal(str(value))
    except (InvalidOperation, TypeError):
        raise ValidationError(f"Invalid price adjustment: {value}", ErrorCodes.INVALID_PRODUCT_DATA)


class VariationService(BaseService):
    """
    Service for product variations.

    Responsibilities:
    - List and fetch the variations of a product
    - Create, update and delete variations (owning vendor only)
    """

    def _get_product(self, product_id) -> Product:
        try:
            return Product.objects.select_related("vendor").get(id=product_id)
        except (Product.DoesNotExist, DjangoValidationError, ValueError):
            raise NotFoundError(f"Product {product_id} not found", ErrorCodes.PRODUCT_NOT_FOUND)

    def _get_owned_product(self, product_id, user: User, action: str) -> Product:
        product = self._get_product(product_id)
        if product.vendor.user_id != user.id:
            raise BadRequestError(
                f"You don't have permission to {action} variations for this product", ErrorCodes.NOT_PRODUCT_OWNER
            )
        return product

    def _get_variation_of(self, product_id, variation_id) -> ProductVariation:
        try:
            variation = ProductVariation.objects.get(id=variation_id)
        except (ProductVariation.DoesNotExist, ValueError):
            raise NotFoundError(f"Product variation {variation_id} not found", ErrorCodes.VARIATION_NOT_FOUND)

        if str(variation.product_id) != str(product_id):
            raise BadRequestError(
                "Product variation does not belong to the specified product", ErrorCodes.VARIATION_MISMATCH
            )
        return variation

    def _sku_taken(self, product: Product, sku: str, exclude_id=None) -> bool:
        queryset = ProductVariation.objects.filter(product=product, sku=sku)
        if exclude_id is not None:
            queryset = queryset.exclude(id=exclude_id)
        return queryset.exists()

    def get_product_variations(self, product_id) -> List[ProductVariation]:
        """Active variations of a product, by SKU."""
        return list(ProductVariation.objects.filter(product_id=product_id, is_active=True))

    def get_product_variation(self, product_id, variation_id) -> ProductVariation:
        return self._get_variation_of(product_id, variation_id)

    @BaseService.log_performance
    @transaction.atomic
    def create_variation(self, product_id, user: User, data: Dict[str, Any]) -> ProductVariation:
        """
        Add a variation to a product owned by the user's vendor profile.

        Example:
            >>> variation = variation_service.create_variation(
            ...     product.id,
            ...     vendor_user,
            ...     {"sku": "STOOL-OAK-M", "attributes": {"size": "M"}, "stock_quantity": 4, "price_adjustment": "5.00"},
            ... )
        """
        product = self._get_owned_product(product_id, user, "add")

        sku = (data.get("sku") or "").strip()
        if not sku:
            raise ValidationError("Variation SKU is required", ErrorCodes.INVALID_PRODUCT_DATA)
        if self._sku_taken(product, sku):
            raise BadRequestError("A variation with this SKU already exists for this product", ErrorCodes.DUPLICATE_SKU)

        variation = ProductVariation.objects.create(
            product=product,
            sku=sku,
            attributes=data.get("attributes") or {},
            stock_quantity=_to_stock(data.get("stock_quantity", 0)),
            price_adjustment=_to_adjustment(data.get("price_adjustment", "0.00")),
            is_active=data.get("is_active", True),
        )

        self.logger.info(f"Created variation {variation.sku} (id={variation.id}) for product {product.id}")
        return variation

    @BaseService.log_performance
    @transaction.atomic
    def update_variation(self, product_id, variation_id, user: User, data: Dict[str, Any]) -> ProductVariation:
        product = self._get_owned_product(product_id, user, "update")
        variation = self._get_variation_of(product.id, variation_id)

        updated_fields = []
        if "sku" in data:
            sku = (data["sku"] or "").strip()
            if not sku:
                raise ValidationError("Variation SKU is required", ErrorCodes.INVALID_PRODUCT_DATA)
            if sku != variation.sku and self._sku_taken(product, sku, exclude_id=variation.id):
                raise BadRequestError(
                    "A variation with this SKU already exists for this product", ErrorCodes.DUPLICATE_SKU
                )
            variation.sku = sku
            updated_fields.append("sku")
        if "attributes" in data:
            variation.attributes = data["attributes"] or {}
            updated_fields.append("attributes")
        if "stock_quantity" in data:
            variation.stock_quantity = _to_stock(data["stock_quantity"])
            updated_fields.append("stock_quantity")
        if "price_adjustment" in data:
            variation.price_adjustment = _to_adjustment(data["price_adjustment"])
            updated_fields.append("price_adjustment")
        if "is_active" in data:
            variation.is_active = bool(data["is_active"])
            updated_fields.append("is_active")

        if updated_fields:
            updated_fields.append("updated_at")
            variation.save(update_fields=updated_fields)

        self.logger.info(f"Updated variation {variation.id} of product {product.id}, fields={updated_fields}")
        return variation

    @BaseService.log_performance
    @transaction.atomic
    def delete_variation(self, product_id, variation_id, user: User) -> None:
        product = self._get_owned_product(product_id, user, "delete")
        variation = self._get_variation_of(product.id, variation_id)
        variation.delete()
        self.logger.info(f"Deleted variation {variation_id} of product {product.id}")
