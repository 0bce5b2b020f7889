"""
InventoryService - Stock Management

Product lookups and stock movements for the order pipeline.
Stock is decremented with a conditional UPDATE so that concurrent orders
can never drive a product's stock below zero.
"""

import logging
import uuid
from typing import Iterable, List, Optional

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db.models import F

from marketplace.catalog.domain.models.catalog import Product
from marketplace.catalog.domain.models.category import Category
from marketplace.domain.exceptions import NotFoundError, ValidationError
from marketplace.infra.observability.metrics import stock_decrement_conflicts
from marketplace.services.base import BaseService, ErrorCodes

logger = logging.getLogger(__name__)


def _parse_product_ids(product_ids: Iterable) -> List[uuid.UUID]:
    parsed = []
    for product_id in product_ids:
        try:
            parsed.append(product_id if isinstance(product_id, uuid.UUID) else uuid.UUID(str(product_id)))
        except ValueError:
            # Malformed ids cannot match any product
            continue
    return parsed


class InventoryService(BaseService):
    """
    Service for product lookups and stock levels.
    """

    @BaseService.log_performance
    def find_products_by_ids(self, product_ids: Iterable) -> List[Product]:
        """
        Fetch products by id with vendor and category joined in the same query.

        Unknown ids are simply absent from the result; callers compare the
        returned ids against what they asked for.
        """
        ids = _parse_product_ids(product_ids)
        if not ids:
            return []
        return list(Product.objects.select_related("vendor", "vendor__user", "category").filter(id__in=ids))

    @BaseService.log_performance
    def decrement_stock(self, product_id, amount: int) -> bool:
        """
        Atomically remove ``amount`` units from a product's stock.

        Returns:
            True when the stock was decremented, False when the product
            did not have ``amount`` units left (nothing is changed).

        Raises:
            ValidationError: amount is lower than 1
        """
        if amount < 1:
            raise ValidationError("Quantity must be at least 1", ErrorCodes.INVALID_QUANTITY)

        updated = Product.objects.filter(id=product_id, stock_quantity__gte=amount).update(
            stock_quantity=F("stock_quantity") - amount
        )

        if updated == 0:
            stock_decrement_conflicts.inc()
            self.logger.warning(f"Stock decrement rejected: product={product_id}, requested={amount}")
            return False

        self.logger.info(f"Stock decremented: product={product_id}, quantity={amount}")
        return True

    @BaseService.log_performance
    def release_stock(self, product_id, amount: int) -> None:
        """Return ``amount`` units to a product's stock (order cancellation)."""
        if amount < 1:
            raise ValidationError("Quantity must be at least 1", ErrorCodes.INVALID_QUANTITY)

        updated = Product.objects.filter(id=product_id).update(stock_quantity=F("stock_quantity") + amount)
        if updated == 0:
            raise NotFoundError(f"Product {product_id} not found", ErrorCodes.PRODUCT_NOT_FOUND)

        self.logger.info(f"Stock released: product={product_id}, quantity={amount}")

    @BaseService.log_performance
    def find_category_of_product(self, product_id) -> Optional[Category]:
        try:
            product = Product.objects.select_related("category").get(id=product_id)
        except (Product.DoesNotExist, DjangoValidationError):
            raise NotFoundError(f"Product {product_id} not found", ErrorCodes.PRODUCT_NOT_FOUND)
        return product.category
