"""
DiscountService - Promotional Codes

Validates discount codes, lists the discounts that apply to a product or a
(category, vendor) pair, and manages the discount catalogue.

Usage counting is an explicit operation: placing an order never consumes
a discount on its own.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.db.models import F, Q
from django.utils import timezone

from authentication.domain.models import VendorProfile
from marketplace.catalog.domain.models.catalog import Product
from marketplace.catalog.domain.models.category import Category
from marketplace.domain.exceptions import BadRequestError, NotFoundError, ValidationError
from marketplace.infra.observability.metrics import discount_resolution_failures
from marketplace.pricing.domain.models.discount import Discount, DiscountType
from marketplace.services.base import BaseService, ErrorCodes


logger = logging.getLogger(__name__)


class DiscountService(BaseService):
    """
    Service for discount codes.
    """

    def _valid_now(self):
        """Active discounts inside their window with usage left."""
        now = timezone.now()
        return Discount.objects.filter(is_active=True, start_date__lte=now, end_date__gte=now).filter(
            Q(usage_limit=0) | Q(usage_count__lt=F("usage_limit"))
        )

    @BaseService.log_performance
    def resolve_by_code(self, code: str) -> Discount:
        """
        Return the discount behind ``code`` if it can be used right now.

        Raises:
            NotFoundError: no discount carries this code
            BadRequestError: the discount is inactive, outside its date
                window, or has reached its usage limit
        """
        matches = Discount.objects.filter(code=code)
        discount = matches.filter(is_active=True).first()

        if discount is None:
            if matches.exists():
                discount_resolution_failures.labels(reason="inactive").inc()
                raise BadRequestError(f"Discount code '{code}' is inactive", ErrorCodes.DISCOUNT_INACTIVE)
            discount_resolution_failures.labels(reason="not_found").inc()
            raise NotFoundError(f"Discount code '{code}' not found", ErrorCodes.DISCOUNT_NOT_FOUND)

        now = timezone.now()
        if not discount.is_within_window(now):
            if now < discount.start_date:
                discount_resolution_failures.labels(reason="not_started").inc()
                raise BadRequestError(f"Discount code '{code}' is not active yet", ErrorCodes.DISCOUNT_NOT_STARTED)

            discount_resolution_failures.labels(reason="expired").inc()
            raise BadRequestError(f"Discount code '{code}' has expired", ErrorCodes.DISCOUNT_EXPIRED)

        if discount.is_exhausted:
            discount_resolution_failures.labels(reason="exhausted").inc()
            raise BadRequestError(
                f"Discount code '{code}' has reached its usage limit", ErrorCodes.DISCOUNT_EXHAUSTED
            )

        return discount

    def applicable_for(self, category_id=None, vendor_id=None, product_id=None) -> List[Discount]:
        """
        Discounts that currently apply.

        Combines two independent lookups:
            - discounts scoped to ``product_id`` (when given)
            - discounts whose category is ``category_id`` or unset AND whose
              vendor is ``vendor_id`` or unset (only when both are given)

        A vendor-only discount is therefore not returned unless a category
        is passed as well. Results are deduplicated, product matches first.
        """
        discounts: List[Discount] = []
        valid = self._valid_now()

        if product_id is not None:
            discounts.extend(valid.filter(product_id=product_id))

        if category_id is not None and vendor_id is not None:
            discounts.extend(
                valid.filter(Q(category_id=category_id) | Q(category__isnull=True)).filter(
                    Q(vendor_id=vendor_id) | Q(vendor__isnull=True)
                )
            )

        seen = set()
        unique = []
        for discount in discounts:
            if discount.pk not in seen:
                seen.add(discount.pk)
                unique.append(discount)
        return unique

    @BaseService.log_performance
    def increment_usage(self, code: str) -> None:
        """Count one use of the active discount carrying ``code``."""
        updated = Discount.objects.filter(code=code, is_active=True).update(usage_count=F("usage_count") + 1)
        if updated == 0:
            raise NotFoundError(f"Discount code '{code}' not found or inactive", ErrorCodes.DISCOUNT_NOT_FOUND)
        self.logger.info(f"Incremented usage of discount '{code}'")

    def get_all_active_discounts(self) -> List[Discount]:
        now = timezone.now()
        return list(Discount.objects.filter(is_active=True, start_date__lte=now, end_date__gte=now))

    def get_discount(self, discount_id) -> Discount:
        try:
            return Discount.objects.get(id=discount_id)
        except (Discount.DoesNotExist, ValueError):
            raise NotFoundError(f"Discount {discount_id} not found", ErrorCodes.DISCOUNT_NOT_FOUND)

    @BaseService.log_performance
    @transaction.atomic
    def create_discount(self, data: Dict[str, Any]) -> Discount:
        """
        Create an active discount.

        Example:
            >>> discount_service.create_discount({
            ...     "code": "SPRING10",
            ...     "description": "Spring sale",
            ...     "type": DiscountType.PERCENTAGE,
            ...     "value": "10",
            ...     "start_date": start,
            ...     "end_date": end,
            ... })
        """
        code = (data.get("code") or "").strip()
        if not code:
            raise ValidationError("Discount code is required", ErrorCodes.VALIDATION_ERROR)
        if Discount.objects.filter(code=code, is_active=True).exists():
            raise BadRequestError(f"Discount code '{code}' already exists", ErrorCodes.DISCOUNT_CODE_EXISTS)

        fields = self._clean(data)
        discount = Discount.objects.create(code=code, usage_count=0, is_active=True, **fields)

        self.logger.info(f"Created discount '{discount.code}' (id={discount.id})")
        return discount

    @BaseService.log_performance
    @transaction.atomic
    def update_discount(self, discount_id, data: Dict[str, Any]) -> Discount:
        discount = self.get_discount(discount_id)

        code = (data.get("code") or discount.code).strip()
        if (
            code != discount.code
            and Discount.objects.filter(code=code, is_active=True).exclude(id=discount.id).exists()
        ):
            raise BadRequestError(f"Discount code '{code}' already exists", ErrorCodes.DISCOUNT_CODE_EXISTS)

        merged = {
            "description": discount.description,
            "type": discount.type,
            "value": discount.value,
            "start_date": discount.start_date,
            "end_date": discount.end_date,
            "usage_limit": discount.usage_limit,
            "category_id": discount.category_id,
            "product_id": discount.product_id,
            "vendor_id": discount.vendor_id,
            "minimum_order_amount": discount.minimum_order_amount,
        }
        merged.update(data)

        discount.code = code
        for field, value in self._clean(merged).items():
            setattr(discount, field, value)
        if "is_active" in data:
            discount.is_active = bool(data["is_active"])
        discount.save()

        self.logger.info(f"Updated discount '{discount.code}' (id={discount.id})")
        return discount

    @BaseService.log_performance
    def delete_discount(self, discount_id) -> None:
        discount = self.get_discount(discount_id)
        discount.is_active = False
        discount.save(update_fields=["is_active", "updated_at"])
        self.logger.info(f"Deactivated discount '{discount.code}' (id={discount.id})")

    def _clean(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Validate discount fields and resolve scoped references."""
        discount_type = data.get("type")
        if discount_type not in DiscountType.values:
            raise ValidationError(f"Invalid discount type: {discount_type}", ErrorCodes.INVALID_DISCOUNT_VALUE)

        value = self._decimal(data.get("value"), "value")
        if value <= 0:
            raise ValidationError("Discount value must be positive", ErrorCodes.INVALID_DISCOUNT_VALUE)
        if discount_type == DiscountType.PERCENTAGE and value > 100:
            raise ValidationError("Percentage discount cannot exceed 100", ErrorCodes.INVALID_DISCOUNT_VALUE)

        start_date, end_date = data.get("start_date"), data.get("end_date")
        if start_date is None or end_date is None:
            raise ValidationError("Start and end dates are required", ErrorCodes.VALIDATION_ERROR)
        if start_date > end_date:
            raise BadRequestError("Start date must be before end date", ErrorCodes.INVALID_DISCOUNT_WINDOW)

        usage_limit = int(data.get("usage_limit") or 0)
        if usage_limit < 0:
            raise ValidationError("Usage limit cannot be negative", ErrorCodes.INVALID_DISCOUNT_VALUE)

        minimum = data.get("minimum_order_amount")
        minimum = self._decimal(minimum, "minimum_order_amount") if minimum is not None else Decimal("0.00")

        return {
            "description": data.get("description") or "",
            "type": discount_type,
            "value": value,
            "start_date": start_date,
            "end_date": end_date,
            "usage_limit": usage_limit,
            "minimum_order_amount": minimum,
            "category": self._lookup(Category, data.get("category_id"), ErrorCodes.CATEGORY_NOT_FOUND),
            "product": self._lookup(Product, data.get("product_id"), ErrorCodes.PRODUCT_NOT_FOUND),
            "vendor": self._lookup(VendorProfile, data.get("vendor_id"), ErrorCodes.VENDOR_NOT_FOUND),
        }

    @staticmethod
    def _decimal(value, field: str) -> Decimal:
        try:
            return Decimal(str(value))
        except (InvalidOperation, TypeError):
            raise ValidationError(f"Invalid {field}: {value}", ErrorCodes.INVALID_DISCOUNT_VALUE)

    @staticmethod
    def _lookup(model, pk, error_code: str) -> Optional[Any]:
        if pk is None:
            return None
        try:
            return model.objects.get(pk=pk)
        except (model.DoesNotExist, ValueError, DjangoValidationError):
            raise NotFoundError(f"{model.__name__} {pk} not found", error_code)
