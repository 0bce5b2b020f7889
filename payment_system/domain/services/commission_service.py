"""
CommissionService - Platform Commission Ledger

Resolves the commission rate that applies to an order, records one
commission per placed order and pays out vendor earnings.

Rate precedence for an order (category taken from the order's first item):
    1. active rate for (vendor, category)
    2. active rate for (category, any vendor)
    3. active rate for (vendor, any category)
    4. settings.DEFAULT_COMMISSION_RATE
"""

import logging
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Dict, List

from django.conf import settings
from django.core.paginator import Paginator
from django.db import IntegrityError, transaction
from django.db.models import Sum
from django.utils import timezone

from authentication.domain.models import VendorProfile
from marketplace.catalog.domain.models.category import Category
from marketplace.domain.exceptions import BadRequestError, NotFoundError, ValidationError
from marketplace.infra.observability.tracing import add_span_attributes, get_tracer
from marketplace.ordering.domain.models.order import Order
from marketplace.services.base import BaseService, ErrorCodes
from payment_system.domain.events import CommissionPaidEvent, CommissionRecordedEvent
from payment_system.domain.models.commission import Commission, CommissionRate, CommissionStatus
from payment_system.infra.observability.metrics import (
    commission_payments_total,
    commission_volume_total,
    commissions_recorded_total,
)


logger = logging.getLogger(__name__)
tracer = get_tracer(__name__)

CENT = Decimal("0.01")
HUNDRED = Decimal("100")


class CommissionService(BaseService):
    """
    Service for commission rates and the commission ledger.
    """

    def __init__(self, inventory_service=None, vendor_service=None, notifications=None, event_bus=None):
        """
        Initialize CommissionService.

        Args:
            inventory_service: Catalog lookups (injected)
            vendor_service: Vendor directory (injected)
            notifications: Notification sink (injected)
            event_bus: Event bus for publishing domain events (injected)
        """
        super().__init__()
        from infrastructure.container import container

        self.inventory_service = inventory_service or container.inventory_service()
        self.vendor_service = vendor_service or container.vendor_service()
        self.notifications = notifications or container.notifications()
        self.event_bus = event_bus or container.event_bus()
        self.default_rate = Decimal(str(getattr(settings, "DEFAULT_COMMISSION_RATE", "10.00")))

    # ------------------------------------------------------------------
    # Rate resolution
    # ------------------------------------------------------------------

    @staticmethod
    def calculate_commission(order_amount: Decimal, rate: Decimal) -> Decimal:
        """Commission owed on ``order_amount`` at ``rate`` percent, rounded half-up to cents."""
        return (Decimal(order_amount) * Decimal(rate) / HUNDRED).quantize(CENT, rounding=ROUND_HALF_UP)

    def resolve_rate(self, vendor_id, category_id=None) -> Decimal:
        active = CommissionRate.objects.filter(is_active=True).order_by("-updated_at")

        if category_id is not None:
            rate = active.filter(vendor_id=vendor_id, category_id=category_id).first()
            if rate:
                return rate.rate

            rate = active.filter(category_id=category_id, vendor__isnull=True).first()
            if rate:
                return rate.rate

        rate = active.filter(vendor_id=vendor_id, category__isnull=True).first()
        if rate:
            return rate.rate

        return self.default_rate

    def get_commission_rate(self, vendor: VendorProfile, order: Order) -> Decimal:
        """
        Rate applying to ``order``. Only the category of the order's first
        item is considered, even when the order spans several categories.
        """
        category_id = None
        first_item = order.items.order_by("id").first()
        if first_item is not None:
            category = self.inventory_service.find_category_of_product(first_item.product_id)
            category_id = category.id if category else None
        return self.resolve_rate(vendor.id, category_id)

    @BaseService.log_performance
    @transaction.atomic
    def set_commission_rate(
        self, vendor_id=None, category_id=None, rate: Decimal = None, description: str = ""
    ) -> CommissionRate:
        """
        Create or replace the active rate for a vendor, a category, or a
        (vendor, category) pair. The vendor is notified of vendor-scoped changes.
        """
        try:
            rate = Decimal(str(rate))
        except (InvalidOperation, TypeError):
            raise ValidationError(f"Invalid commission rate: {rate}", ErrorCodes.INVALID_COMMISSION_RATE)
        if rate < 0 or rate > HUNDRED:
            raise ValidationError("Commission rate must be between 0 and 100", ErrorCodes.INVALID_COMMISSION_RATE)

        if vendor_id is None and category_id is None:
            raise BadRequestError(
                "Either vendor_id or category_id must be provided", ErrorCodes.COMMISSION_SCOPE_REQUIRED
            )

        vendor = self.vendor_service.find_vendor_by_id(vendor_id) if vendor_id is not None else None

        category = None
        if category_id is not None:
            try:
                category = Category.objects.get(id=category_id)
            except (Category.DoesNotExist, ValueError):
                raise NotFoundError(f"Category {category_id} not found", ErrorCodes.CATEGORY_NOT_FOUND)

        commission_rate = (
            CommissionRate.objects.select_for_update()
            .filter(
                is_active=True,
                vendor=vendor,
                category=category,
            )
            .order_by("-updated_at")
            .first()
        ) or CommissionRate(vendor=vendor, category=category)

        commission_rate.rate = rate
        commission_rate.description = description
        commission_rate.is_active = True
        commission_rate.save()

        self.logger.info(f"Set commission rate {rate}% for vendor={vendor_id}, category={category_id}")

        if vendor is not None:
            if category is not None:
                message = f"Commission rate for category '{category.name}' has been updated to {rate}%"
            else:
                message = f"Your default commission rate has been updated to {rate}%"
            self.notifications.notify_on_commit(vendor.user, "Commission Rate Updated", message)

        return commission_rate

    def get_commission_rates(self, vendor_id=None, category_id=None) -> List[CommissionRate]:
        rates = CommissionRate.objects.select_related("vendor", "category").filter(is_active=True)
        if vendor_id is not None:
            rates = rates.filter(vendor_id=vendor_id)
        if category_id is not None:
            rates = rates.filter(category_id=category_id)
        return list(rates)

    @BaseService.log_performance
    def deactivate_commission_rate(self, rate_id) -> CommissionRate:
        try:
            commission_rate = CommissionRate.objects.get(id=rate_id)
        except (CommissionRate.DoesNotExist, ValueError):
            raise NotFoundError(f"Commission rate {rate_id} not found", ErrorCodes.COMMISSION_RATE_NOT_FOUND)

        commission_rate.is_active = False
        commission_rate.save(update_fields=["is_active", "updated_at"])
        self.logger.info(f"Deactivated commission rate {rate_id}")
        return commission_rate

    # ------------------------------------------------------------------
    # Ledger
    # ------------------------------------------------------------------

    @BaseService.log_performance
    @transaction.atomic
    def record_commission(self, order: Order) -> Commission:
        """
        Record the PENDING commission for a placed order.

        Recording is idempotent: an order that already has a commission
        gets the existing row back untouched.
        """
        with tracer.start_as_current_span("record_commission") as span:
            add_span_attributes(span, order_id=order.id, vendor_id=order.vendor_id)

            existing = Commission.objects.filter(order=order).first()
            if existing is not None:
                self.logger.info(f"Commission already recorded for order {order.id}")
                return existing

            vendor = self.vendor_service.find_vendor_by_id(order.vendor_id)
            rate = self.get_commission_rate(vendor, order)
            commission_amount = self.calculate_commission(order.total_amount, rate)

            try:
                with transaction.atomic():
                    commission = Commission.objects.create(
                        order=order,
                        vendor=vendor,
                        order_amount=order.total_amount,
                        commission_rate=rate,
                        commission_amount=commission_amount,
                        vendor_earnings=order.total_amount - commission_amount,
                        status=CommissionStatus.PENDING,
                    )
            except IntegrityError:
                # Lost a race against another recorder of the same order
                commissions_recorded_total.labels(status="duplicate").inc()
                return Commission.objects.get(order=order)

            commissions_recorded_total.labels(status="success").inc()
            commission_volume_total.inc(float(commission_amount))
            add_span_attributes(span, commission_rate=rate, commission_amount=commission_amount)

            self.logger.info(
                f"Recorded commission {commission.id} for order {order.id}: "
                f"{rate}% of {order.total_amount} = {commission_amount}"
            )

            event = CommissionRecordedEvent(
                commission_id=commission.id,
                order_id=str(order.id),
                vendor_id=vendor.id,
                commission_amount=commission_amount,
            )
            transaction.on_commit(lambda: self.event_bus.publish(event.event_type, event.payload))

            return commission

    @BaseService.log_performance
    @transaction.atomic
    def process_commission_payment(self, commission_id) -> Commission:
        """
        Pay out a PENDING commission.

        The commission passes through PROCESSING before landing on PAID;
        any other starting status is rejected and left untouched.
        """
        try:
            commission = (
                Commission.objects.select_for_update().select_related("vendor__user").get(id=commission_id)
            )
        except (Commission.DoesNotExist, ValueError):
            raise NotFoundError(f"Commission {commission_id} not found", ErrorCodes.COMMISSION_NOT_FOUND)

        if commission.status != CommissionStatus.PENDING:
            commission_payments_total.labels(status="rejected").inc()
            raise BadRequestError(
                f"Commission is not in PENDING status (current: {commission.status})",
                ErrorCodes.INVALID_COMMISSION_STATE,
            )

        commission.status = CommissionStatus.PROCESSING
        commission.save(update_fields=["status", "updated_at"])

        commission.status = CommissionStatus.PAID
        commission.paid_at = timezone.now()
        commission.save(update_fields=["status", "paid_at", "updated_at"])

        commission_payments_total.labels(status="paid").inc()
        self.logger.info(f"Paid commission {commission.id}: vendor earnings {commission.vendor_earnings}")

        self.notifications.notify_on_commit(
            commission.vendor.user,
            "Commission Payment Processed",
            f"Your commission payment of ${commission.vendor_earnings} "
            f"for order #{commission.order_id} has been processed.",
        )

        event = CommissionPaidEvent(
            commission_id=commission.id,
            vendor_id=commission.vendor_id,
            vendor_earnings=commission.vendor_earnings,
        )
        transaction.on_commit(lambda: self.event_bus.publish(event.event_type, event.payload))

        return commission

    @BaseService.log_performance
    def get_vendor_commissions(self, user, page: int = 1, page_size: int = 20) -> Dict[str, Any]:
        vendor = self.vendor_service.find_vendor_by_user_id(user.id)
        queryset = Commission.objects.filter(vendor=vendor).order_by("-created_at", "-id")

        paginator = Paginator(queryset, page_size)
        page_obj = paginator.get_page(page)

        return {
            "results": list(page_obj.object_list),
            "count": paginator.count,
            "page": page_obj.number,
            "page_size": page_size,
            "num_pages": paginator.num_pages,
        }

    @BaseService.log_performance
    def get_vendor_pending_commissions(self, user) -> Decimal:
        """Vendor earnings still waiting to be paid out."""
        vendor = self.vendor_service.find_vendor_by_user_id(user.id)
        total = Commission.objects.filter(vendor=vendor, status=CommissionStatus.PENDING).aggregate(
            total=Sum("vendor_earnings")
        )["total"]
        return total or Decimal("0.00")

    def get_total_commission_between(self, start: datetime, end: datetime) -> Decimal:
        total = Commission.objects.filter(created_at__range=(start, end)).aggregate(
            total=Sum("commission_amount")
        )["total"]
        return total or Decimal("0.00")
