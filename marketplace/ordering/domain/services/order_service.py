"""
OrderService - Order Placement and Lifecycle

Turns a customer's order request into a single-vendor order, decrements
stock, and hands the committed order to the commission ledger.

Placement steps:
    1. validate the request (items, quantities, products, vendor, stock)
    2. in one transaction: create the order and its items, then decrement
       stock with a conditional update per product
    3. after commit: notify the vendor and publish ``order.placed``
    4. record the commission in its own transaction
"""

import logging
from decimal import Decimal
from typing import Dict, List

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction

from marketplace.catalog.domain.models.catalog import Product
from marketplace.domain.events import OrderPlacedEvent, OrderStatusChangedEvent
from marketplace.domain.exceptions import BadRequestError, MarketplaceError, NotFoundError, ValidationError
from marketplace.infra.observability.metrics import (
    order_placement_duration,
    order_status_transitions_total,
    order_value,
    orders_placed_total,
)
from marketplace.infra.observability.tracing import add_span_attributes, get_tracer
from marketplace.ordering.domain.models.order import Order, OrderItem, OrderStatus
from marketplace.services.base import BaseService, ErrorCodes

from .requests import OrderRequest


User = get_user_model()
logger = logging.getLogger(__name__)
tracer = get_tracer(__name__)


class OrderService(BaseService):
    """
    Service for placing orders and moving them through their lifecycle.
    """

    def __init__(
        self,
        inventory_service=None,
        vendor_service=None,
        commission_service=None,
        notifications=None,
        event_bus=None,
    ):
        """
        Initialize OrderService.

        Args:
            inventory_service: Service for product lookups and stock (injected)
            vendor_service: Vendor directory (injected)
            commission_service: Commission ledger (injected)
            notifications: Notification sink (injected)
            event_bus: Event bus for publishing domain events (injected)
        """
        super().__init__()
        from infrastructure.container import container

        self.inventory_service = inventory_service or container.inventory_service()
        self.vendor_service = vendor_service or container.vendor_service()
        self.commission_service = commission_service or container.commission_service()
        self.notifications = notifications or container.notifications()
        self.event_bus = event_bus or container.event_bus()

    @BaseService.log_performance
    def place_order(self, request: OrderRequest, customer: User) -> Order:
        """
        Place an order and record its commission.

        The commission is written in a separate transaction once the order
        has committed.
        """
        order = self.create_order(request, customer)
        self.commission_service.record_commission(order)
        return order

    @BaseService.log_performance
    def create_order(self, request: OrderRequest, customer: User) -> Order:
        """
        Create a PENDING order from ``request`` for ``customer``.

        Raises:
            ValidationError: no items, or a quantity below 1
            NotFoundError: one or more products do not exist
            BadRequestError: products from several vendors, or not enough stock
        """
        with tracer.start_as_current_span("order_create_transaction") as span, order_placement_duration.time():
            span.set_attribute("user.id", str(customer.id))

            try:
                with tracer.start_as_current_span("validate_items"):
                    quantities = self._validate_items(request)
                    products = self._load_products(quantities)
                    vendor = self._single_vendor(products)
                    self._check_stock(products, quantities)

                with tracer.start_as_current_span("save_order"):
                    order = self._persist_order(request, customer, vendor, products, quantities)

            except MarketplaceError as e:
                orders_placed_total.labels(status="failure").inc()
                span.record_exception(e)
                raise

            with tracer.start_as_current_span("publish_event"):
                self.notifications.notify(
                    vendor.user,
                    "New Order Received",
                    f"You have received a new order (#{order.id}) worth {order.total_amount}",
                )

                event = OrderPlacedEvent(
                    order_id=str(order.id),
                    customer_id=str(customer.id),
                    vendor_id=vendor.id,
                    total_amount=order.total_amount,
                )
                self.event_bus.publish(event.event_type, event.payload)

            orders_placed_total.labels(status="success").inc()
            order_value.observe(float(order.total_amount))

            add_span_attributes(span, order_id=order.id, order_total=order.total_amount, item_count=len(quantities))
            self.logger.info(
                f"Created order {order.id} for customer {customer.id}: "
                f"{len(quantities)} products, total {order.total_amount}"
            )
            return order

    def _validate_items(self, request: OrderRequest) -> Dict[str, int]:
        if not request.items:
            raise ValidationError("Order must contain at least one item", ErrorCodes.EMPTY_ORDER)

        for item in request.items:
            if not isinstance(item.quantity, int) or isinstance(item.quantity, bool) or item.quantity < 1:
                raise ValidationError(
                    f"Quantity for product {item.product_id} must be at least 1", ErrorCodes.INVALID_QUANTITY
                )

        return request.merged_quantities()

    def _load_products(self, quantities: Dict[str, int]) -> Dict[str, Product]:
        products = {str(p.id): p for p in self.inventory_service.find_products_by_ids(quantities.keys())}

        missing = [product_id for product_id in quantities if product_id not in products]
        if missing:
            raise NotFoundError(f"Products not found: {', '.join(missing)}", ErrorCodes.PRODUCT_NOT_FOUND)

        return products

    def _single_vendor(self, products: Dict[str, Product]):
        vendor_ids = {product.vendor_id for product in products.values()}
        if len(vendor_ids) > 1:
            raise BadRequestError("All products must belong to the same vendor", ErrorCodes.MIXED_VENDOR_ORDER)
        return next(iter(products.values())).vendor

    def _check_stock(self, products: Dict[str, Product], quantities: Dict[str, int]) -> None:
        for product_id, quantity in quantities.items():
            product = products[product_id]
            if not product.has_stock(quantity):
                raise BadRequestError(
                    f"Not enough stock for product: {product.name} "
                    f"(available: {product.stock_quantity}, requested: {quantity})",
                    ErrorCodes.INSUFFICIENT_STOCK,
                )

    @transaction.atomic
    def _persist_order(self, request: OrderRequest, customer: User, vendor, products, quantities) -> Order:
        total_amount = sum(
            (products[product_id].price * quantity for product_id, quantity in quantities.items()),
            Decimal("0.00"),
        )

        order = Order.objects.create(
            customer=customer,
            vendor=vendor,
            status=OrderStatus.PENDING,
            total_amount=total_amount,
            shipping_address=request.shipping_address,
            billing_address=request.billing_address,
        )

        # Items keep the request order; the first one drives commission resolution
        OrderItem.objects.bulk_create(
            [
                OrderItem(
                    order=order,
                    product=products[product_id],
                    quantity=quantity,
                    price_at_purchase=products[product_id].price,  # Snapshot price
                )
                for product_id, quantity in quantities.items()
            ]
        )

        for product_id, quantity in quantities.items():
            if not self.inventory_service.decrement_stock(product_id, quantity):
                raise BadRequestError(
                    f"Not enough stock for product: {products[product_id].name}", ErrorCodes.INSUFFICIENT_STOCK
                )

        return order

    def get_customer_orders(self, customer: User) -> List[Order]:
        return list(
            Order.objects.filter(customer=customer).select_related("vendor").prefetch_related("items__product")
        )

    @BaseService.log_performance
    def get_vendor_orders(self, user: User) -> List[Order]:
        vendor = self.vendor_service.find_vendor_by_user_id(user.id)
        return list(
            Order.objects.filter(vendor=vendor).select_related("customer").prefetch_related("items__product")
        )

    @BaseService.log_performance
    def get_order(self, order_id) -> Order:
        try:
            return (
                Order.objects.select_related("customer", "vendor__user")
                .prefetch_related("items__product")
                .get(id=order_id)
            )
        except (Order.DoesNotExist, DjangoValidationError):
            raise NotFoundError(f"Order {order_id} not found", ErrorCodes.ORDER_NOT_FOUND)

    @BaseService.log_performance
    def update_order_status(self, order_id, status: str, user: User) -> Order:
        """
        Move an order to ``status`` on behalf of its vendor.

        Cancelling returns every item's quantity to stock. The customer is
        notified once the change has committed.

        Raises:
            NotFoundError: unknown order, or the user has no vendor profile
            BadRequestError: user is not the order's vendor, or the
                transition is not allowed from the current status
        """
        order, old_status = self._apply_status(order_id, status, user)

        order_status_transitions_total.labels(from_status=old_status, to_status=order.status).inc()

        self.notifications.notify(
            order.customer,
            "Order Status Updated",
            f"Your order (#{order.id}) status has been updated to {order.get_status_display()}",
        )

        event = OrderStatusChangedEvent(order_id=str(order.id), old_status=old_status, new_status=order.status)
        self.event_bus.publish(event.event_type, event.payload)

        self.logger.info(f"Order {order.id} moved from {old_status} to {order.status} by user {user.id}")
        return order

    @transaction.atomic
    def _apply_status(self, order_id, status: str, user: User):
        vendor = self.vendor_service.find_vendor_by_user_id(user.id)

        try:
            order = Order.objects.select_for_update().select_related("customer").get(id=order_id)
        except (Order.DoesNotExist, DjangoValidationError):
            raise NotFoundError(f"Order {order_id} not found", ErrorCodes.ORDER_NOT_FOUND)

        if order.vendor_id != vendor.id:
            raise BadRequestError("You don't have permission to update this order", ErrorCodes.NOT_ORDER_VENDOR)

        if status not in OrderStatus.values or not order.can_transition_to(status):
            raise BadRequestError(
                f"Cannot change order status from '{order.status}' to '{status}'", ErrorCodes.INVALID_ORDER_STATE
            )

        old_status = order.status

        if status == OrderStatus.CANCELLED:
            for item in order.items.all():
                self.inventory_service.release_stock(item.product_id, item.quantity)

        order.status = status
        order.save(update_fields=["status", "updated_at"])
        return order, old_status
