from decimal import Decimal

from django.test import TestCase

from authentication.domain.services import VendorService
from infrastructure.events import InMemoryEventBus
from infrastructure.notifications import MockNotificationSink
from marketplace.catalog.domain.services.inventory_service import InventoryService
from marketplace.domain.exceptions import BadRequestError, NotFoundError
from marketplace.models import OrderStatus
from marketplace.ordering.domain.services.order_service import OrderService
from marketplace.ordering.domain.services.requests import OrderItemRequest, OrderRequest
from marketplace.tests.factories import ProductFactory, UserFactory, VendorProfileFactory


class OrderStatusTest(TestCase):
    def setUp(self):
        self.notifications = MockNotificationSink()
        self.event_bus = InMemoryEventBus()
        inventory = InventoryService()
        vendor_service = VendorService(notifications=self.notifications)
        self.service = OrderService(
            inventory_service=inventory,
            vendor_service=vendor_service,
            commission_service=object(),
            notifications=self.notifications,
            event_bus=self.event_bus,
        )

        self.customer = UserFactory()
        self.vendor = VendorProfileFactory()
        self.product = ProductFactory(vendor=self.vendor, price=Decimal("15.00"), stock_quantity=10)

        request = OrderRequest(
            items=[OrderItemRequest(product_id=self.product.id, quantity=4)],
            shipping_address="221B Baker Street",
            billing_address="221B Baker Street",
        )
        self.order = self.service.create_order(request, self.customer)
        self.notifications.clear()

    def test_vendor_moves_order_forward(self):
        for status in (OrderStatus.PROCESSING, OrderStatus.SHIPPED, OrderStatus.DELIVERED):
            order = self.service.update_order_status(self.order.id, status, self.vendor.user)
            self.assertEqual(order.status, status)

        self.order.refresh_from_db()
        self.assertEqual(self.order.status, OrderStatus.DELIVERED)

    def test_customer_notified_and_event_published(self):
        self.service.update_order_status(self.order.id, OrderStatus.PROCESSING, self.vendor.user)

        messages = self.notifications.for_recipient(self.customer)
        self.assertEqual(len(messages), 1)
        self.assertEqual(messages[0].title, "Order Status Updated")

        events = self.event_bus.events_of_type("order.status_changed")
        self.assertEqual(len(events), 1)
        self.assertEqual(events[0]["payload"]["old_status"], "pending")
        self.assertEqual(events[0]["payload"]["new_status"], "processing")

    def test_other_vendor_cannot_update(self):
        intruder = VendorProfileFactory()

        with self.assertRaises(BadRequestError):
            self.service.update_order_status(self.order.id, OrderStatus.PROCESSING, intruder.user)

        self.order.refresh_from_db()
        self.assertEqual(self.order.status, OrderStatus.PENDING)

    def test_user_without_vendor_profile_rejected(self):
        with self.assertRaises(NotFoundError):
            self.service.update_order_status(self.order.id, OrderStatus.PROCESSING, self.customer)

    def test_skipping_states_rejected(self):
        with self.assertRaises(BadRequestError) as ctx:
            self.service.update_order_status(self.order.id, OrderStatus.DELIVERED, self.vendor.user)

        self.assertEqual(ctx.exception.code, "invalid_order_state")

    def test_unknown_status_rejected(self):
        with self.assertRaises(BadRequestError):
            self.service.update_order_status(self.order.id, "lost_in_transit", self.vendor.user)

    def test_cancel_releases_stock(self):
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, 6)

        self.service.update_order_status(self.order.id, OrderStatus.CANCELLED, self.vendor.user)

        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, 10)

    def test_shipped_order_cannot_be_cancelled(self):
        self.service.update_order_status(self.order.id, OrderStatus.PROCESSING, self.vendor.user)
        self.service.update_order_status(self.order.id, OrderStatus.SHIPPED, self.vendor.user)

        with self.assertRaises(BadRequestError):
            self.service.update_order_status(self.order.id, OrderStatus.CANCELLED, self.vendor.user)

        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, 6)

    def test_unknown_order(self):
        with self.assertRaises(NotFoundError):
            self.service.update_order_status(
                "00000000-0000-4000-8000-000000000000", OrderStatus.PROCESSING, self.vendor.user
            )

    def test_order_listings(self):
        self.assertEqual([o.id for o in self.service.get_customer_orders(self.customer)], [self.order.id])
        self.assertEqual([o.id for o in self.service.get_vendor_orders(self.vendor.user)], [self.order.id])
        self.assertEqual(self.service.get_customer_orders(UserFactory()), [])

        with self.assertRaises(NotFoundError):
            self.service.get_vendor_orders(self.customer)

    def test_get_order(self):
        order = self.service.get_order(self.order.id)
        self.assertEqual(order.items.count(), 1)

        with self.assertRaises(NotFoundError):
            self.service.get_order("not-a-uuid")
