from decimal import Decimal
from unittest.mock import patch

from django.test import TestCase

from infrastructure.events import InMemoryEventBus
from infrastructure.notifications import MockNotificationSink
from marketplace.catalog.domain.services.inventory_service import InventoryService
from marketplace.domain.exceptions import BadRequestError, NotFoundError, ValidationError
from marketplace.models import Order, OrderItem, OrderStatus, Product
from marketplace.ordering.domain.services.order_service import OrderService
from marketplace.ordering.domain.services.requests import OrderItemRequest, OrderRequest
from marketplace.tests.factories import (
    CategoryFactory,
    CommissionRateFactory,
    ProductFactory,
    UserFactory,
    VendorProfileFactory,
)
from payment_system.domain.services import CommissionService
from payment_system.models import Commission, CommissionStatus


class OrderPlacementTestBase(TestCase):
    def setUp(self):
        self.notifications = MockNotificationSink()
        self.event_bus = InMemoryEventBus()
        self.inventory = InventoryService()

        from authentication.domain.services import VendorService

        self.vendor_service = VendorService(notifications=self.notifications)
        self.commission_service = CommissionService(
            inventory_service=self.inventory,
            vendor_service=self.vendor_service,
            notifications=self.notifications,
            event_bus=self.event_bus,
        )
        self.service = OrderService(
            inventory_service=self.inventory,
            vendor_service=self.vendor_service,
            commission_service=self.commission_service,
            notifications=self.notifications,
            event_bus=self.event_bus,
        )

        self.customer = UserFactory()
        self.vendor = VendorProfileFactory()
        self.category = CategoryFactory()
        self.product1 = ProductFactory(
            vendor=self.vendor, category=self.category, price=Decimal("10.00"), stock_quantity=5
        )
        self.product2 = ProductFactory(
            vendor=self.vendor, category=self.category, price=Decimal("20.00"), stock_quantity=5
        )

    def make_request(self, *lines):
        return OrderRequest(
            items=[OrderItemRequest(product_id=product_id, quantity=quantity) for product_id, quantity in lines],
            shipping_address="1 Market Street",
            billing_address="1 Market Street",
        )


class CreateOrderTest(OrderPlacementTestBase):
    def test_create_order_computes_total_and_decrements_stock(self):
        order = self.service.create_order(
            self.make_request((self.product1.id, 2), (self.product2.id, 1)), self.customer
        )

        self.assertEqual(order.status, OrderStatus.PENDING)
        self.assertEqual(order.total_amount, Decimal("40.00"))
        self.assertEqual(order.vendor, self.vendor)
        self.assertEqual(order.customer, self.customer)

        self.product1.refresh_from_db()
        self.product2.refresh_from_db()
        self.assertEqual(self.product1.stock_quantity, 3)
        self.assertEqual(self.product2.stock_quantity, 4)

    def test_items_snapshot_price_at_purchase(self):
        order = self.service.create_order(self.make_request((self.product1.id, 2)), self.customer)

        Product.objects.filter(id=self.product1.id).update(price=Decimal("99.00"))

        item = order.items.get()
        self.assertEqual(item.quantity, 2)
        self.assertEqual(item.price_at_purchase, Decimal("10.00"))
        self.assertEqual(item.line_total, Decimal("20.00"))
        order.refresh_from_db()
        self.assertEqual(order.total_amount, Decimal("20.00"))

    def test_duplicate_lines_are_merged(self):
        order = self.service.create_order(
            self.make_request((self.product1.id, 1), (str(self.product1.id), 2)), self.customer
        )

        item = order.items.get()
        self.assertEqual(item.quantity, 3)
        self.assertEqual(order.total_amount, Decimal("30.00"))
        self.product1.refresh_from_db()
        self.assertEqual(self.product1.stock_quantity, 2)

    def test_vendor_notified_once_and_event_published(self):
        order = self.service.create_order(self.make_request((self.product1.id, 1)), self.customer)

        vendor_messages = self.notifications.for_recipient(self.vendor.user)
        self.assertEqual(len(vendor_messages), 1)
        self.assertEqual(vendor_messages[0].title, "New Order Received")
        self.assertIn(str(order.id), vendor_messages[0].body)

        events = self.event_bus.events_of_type("order.placed")
        self.assertEqual(len(events), 1)
        self.assertEqual(events[0]["payload"]["order_id"], str(order.id))
        self.assertEqual(events[0]["payload"]["total_amount"], "10.00")

    def test_empty_order_rejected(self):
        with self.assertRaises(ValidationError):
            self.service.create_order(self.make_request(), self.customer)

        self.assertEqual(Order.objects.count(), 0)

    def test_quantity_below_one_rejected(self):
        for quantity in (0, -2):
            with self.assertRaises(ValidationError):
                self.service.create_order(self.make_request((self.product1.id, quantity)), self.customer)

        self.product1.refresh_from_db()
        self.assertEqual(self.product1.stock_quantity, 5)

    def test_unknown_product_rejected(self):
        missing_id = "4f0b8a5e-1111-4c2a-9d3e-000000000000"

        with self.assertRaises(NotFoundError) as ctx:
            self.service.create_order(
                self.make_request((self.product1.id, 1), (missing_id, 1)), self.customer
            )

        self.assertIn(missing_id, ctx.exception.message)
        self.assertEqual(Order.objects.count(), 0)
        self.product1.refresh_from_db()
        self.assertEqual(self.product1.stock_quantity, 5)

    def test_mixed_vendor_order_rejected(self):
        other_product = ProductFactory(vendor=VendorProfileFactory(), stock_quantity=5)

        with self.assertRaises(BadRequestError) as ctx:
            self.service.create_order(
                self.make_request((self.product1.id, 1), (other_product.id, 1)), self.customer
            )

        self.assertEqual(ctx.exception.message, "All products must belong to the same vendor")
        self.assertEqual(ctx.exception.code, "mixed_vendor_order")
        self.assertEqual(Order.objects.count(), 0)
        self.product1.refresh_from_db()
        other_product.refresh_from_db()
        self.assertEqual(self.product1.stock_quantity, 5)
        self.assertEqual(other_product.stock_quantity, 5)

    def test_insufficient_stock_names_product(self):
        with self.assertRaises(BadRequestError) as ctx:
            self.service.create_order(self.make_request((self.product1.id, 6)), self.customer)

        self.assertIn(self.product1.name, ctx.exception.message)
        self.assertEqual(ctx.exception.code, "insufficient_stock")
        self.assertEqual(Order.objects.count(), 0)
        self.assertEqual(self.notifications.sent, [])

    def test_lost_stock_race_rolls_back_everything(self):
        real_decrement = self.inventory.decrement_stock
        calls = []

        def decrement(product_id, amount):
            calls.append(product_id)
            if len(calls) == 2:
                return False
            return real_decrement(product_id, amount)

        with patch.object(self.inventory, "decrement_stock", side_effect=decrement):
            with self.assertRaises(BadRequestError):
                self.service.create_order(
                    self.make_request((self.product1.id, 2), (self.product2.id, 1)), self.customer
                )

        self.assertEqual(Order.objects.count(), 0)
        self.assertEqual(OrderItem.objects.count(), 0)
        self.product1.refresh_from_db()
        self.product2.refresh_from_db()
        self.assertEqual(self.product1.stock_quantity, 5)
        self.assertEqual(self.product2.stock_quantity, 5)
        self.assertEqual(self.notifications.sent, [])
        self.assertEqual(self.event_bus.published, [])

    def test_notification_failure_does_not_break_order(self):
        with patch.object(self.notifications, "notify", return_value=False) as notify:
            order = self.service.create_order(self.make_request((self.product1.id, 1)), self.customer)

        notify.assert_called_once()
        self.assertTrue(Order.objects.filter(id=order.id).exists())


class PlaceOrderTest(OrderPlacementTestBase):
    def test_place_order_records_pending_commission(self):
        order = self.service.place_order(
            self.make_request((self.product1.id, 2), (self.product2.id, 1)), self.customer
        )

        commission = Commission.objects.get(order=order)
        self.assertEqual(commission.status, CommissionStatus.PENDING)
        self.assertEqual(commission.vendor, self.vendor)
        self.assertEqual(commission.order_amount, Decimal("40.00"))
        self.assertEqual(commission.commission_rate, Decimal("10.00"))
        self.assertEqual(commission.commission_amount, Decimal("4.00"))
        self.assertEqual(commission.vendor_earnings, Decimal("36.00"))

    def test_place_order_uses_category_rate_of_first_item(self):
        other_category = CategoryFactory()
        second = ProductFactory(vendor=self.vendor, category=other_category, price=Decimal("50.00"))
        CommissionRateFactory(category=self.category, rate=Decimal("6.00"))
        CommissionRateFactory(category=other_category, rate=Decimal("20.00"))

        order = self.service.place_order(
            self.make_request((self.product1.id, 1), (second.id, 1)), self.customer
        )

        commission = Commission.objects.get(order=order)
        self.assertEqual(commission.commission_rate, Decimal("6.00"))
        self.assertEqual(commission.commission_amount, Decimal("3.60"))

    def test_failed_placement_records_no_commission(self):
        with self.assertRaises(BadRequestError):
            self.service.place_order(self.make_request((self.product1.id, 50)), self.customer)

        self.assertEqual(Commission.objects.count(), 0)

    def test_place_order_does_not_touch_discounts(self):
        from marketplace.tests.factories import DiscountFactory

        discount = DiscountFactory(code="WELCOME", usage_limit=5)

        self.service.place_order(self.make_request((self.product1.id, 1)), self.customer)

        discount.refresh_from_db()
        self.assertEqual(discount.usage_count, 0)
