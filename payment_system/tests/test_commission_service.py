from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch

from django.db import DatabaseError
from django.test import TestCase, override_settings
from django.utils import timezone

from activity.models import Notification
from authentication.domain.services import VendorService
from infrastructure.events import InMemoryEventBus
from infrastructure.notifications import DatabaseNotificationSink, MockNotificationSink
from marketplace.catalog.domain.services.inventory_service import InventoryService
from marketplace.domain.exceptions import BadRequestError, NotFoundError, ValidationError
from marketplace.tests.factories import (
    CategoryFactory,
    CommissionFactory,
    CommissionRateFactory,
    OrderFactory,
    OrderItemFactory,
    ProductFactory,
    VendorProfileFactory,
)
from payment_system.domain.services import CommissionService
from payment_system.models import Commission, CommissionRate, CommissionStatus


class CommissionServiceTestBase(TestCase):
    def setUp(self):
        self.notifications = MockNotificationSink()
        self.event_bus = InMemoryEventBus()
        self.service = CommissionService(
            inventory_service=InventoryService(),
            vendor_service=VendorService(notifications=self.notifications),
            notifications=self.notifications,
            event_bus=self.event_bus,
        )
        self.vendor = VendorProfileFactory()
        self.category = CategoryFactory()

    def make_order(self, total, category=None):
        order = OrderFactory(vendor=self.vendor, total_amount=Decimal(total))
        product = ProductFactory(vendor=self.vendor, category=category or self.category)
        OrderItemFactory(order=order, product=product)
        return order


class RateResolutionTest(CommissionServiceTestBase):
    def test_precedence(self):
        order = self.make_order("100.00")

        self.assertEqual(self.service.get_commission_rate(self.vendor, order), Decimal("10.00"))

        CommissionRateFactory(vendor=self.vendor, rate=Decimal("8.00"))
        self.assertEqual(self.service.get_commission_rate(self.vendor, order), Decimal("8.00"))

        CommissionRateFactory(category=self.category, rate=Decimal("6.00"))
        self.assertEqual(self.service.get_commission_rate(self.vendor, order), Decimal("6.00"))

        CommissionRateFactory(vendor=self.vendor, category=self.category, rate=Decimal("12.00"))
        self.assertEqual(self.service.get_commission_rate(self.vendor, order), Decimal("12.00"))

    def test_full_precedence_matrix(self):
        vendor5, vendor7 = VendorProfileFactory(), VendorProfileFactory()
        cat9, cat3 = CategoryFactory(), CategoryFactory()
        CommissionRateFactory(vendor=vendor5, category=cat9, rate=Decimal("12.00"))
        CommissionRateFactory(category=cat9, rate=Decimal("8.00"))
        CommissionRateFactory(vendor=vendor5, rate=Decimal("6.00"))

        cases = [
            (vendor5, cat9, Decimal("12.00")),
            (vendor5, cat3, Decimal("6.00")),
            (vendor7, cat9, Decimal("8.00")),
            (vendor7, cat3, Decimal("10.00")),
        ]
        for vendor, category, expected in cases:
            with self.subTest(vendor=vendor.business_name, category=category.name):
                self.assertEqual(self.service.resolve_rate(vendor.id, category.id), expected)

    def test_inactive_rates_are_ignored(self):
        order = self.make_order("100.00")
        CommissionRateFactory(vendor=self.vendor, category=self.category, rate=Decimal("3.00"), is_active=False)

        self.assertEqual(self.service.get_commission_rate(self.vendor, order), Decimal("10.00"))

    def test_other_vendors_rates_do_not_apply(self):
        order = self.make_order("100.00")
        CommissionRateFactory(vendor=VendorProfileFactory(), rate=Decimal("1.00"))

        self.assertEqual(self.service.get_commission_rate(self.vendor, order), Decimal("10.00"))

    def test_uncategorised_first_item_uses_vendor_rate(self):
        order = OrderFactory(vendor=self.vendor)
        OrderItemFactory(order=order, product=ProductFactory(vendor=self.vendor, category=None))
        CommissionRateFactory(category=self.category, rate=Decimal("6.00"))
        CommissionRateFactory(vendor=self.vendor, rate=Decimal("8.00"))

        self.assertEqual(self.service.get_commission_rate(self.vendor, order), Decimal("8.00"))

    @override_settings(DEFAULT_COMMISSION_RATE=Decimal("7.50"))
    def test_default_rate_from_settings(self):
        service = CommissionService(
            inventory_service=InventoryService(),
            vendor_service=VendorService(notifications=self.notifications),
            notifications=self.notifications,
            event_bus=self.event_bus,
        )
        self.assertEqual(service.resolve_rate(self.vendor.id, self.category.id), Decimal("7.50"))


class SetCommissionRateTest(CommissionServiceTestBase):
    def test_vendor_scoped_rate_notifies_vendor(self):
        with self.captureOnCommitCallbacks(execute=True):
            rate = self.service.set_commission_rate(vendor_id=self.vendor.id, rate="8.5", description="Loyal vendor")

        self.assertEqual(rate.rate, Decimal("8.5"))
        self.assertIsNone(rate.category)
        messages = self.notifications.for_recipient(self.vendor.user)
        self.assertEqual([m.title for m in messages], ["Commission Rate Updated"])

    def test_setting_same_scope_updates_existing_rate(self):
        first = self.service.set_commission_rate(category_id=self.category.id, rate="5")
        second = self.service.set_commission_rate(category_id=self.category.id, rate="7")

        self.assertEqual(first.id, second.id)
        self.assertEqual(CommissionRate.objects.filter(is_active=True).count(), 1)
        self.assertEqual(self.notifications.sent, [])

    def test_scope_required(self):
        with self.assertRaises(BadRequestError):
            self.service.set_commission_rate(rate="5")

    def test_rate_out_of_range(self):
        for value in ("-1", "100.01", "abc"):
            with self.assertRaises(ValidationError):
                self.service.set_commission_rate(vendor_id=self.vendor.id, rate=value)

    def test_unknown_references(self):
        with self.assertRaises(NotFoundError):
            self.service.set_commission_rate(vendor_id=999999, rate="5")
        with self.assertRaises(NotFoundError):
            self.service.set_commission_rate(category_id=999999, rate="5")

    def test_list_and_deactivate_rates(self):
        vendor_rate = CommissionRateFactory(vendor=self.vendor)
        pair_rate = CommissionRateFactory(vendor=self.vendor, category=self.category)
        category_rate = CommissionRateFactory(category=self.category)

        self.assertEqual(
            {r.id for r in self.service.get_commission_rates(vendor_id=self.vendor.id)}, {vendor_rate.id, pair_rate.id}
        )
        self.assertEqual(
            [r.id for r in self.service.get_commission_rates(vendor_id=self.vendor.id, category_id=self.category.id)],
            [pair_rate.id],
        )
        self.assertEqual(
            {r.id for r in self.service.get_commission_rates(category_id=self.category.id)},
            {pair_rate.id, category_rate.id},
        )

        self.service.deactivate_commission_rate(vendor_rate.id)

        self.assertEqual(len(self.service.get_commission_rates()), 2)
        with self.assertRaises(NotFoundError):
            self.service.deactivate_commission_rate(999999)


class RecordCommissionTest(CommissionServiceTestBase):
    def test_record_commission(self):
        order = self.make_order("100.00")

        commission = self.service.record_commission(order)

        self.assertEqual(commission.status, CommissionStatus.PENDING)
        self.assertEqual(commission.commission_amount, Decimal("10.00"))
        self.assertEqual(commission.vendor_earnings, Decimal("90.00"))
        self.assertEqual(commission.order_amount, commission.commission_amount + commission.vendor_earnings)

    def test_record_commission_rounding(self):
        CommissionRateFactory(vendor=self.vendor, rate=Decimal("10.90"))
        order = self.make_order("33.33", category=CategoryFactory())

        commission = self.service.record_commission(order)

        self.assertEqual(commission.commission_amount, Decimal("3.63"))
        self.assertEqual(commission.vendor_earnings, Decimal("29.70"))

    def test_record_commission_is_idempotent(self):
        order = self.make_order("100.00")

        first = self.service.record_commission(order)
        CommissionRateFactory(vendor=self.vendor, rate=Decimal("50.00"))
        second = self.service.record_commission(order)

        self.assertEqual(first.id, second.id)
        self.assertEqual(second.commission_amount, Decimal("10.00"))
        self.assertEqual(Commission.objects.filter(order=order).count(), 1)

    def test_recorded_event_published_after_commit(self):
        order = self.make_order("100.00")

        with self.captureOnCommitCallbacks(execute=True):
            commission = self.service.record_commission(order)

        events = self.event_bus.events_of_type("commission.recorded")
        self.assertEqual(len(events), 1)
        self.assertEqual(events[0]["payload"]["commission_id"], commission.id)


class CommissionPaymentTest(CommissionServiceTestBase):
    def test_pending_commission_is_paid(self):
        commission = CommissionFactory(order=self.make_order("100.00"))

        with self.captureOnCommitCallbacks(execute=True):
            paid = self.service.process_commission_payment(commission.id)

        self.assertEqual(paid.status, CommissionStatus.PAID)
        self.assertIsNotNone(paid.paid_at)
        commission.refresh_from_db()
        self.assertEqual(commission.status, CommissionStatus.PAID)

        messages = self.notifications.for_recipient(self.vendor.user)
        self.assertEqual([m.title for m in messages], ["Commission Payment Processed"])
        self.assertIn("90.00", messages[0].body)
        self.assertEqual(len(self.event_bus.events_of_type("commission.paid")), 1)

    def test_paid_commission_cannot_be_paid_again(self):
        paid_at = timezone.now() - timedelta(days=1)
        commission = CommissionFactory(
            order=self.make_order("100.00"), status=CommissionStatus.PAID, paid_at=paid_at
        )

        with self.assertRaises(BadRequestError) as ctx:
            self.service.process_commission_payment(commission.id)

        self.assertEqual(ctx.exception.code, "invalid_commission_state")
        commission.refresh_from_db()
        self.assertEqual(commission.status, CommissionStatus.PAID)
        self.assertEqual(commission.paid_at, paid_at)
        self.assertEqual(self.notifications.sent, [])

    def test_payment_notification_waits_for_commit(self):
        commission = CommissionFactory(order=self.make_order("100.00"))

        with self.captureOnCommitCallbacks() as callbacks:
            self.service.process_commission_payment(commission.id)
            self.assertEqual(self.notifications.sent, [])

        self.assertEqual(len(callbacks), 2)
        for callback in callbacks:
            callback()
        self.assertEqual(len(self.notifications.for_recipient(self.vendor.user)), 1)

    def test_failing_notification_store_keeps_payment(self):
        commission = CommissionFactory(order=self.make_order("100.00"))
        self.service.notifications = DatabaseNotificationSink()

        with patch.object(Notification.objects, "create", side_effect=DatabaseError("disk full")):
            with self.captureOnCommitCallbacks(execute=True):
                self.service.process_commission_payment(commission.id)

        commission.refresh_from_db()
        self.assertEqual(commission.status, CommissionStatus.PAID)
        self.assertEqual(Notification.objects.count(), 0)
        self.assertEqual(len(self.event_bus.events_of_type("commission.paid")), 1)

    def test_processing_commission_rejected(self):
        commission = CommissionFactory(order=self.make_order("100.00"), status=CommissionStatus.PROCESSING)

        with self.assertRaises(BadRequestError):
            self.service.process_commission_payment(commission.id)

    def test_unknown_commission(self):
        with self.assertRaises(NotFoundError):
            self.service.process_commission_payment(999999)


class VendorCommissionQueriesTest(CommissionServiceTestBase):
    def test_pending_total_sums_vendor_earnings(self):
        CommissionFactory(order=self.make_order("100.00"))
        CommissionFactory(order=self.make_order("50.00"))
        CommissionFactory(order=self.make_order("80.00"), status=CommissionStatus.PAID)
        CommissionFactory(order=OrderFactory(total_amount=Decimal("500.00")))

        first = self.service.get_vendor_pending_commissions(self.vendor.user)
        second = self.service.get_vendor_pending_commissions(self.vendor.user)

        self.assertEqual(first, Decimal("135.00"))
        self.assertEqual(first, second)

    def test_pending_total_without_commissions(self):
        self.assertEqual(self.service.get_vendor_pending_commissions(self.vendor.user), Decimal("0.00"))

    def test_vendor_commissions_are_paginated(self):
        for _ in range(3):
            CommissionFactory(order=self.make_order("10.00"))

        page = self.service.get_vendor_commissions(self.vendor.user, page=2, page_size=2)

        self.assertEqual(page["count"], 3)
        self.assertEqual(page["num_pages"], 2)
        self.assertEqual(page["page"], 2)
        self.assertEqual(page["page_size"], 2)
        self.assertEqual(len(page["results"]), 1)

    def test_non_vendor_has_no_commissions(self):
        with self.assertRaises(NotFoundError):
            self.service.get_vendor_commissions(OrderFactory().customer)

    def test_total_commission_between(self):
        CommissionFactory(order=self.make_order("100.00"))
        CommissionFactory(order=self.make_order("30.00"))
        now = timezone.now()

        self.assertEqual(
            self.service.get_total_commission_between(now - timedelta(hours=1), now + timedelta(hours=1)),
            Decimal("13.00"),
        )
        self.assertEqual(
            self.service.get_total_commission_between(now + timedelta(hours=1), now + timedelta(hours=2)),
            Decimal("0.00"),
        )
