from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from marketplace.models import Discount, DiscountType


def make_discount(**overrides):
    now = timezone.now()
    fields = {
        "code": "TEST",
        "type": DiscountType.PERCENTAGE,
        "value": Decimal("10.00"),
        "start_date": now - timedelta(days=1),
        "end_date": now + timedelta(days=1),
        "usage_limit": 0,
        "usage_count": 0,
        "minimum_order_amount": Decimal("0.00"),
    }
    fields.update(overrides)
    return Discount(**fields)


@pytest.mark.unit
class TestDiscountAmount:
    def test_percentage_rounds_half_up_to_cents(self):
        discount = make_discount(value=Decimal("12.50"))
        assert discount.amount_for(Decimal("10.10")) == Decimal("1.26")

    def test_fixed_amount(self):
        discount = make_discount(type=DiscountType.FIXED, value=Decimal("5.00"))
        assert discount.amount_for(Decimal("30.00")) == Decimal("5.00")

    def test_fixed_amount_capped_at_order_amount(self):
        discount = make_discount(type=DiscountType.FIXED, value=Decimal("50.00"))
        assert discount.amount_for(Decimal("30.00")) == Decimal("30.00")

    def test_below_minimum_order_amount(self):
        discount = make_discount(minimum_order_amount=Decimal("100.00"))
        assert discount.amount_for(Decimal("99.99")) == Decimal("0.00")
        assert discount.amount_for(Decimal("100.00")) == Decimal("10.00")


@pytest.mark.unit
class TestDiscountState:
    def test_unlimited_discount_never_exhausted(self):
        assert make_discount(usage_limit=0, usage_count=1000).is_exhausted is False

    def test_exhausted_at_limit(self):
        assert make_discount(usage_limit=3, usage_count=2).is_exhausted is False
        assert make_discount(usage_limit=3, usage_count=3).is_exhausted is True

    def test_window_is_inclusive(self):
        discount = make_discount()
        assert discount.is_within_window(discount.start_date)
        assert discount.is_within_window(discount.end_date)
        assert not discount.is_within_window(discount.end_date + timedelta(seconds=1))
