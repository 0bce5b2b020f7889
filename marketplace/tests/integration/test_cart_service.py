from decimal import Decimal

from django.test import TestCase

from marketplace.cart.domain.services.cart_service import CartService
from marketplace.domain.exceptions import BadRequestError, NotFoundError, ValidationError
from marketplace.models import Cart, CartItem
from marketplace.tests.factories import (
    CartItemFactory,
    ProductFactory,
    ProductVariationFactory,
    UserFactory,
    VendorProfileFactory,
)


class CartServiceTestBase(TestCase):
    def setUp(self):
        self.service = CartService()
        self.user = UserFactory()
        self.product = ProductFactory(price=Decimal("25.00"), stock_quantity=10)


class GetCartTest(CartServiceTestBase):
    def test_empty_cart_is_created_on_first_read(self):
        summary = self.service.get_cart(self.user)

        self.assertEqual(summary["vendors"], [])
        self.assertEqual(summary["total_items"], 0)
        self.assertEqual(summary["total"], Decimal("0.00"))
        self.assertTrue(Cart.objects.filter(user=self.user).exists())

    def test_items_grouped_by_vendor(self):
        other = ProductFactory(vendor=VendorProfileFactory(), price=Decimal("8.00"))
        self.service.add_item(self.user, self.product.id, 2)
        self.service.add_item(self.user, other.id, 3)

        summary = self.service.get_cart(self.user)

        self.assertEqual(len(summary["vendors"]), 2)
        subtotals = {group["vendor_id"]: group["subtotal"] for group in summary["vendors"]}
        self.assertEqual(subtotals[self.product.vendor_id], Decimal("50.00"))
        self.assertEqual(subtotals[other.vendor_id], Decimal("24.00"))
        self.assertEqual(summary["total_items"], 5)
        self.assertEqual(summary["total"], Decimal("74.00"))


class AddItemTest(CartServiceTestBase):
    def test_add_listed_product(self):
        summary = self.service.add_item(self.user, self.product.id, 2)

        line = summary["vendors"][0]["items"][0]
        self.assertEqual(line["product_id"], self.product.id)
        self.assertEqual(line["quantity"], 2)
        self.assertEqual(line["total_price"], Decimal("50.00"))

    def test_unlisted_product_rejected(self):
        hidden = ProductFactory(is_listed=False)

        with self.assertRaises(BadRequestError) as ctx:
            self.service.add_item(self.user, hidden.id, 1)

        self.assertEqual(ctx.exception.code, "product_not_available")
        self.assertFalse(CartItem.objects.exists())

    def test_unknown_product(self):
        with self.assertRaises(NotFoundError):
            self.service.add_item(self.user, "not-a-uuid", 1)

    def test_quantity_must_be_positive(self):
        with self.assertRaises(ValidationError):
            self.service.add_item(self.user, self.product.id, 0)

    def test_quantity_above_stock_rejected(self):
        with self.assertRaises(BadRequestError) as ctx:
            self.service.add_item(self.user, self.product.id, 11)

        self.assertEqual(ctx.exception.code, "insufficient_stock")
        self.assertIn("Only 10 items left", ctx.exception.message)

    def test_repeated_add_merges_quantities(self):
        self.service.add_item(self.user, self.product.id, 4)
        summary = self.service.add_item(self.user, self.product.id, 3)

        self.assertEqual(CartItem.objects.count(), 1)
        self.assertEqual(summary["total_items"], 7)

    def test_merge_beyond_stock_rejected(self):
        self.service.add_item(self.user, self.product.id, 7)

        with self.assertRaises(BadRequestError) as ctx:
            self.service.add_item(self.user, self.product.id, 4)

        self.assertIn("Only 10 items available", ctx.exception.message)
        self.assertEqual(CartItem.objects.get().quantity, 7)


class VariationItemTest(CartServiceTestBase):
    def test_variation_price_and_stock_apply(self):
        variation = ProductVariationFactory(product=self.product, stock_quantity=3, price_adjustment=Decimal("5.00"))

        summary = self.service.add_item(self.user, self.product.id, 2, variation_id=variation.id)

        line = summary["vendors"][0]["items"][0]
        self.assertEqual(line["variation_id"], variation.id)
        self.assertEqual(line["unit_price"], Decimal("30.00"))
        self.assertEqual(summary["total"], Decimal("60.00"))

        with self.assertRaises(BadRequestError):
            self.service.add_item(self.user, self.product.id, 2, variation_id=variation.id)

    def test_plain_and_variation_lines_are_separate(self):
        variation = ProductVariationFactory(product=self.product)

        self.service.add_item(self.user, self.product.id, 1)
        self.service.add_item(self.user, self.product.id, 1, variation_id=variation.id)

        self.assertEqual(CartItem.objects.filter(cart__user=self.user).count(), 2)

    def test_variation_of_another_product(self):
        variation = ProductVariationFactory()

        with self.assertRaises(BadRequestError) as ctx:
            self.service.add_item(self.user, self.product.id, 1, variation_id=variation.id)

        self.assertEqual(ctx.exception.code, "variation_mismatch")

    def test_inactive_variation(self):
        variation = ProductVariationFactory(product=self.product, is_active=False)

        with self.assertRaises(BadRequestError) as ctx:
            self.service.add_item(self.user, self.product.id, 1, variation_id=variation.id)

        self.assertEqual(ctx.exception.code, "variation_not_available")

    def test_unknown_variation(self):
        with self.assertRaises(NotFoundError):
            self.service.add_item(self.user, self.product.id, 1, variation_id=987654)


class ChangeItemTest(CartServiceTestBase):
    def setUp(self):
        super().setUp()
        self.service.add_item(self.user, self.product.id, 2)
        self.item = CartItem.objects.get(cart__user=self.user)

    def test_update_quantity(self):
        summary = self.service.update_item(self.user, self.item.id, 5)

        self.assertEqual(summary["total_items"], 5)
        self.assertEqual(summary["total"], Decimal("125.00"))

    def test_update_above_stock(self):
        with self.assertRaises(BadRequestError):
            self.service.update_item(self.user, self.item.id, 11)

        self.item.refresh_from_db()
        self.assertEqual(self.item.quantity, 2)

    def test_other_users_item_rejected(self):
        foreign = CartItemFactory(product=self.product)

        with self.assertRaises(BadRequestError) as ctx:
            self.service.update_item(self.user, foreign.id, 1)
        self.assertEqual(ctx.exception.code, "not_cart_owner")

        with self.assertRaises(BadRequestError):
            self.service.remove_item(self.user, foreign.id)
        self.assertTrue(CartItem.objects.filter(id=foreign.id).exists())

    def test_remove_item(self):
        summary = self.service.remove_item(self.user, self.item.id)

        self.assertEqual(summary["vendors"], [])
        self.assertFalse(CartItem.objects.filter(id=self.item.id).exists())

    def test_remove_unknown_item(self):
        with self.assertRaises(NotFoundError):
            self.service.remove_item(self.user, 999999)

    def test_clear_cart(self):
        self.service.add_item(self.user, ProductFactory().id, 1)

        summary = self.service.clear_cart(self.user)

        self.assertEqual(summary["total_items"], 0)
        self.assertFalse(CartItem.objects.filter(cart__user=self.user).exists())
        self.assertTrue(Cart.objects.filter(user=self.user).exists())
