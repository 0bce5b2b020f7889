from marketplace.cart.domain.models import Cart, CartItem
from marketplace.catalog.domain.models import Category, Product, ProductReview, ProductVariation
from marketplace.ordering.domain.models import Order, OrderItem, OrderStatus
from marketplace.pricing.domain.models import Discount, DiscountType
from marketplace.wishlist.domain.models import Wishlist


__all__ = [
    "Category",
    "Product",
    "ProductReview",
    "ProductVariation",
    "Cart",
    "CartItem",
    "Order",
    "OrderItem",
    "OrderStatus",
    "Discount",
    "DiscountType",
    "Wishlist",
]
