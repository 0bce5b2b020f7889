from .discount import Discount, DiscountType


__all__ = [
    "Discount",
    "DiscountType",
]
