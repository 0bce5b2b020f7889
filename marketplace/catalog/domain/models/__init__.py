from .catalog import Product
from .category import Category
from .review import ProductReview
from .variation import ProductVariation


__all__ = [
    "Product",
    "Category",
    "ProductReview",
    "ProductVariation",
]
