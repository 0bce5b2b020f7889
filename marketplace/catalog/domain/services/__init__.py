from .catalog_service import CatalogService
from .inventory_service import InventoryService
from .review_service import ReviewService
from .variation_service import VariationService


__all__ = [
    "CatalogService",
    "InventoryService",
    "ReviewService",
    "VariationService",
]
