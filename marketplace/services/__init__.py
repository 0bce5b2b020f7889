"""
Marketplace Service Layer

Shared foundation for the domain services of every app:

- BaseService: logger per service class and the log_performance decorator
- ErrorCodes: machine-readable codes carried by marketplace exceptions

Domain services live next to their models:

- marketplace.catalog.domain.services: InventoryService, CatalogService
- marketplace.ordering.domain.services: OrderService
- marketplace.pricing.domain.services: DiscountService
- payment_system.domain.services: CommissionService
- authentication.domain.services: VendorService
"""

from .base import BaseService, ErrorCodes

__all__ = [
    "BaseService",
    "ErrorCodes",
]
