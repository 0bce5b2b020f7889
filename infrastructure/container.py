"""
Dependency Injection Container
================================

Simple service locator pattern for managing infrastructure dependencies
and the domain services built on top of them.

Usage:
    from infrastructure.container import container

    # In your service
    notifications = container.notifications()
    order_service = container.order_service()
"""

import logging
from typing import Optional

from .events import EventBus, get_event_bus
from .notifications import NotificationFactory, NotificationSinkInterface

logger = logging.getLogger(__name__)


class ServiceContainer:
    """
    Service container for infrastructure dependencies and domain services.

    Implements lazy initialization and caching of service instances.
    Singleton pattern.
    """

    _instance: Optional["ServiceContainer"] = None
    _initialized: bool = False

    def __new__(cls):
        """Ensure only one instance exists (singleton pattern)."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        """Initialize container (only once)."""
        if not self._initialized:
            self._notifications: Optional[NotificationSinkInterface] = None
            self._event_bus: Optional[EventBus] = None

            # Domain Services
            self._inventory_service = None
            self._vendor_service = None
            self._commission_service = None
            self._discount_service = None
            self._catalog_service = None
            self._order_service = None
            self._variation_service = None
            self._review_service = None
            self._cart_service = None
            self._wishlist_service = None

            self._initialized = True
            logger.info("Service container initialized")

    def notifications(self, backend: Optional[str] = None) -> NotificationSinkInterface:
        """
        Get notification sink instance.

        Args:
            backend: Sink type ('database' or 'mock')
                    If None, uses configuration from settings

        Returns:
            NotificationSinkInterface implementation (cached)
        """
        if self._notifications is None or backend is not None:
            self._notifications = NotificationFactory.create(backend)
            logger.debug(f"Created notification sink: {type(self._notifications).__name__}")

        return self._notifications

    def event_bus(self) -> EventBus:
        """Get event bus instance (cached)."""
        if self._event_bus is None:
            self._event_bus = get_event_bus()
            logger.debug(f"Using event bus: {type(self._event_bus).__name__}")
        return self._event_bus

    def inventory_service(self):
        """Get InventoryService instance."""
        if self._inventory_service is None:
            from marketplace.catalog.domain.services.inventory_service import InventoryService

            self._inventory_service = InventoryService()
            logger.debug("Created InventoryService")
        return self._inventory_service

    def vendor_service(self):
        """Get VendorService instance."""
        if self._vendor_service is None:
            from authentication.domain.services import VendorService

            self._vendor_service = VendorService(notifications=self.notifications())
            logger.debug("Created VendorService")
        return self._vendor_service

    def commission_service(self):
        """Get CommissionService instance."""
        if self._commission_service is None:
            from payment_system.domain.services import CommissionService

            self._commission_service = CommissionService(
                inventory_service=self.inventory_service(),
                vendor_service=self.vendor_service(),
                notifications=self.notifications(),
                event_bus=self.event_bus(),
            )
            logger.debug("Created CommissionService")
        return self._commission_service

    def discount_service(self):
        """Get DiscountService instance."""
        if self._discount_service is None:
            from marketplace.pricing.domain.services.discount_service import DiscountService

            self._discount_service = DiscountService()
            logger.debug("Created DiscountService")
        return self._discount_service

    def catalog_service(self):
        """Get CatalogService instance."""
        if self._catalog_service is None:
            from marketplace.catalog.domain.services.catalog_service import CatalogService

            self._catalog_service = CatalogService(vendor_service=self.vendor_service())
            logger.debug("Created CatalogService")
        return self._catalog_service

    def order_service(self):
        """Get OrderService instance."""
        if self._order_service is None:
            from marketplace.ordering.domain.services.order_service import OrderService

            # OrderService depends on inventory, vendor lookup and commissions
            self._order_service = OrderService(
                inventory_service=self.inventory_service(),
                vendor_service=self.vendor_service(),
                commission_service=self.commission_service(),
                notifications=self.notifications(),
                event_bus=self.event_bus(),
            )
            logger.debug("Created OrderService")
        return self._order_service

    def variation_service(self):
        """Get VariationService instance."""
        if self._variation_service is None:
            from marketplace.catalog.domain.services.variation_service import VariationService

            self._variation_service = VariationService()
            logger.debug("Created VariationService")
        return self._variation_service

    def review_service(self):
        """Get ReviewService instance."""
        if self._review_service is None:
            from marketplace.catalog.domain.services.review_service import ReviewService

            self._review_service = ReviewService(notifications=self.notifications())
            logger.debug("Created ReviewService")
        return self._review_service

    def cart_service(self):
        """Get CartService instance."""
        if self._cart_service is None:
            from marketplace.cart.domain.services.cart_service import CartService

            self._cart_service = CartService()
            logger.debug("Created CartService")
        return self._cart_service

    def wishlist_service(self):
        """Get WishlistService instance."""
        if self._wishlist_service is None:
            from marketplace.wishlist.domain.services.wishlist_service import WishlistService

            self._wishlist_service = WishlistService()
            logger.debug("Created WishlistService")
        return self._wishlist_service

    def reset(self):
        """
        Reset all cached service instances.

        Useful for testing or when switching between environments.
        """
        self._notifications = None
        self._event_bus = None
        self._inventory_service = None
        self._vendor_service = None
        self._commission_service = None
        self._discount_service = None
        self._catalog_service = None
        self._order_service = None
        self._variation_service = None
        self._review_service = None
        self._cart_service = None
        self._wishlist_service = None
        logger.info("Service container reset")


# Global singleton instance
container = ServiceContainer()


# Convenience functions for quick access
def get_notifications() -> NotificationSinkInterface:
    """Get notification sink from global container."""
    return container.notifications()


def get_order_service():
    """Get order service from global container."""
    return container.order_service()
