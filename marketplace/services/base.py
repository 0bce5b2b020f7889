"""
Base classes and utilities for the service layer.

Provides the BaseService class shared by every marketplace service and the
catalogue of error codes carried by marketplace exceptions.
"""

import logging
import time
from functools import wraps
from typing import Callable

from django.db import DatabaseError

from marketplace.domain.exceptions import MarketplaceError, StorageError


class BaseService:
    """
    Base class for all services providing common functionality.

    Provides:
    - Logging with class name
    - Performance timing decorator
    - Translation of database failures into StorageError

    Usage:
        class CommissionService(BaseService):
            def __init__(self, notifications=None):
                super().__init__()
                self.notifications = notifications

            @BaseService.log_performance
            def record_commission(self, order):
                self.logger.info(f"Recording commission for order {order.id}")
                # ... implementation
    """

    def __init__(self):
        """Initialize base service with logger."""
        self.logger = logging.getLogger(self.__class__.__module__ + "." + self.__class__.__name__)

    @staticmethod
    def log_performance(func: Callable) -> Callable:
        """
        Decorator to log performance of service methods.

        Business-rule failures (MarketplaceError) are logged as warnings and
        re-raised unchanged. Database failures are re-raised as StorageError.
        Anything else is logged with its traceback and re-raised.

        Args:
            func: The service method to wrap

        Returns:
            Wrapped function with performance logging
        """

        @wraps(func)
        def wrapper(self, *args, **kwargs):
            start_time = time.time()
            method_name = f"{self.__class__.__name__}.{func.__name__}"

            try:
                self.logger.debug(f"{method_name} started")
                result = func(self, *args, **kwargs)
                elapsed_time = (time.time() - start_time) * 1000  # Convert to ms
                self.logger.info(f"{method_name} completed in {elapsed_time:.2f}ms")
                return result

            except MarketplaceError as e:
                elapsed_time = (time.time() - start_time) * 1000
                self.logger.warning(f"{method_name} failed with error '{e.code}' in {elapsed_time:.2f}ms: {e.message}")
                raise

            except DatabaseError as e:
                elapsed_time = (time.time() - start_time) * 1000
                self.logger.error(
                    f"{method_name} storage failure after {elapsed_time:.2f}ms: {str(e)}",
                    exc_info=True,
                )
                raise StorageError(f"Storage failure in {method_name}: {e}", ErrorCodes.DATABASE_ERROR) from e

            except Exception as e:
                elapsed_time = (time.time() - start_time) * 1000
                self.logger.error(
                    f"{method_name} raised exception after {elapsed_time:.2f}ms: {str(e)}",
                    exc_info=True,
                )
                raise

        return wrapper


# Common error codes for marketplace services
class ErrorCodes:
    """Standard error codes used across marketplace services."""

    # Product errors
    PRODUCT_NOT_FOUND = "product_not_found"
    CATEGORY_NOT_FOUND = "category_not_found"
    INVALID_PRODUCT_DATA = "invalid_product_data"
    NOT_PRODUCT_OWNER = "not_product_owner"
    PRODUCT_NOT_AVAILABLE = "product_not_available"

    # Variation errors
    VARIATION_NOT_FOUND = "variation_not_found"
    VARIATION_MISMATCH = "variation_mismatch"
    VARIATION_NOT_AVAILABLE = "variation_not_available"
    DUPLICATE_SKU = "duplicate_sku"

    # Cart errors
    CART_ITEM_NOT_FOUND = "cart_item_not_found"
    NOT_CART_OWNER = "not_cart_owner"

    # Review errors
    REVIEW_NOT_FOUND = "review_not_found"
    DUPLICATE_REVIEW = "duplicate_review"
    NOT_REVIEW_OWNER = "not_review_owner"
    INVALID_RATING = "invalid_rating"

    # Wishlist errors
    WISHLIST_NOT_FOUND = "wishlist_not_found"
    PRODUCT_ALREADY_IN_WISHLIST = "product_already_in_wishlist"
    PRODUCT_NOT_IN_WISHLIST = "product_not_in_wishlist"

    # Order errors
    EMPTY_ORDER = "empty_order"
    ORDER_NOT_FOUND = "order_not_found"
    MIXED_VENDOR_ORDER = "mixed_vendor_order"
    INVALID_ORDER_STATE = "invalid_order_state"
    NOT_ORDER_VENDOR = "not_order_vendor"

    # Inventory errors
    INSUFFICIENT_STOCK = "insufficient_stock"
    INVALID_QUANTITY = "invalid_quantity"

    # Vendor errors
    VENDOR_NOT_FOUND = "vendor_not_found"
    VENDOR_NOT_APPROVED = "vendor_not_approved"
    VENDOR_ALREADY_REGISTERED = "vendor_already_registered"
    INVALID_APPROVAL_TRANSITION = "invalid_approval_transition"
    REJECTION_REASON_REQUIRED = "rejection_reason_required"

    # Commission errors
    COMMISSION_NOT_FOUND = "commission_not_found"
    COMMISSION_RATE_NOT_FOUND = "commission_rate_not_found"
    INVALID_COMMISSION_STATE = "invalid_commission_state"
    INVALID_COMMISSION_RATE = "invalid_commission_rate"
    COMMISSION_SCOPE_REQUIRED = "commission_scope_required"

    # Discount errors
    DISCOUNT_NOT_FOUND = "discount_not_found"
    DISCOUNT_INACTIVE = "discount_inactive"
    DISCOUNT_NOT_STARTED = "discount_not_started"
    DISCOUNT_EXPIRED = "discount_expired"
    DISCOUNT_EXHAUSTED = "discount_exhausted"
    DISCOUNT_CODE_EXISTS = "discount_code_exists"
    INVALID_DISCOUNT_WINDOW = "invalid_discount_window"
    INVALID_DISCOUNT_VALUE = "invalid_discount_value"

    # Validation errors
    VALIDATION_ERROR = "validation_error"
    INVALID_INPUT = "invalid_input"

    # Internal errors
    INTERNAL_ERROR = "internal_error"
    DATABASE_ERROR = "database_error"
