"""
Business logic services for accounts and vendors.

Services encapsulate business rules and coordinate between
infrastructure (notifications) and domain models.
"""

from .vendor_service import VendorService


__all__ = [
    "VendorService",
]
