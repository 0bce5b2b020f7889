"""
Marketplace domain exceptions.

Services raise these for every failed operation so that the surrounding
``transaction.atomic`` block rolls back the whole unit of work. Each error
carries a machine-readable ``code`` (see ``ErrorCodes``) and the status code an
API layer should map it to.
"""

from typing import Optional


class MarketplaceError(Exception):
    """Base class for marketplace exceptions."""

    default_code = "internal_error"
    status_code = 500

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code

    def to_dict(self) -> dict:
        return {"success": False, "error": {"code": self.code, "message": self.message}}


class ValidationError(MarketplaceError):
    """Raised when required input is missing or malformed."""

    default_code = "validation_error"
    status_code = 400


class NotFoundError(MarketplaceError):
    """Raised when a referenced entity does not exist."""

    default_code = "not_found"
    status_code = 404


class BadRequestError(MarketplaceError):
    """Raised when well-formed input violates a business rule."""

    default_code = "bad_request"
    status_code = 400


class StorageError(MarketplaceError):
    """Raised when the persistence layer fails."""

    default_code = "database_error"
    status_code = 500
