from authentication.domain.models.user import CustomUser
from authentication.domain.models.vendor import ApprovalStatus, VendorProfile


__all__ = [
    "CustomUser",
    "ApprovalStatus",
    "VendorProfile",
]
