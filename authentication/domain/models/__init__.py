from .user import CustomUser
from .vendor import ApprovalStatus, VendorProfile

__all__ = [
    "CustomUser",
    "ApprovalStatus",
    "VendorProfile",
]
