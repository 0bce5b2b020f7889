"""
VendorService - Vendor Directory and Approval Workflow.

Registers vendor profiles, looks them up for the order and commission
pipelines, and moves them through the admin approval workflow.
"""

import logging
from typing import List, Optional

from django.db import transaction

from authentication.domain.models import ApprovalStatus, CustomUser, VendorProfile
from marketplace.domain.exceptions import BadRequestError, NotFoundError, ValidationError
from marketplace.services.base import BaseService, ErrorCodes


logger = logging.getLogger(__name__)


class VendorService(BaseService):
    """
    Vendor directory service.

    Approval is a one-way state machine: a PENDING profile is either
    APPROVED or REJECTED, and neither outcome can be changed afterwards.
    """

    def __init__(self, notifications=None):
        """
        Initialize VendorService with injected dependencies.

        Args:
            notifications: Notification sink (defaults to the container's sink)
        """
        super().__init__()
        if notifications is None:
            from infrastructure.container import container

            notifications = container.notifications()
        self.notifications = notifications

    @BaseService.log_performance
    @transaction.atomic
    def register_vendor(
        self,
        user: CustomUser,
        business_name: str,
        business_description: str = "",
        contact_phone: str = "",
        logo_url: str = "",
    ) -> VendorProfile:
        """
        Create a PENDING vendor profile for ``user`` and alert the admins.

        Raises:
            ValidationError: business name is blank
            BadRequestError: user already has a vendor profile
        """
        if not business_name or not business_name.strip():
            raise ValidationError("Business name is required", ErrorCodes.VALIDATION_ERROR)

        if VendorProfile.objects.filter(user=user).exists():
            raise BadRequestError("User is already registered as a vendor", ErrorCodes.VENDOR_ALREADY_REGISTERED)

        vendor = VendorProfile.objects.create(
            user=user,
            business_name=business_name.strip(),
            business_description=business_description,
            contact_phone=contact_phone,
            logo_url=logo_url,
            status=ApprovalStatus.PENDING,
        )

        user.role = "vendor"
        user.save(update_fields=["role"])

        self.logger.info(f"Registered vendor {vendor.id} for user {user.id}")

        self.notifications.notify_admins_on_commit(
            "New Vendor Registration",
            f"A new vendor '{vendor.business_name}' has registered and is awaiting approval.",
        )
        return vendor

    @BaseService.log_performance
    def find_vendor_by_id(self, vendor_id) -> VendorProfile:
        try:
            return VendorProfile.objects.select_related("user").get(id=vendor_id)
        except (VendorProfile.DoesNotExist, ValueError):
            raise NotFoundError(f"Vendor {vendor_id} not found", ErrorCodes.VENDOR_NOT_FOUND)

    @BaseService.log_performance
    def find_vendor_by_user_id(self, user_id) -> VendorProfile:
        try:
            return VendorProfile.objects.select_related("user").get(user_id=user_id)
        except VendorProfile.DoesNotExist:
            raise NotFoundError(f"No vendor profile for user {user_id}", ErrorCodes.VENDOR_NOT_FOUND)

    def get_pending_vendors(self) -> List[VendorProfile]:
        """Vendors awaiting review, oldest application first."""
        return list(
            VendorProfile.objects.select_related("user")
            .filter(status=ApprovalStatus.PENDING)
            .order_by("created_at")
        )

    @BaseService.log_performance
    @transaction.atomic
    def update_vendor_status(self, vendor_id, status: str, reason: Optional[str] = None) -> VendorProfile:
        """
        Approve or reject a pending vendor.

        Approving lists every product of the vendor. Rejecting requires a
        reason, which is stored on the profile and sent to the vendor.

        Raises:
            NotFoundError: vendor does not exist
            BadRequestError: transition not allowed, or rejection without a reason
        """
        try:
            vendor = VendorProfile.objects.select_for_update().select_related("user").get(id=vendor_id)
        except (VendorProfile.DoesNotExist, ValueError):
            raise NotFoundError(f"Vendor {vendor_id} not found", ErrorCodes.VENDOR_NOT_FOUND)

        if status not in ApprovalStatus.values or not vendor.can_transition_to(status):
            raise BadRequestError(
                f"Cannot change vendor status from '{vendor.status}' to '{status}'",
                ErrorCodes.INVALID_APPROVAL_TRANSITION,
            )

        if status == ApprovalStatus.APPROVED:
            vendor.approve()
            listed = vendor.products.update(is_listed=True)
            self.logger.info(f"Approved vendor {vendor.id}; listed {listed} products")
            self.notifications.notify_on_commit(
                vendor.user,
                "Vendor Application Approved",
                f"Welcome to the marketplace, {vendor.business_name}! Your products are now listed.",
            )
        else:
            if not reason or not reason.strip():
                raise BadRequestError("A reason is required to reject a vendor", ErrorCodes.REJECTION_REASON_REQUIRED)
            vendor.reject(reason.strip())
            self.logger.info(f"Rejected vendor {vendor.id}")
            self.notifications.notify_on_commit(
                vendor.user,
                "Vendor Application Rejected",
                f"Your vendor application was rejected. Reason: {vendor.rejection_reason}",
            )

        return vendor
