"""
ReviewService - Product Review Management

Customers review products once each. Reviews enter a moderation queue and
only approved reviews are shown or counted towards a product's rating.
A review is flagged as a verified purchase when the reviewer has ordered
the product before.
"""

import logging
from typing import Any, Dict

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.paginator import Paginator
from django.db import transaction
from django.db.models import Avg

from marketplace.catalog.domain.models.catalog import Product
from marketplace.catalog.domain.models.review import ProductReview
from marketplace.domain.exceptions import BadRequestError, NotFoundError, ValidationError
from marketplace.ordering.domain.models.order import OrderItem
from marketplace.services.base import BaseService, ErrorCodes


User = get_user_model()
logger = logging.getLogger(__name__)


def _to_rating(value) -> int:
    try:
        rating = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid rating: {value}", ErrorCodes.INVALID_RATING)
    if not 1 <= rating <= 5:
        raise ValidationError("Rating must be between 1 and 5", ErrorCodes.INVALID_RATING)
    return rating


def _paginate(queryset, page: int, page_size: int) -> Dict[str, Any]:
    paginator = Paginator(queryset, page_size)
    page_obj = paginator.get_page(page)
    return {
        "results": list(page_obj.object_list),
        "count": paginator.count,
        "page": page_obj.number,
        "page_size": page_size,
        "num_pages": paginator.num_pages,
    }


class ReviewService(BaseService):
    """
    Service for managing product reviews.

    Responsibilities:
    - List approved reviews and the average rating of a product
    - Create review (one per customer and product, verified purchase flag)
    - Update review (author only, sends it back to moderation)
    - Delete review (author or admin)
    - Approve reviews from the moderation queue
    """

    def __init__(self, notifications=None):
        """
        Initialize ReviewService.

        Args:
            notifications: Notification sink (injected via DI container)
        """
        super().__init__()
        if notifications is None:
            from infrastructure.container import container

            notifications = container.notifications()
        self.notifications = notifications

    def _get_review(self, review_id, for_update: bool = False) -> ProductReview:
        queryset = ProductReview.objects.select_related("product", "reviewer")
        if for_update:
            queryset = queryset.select_for_update()
        try:
            return queryset.get(id=review_id)
        except (ProductReview.DoesNotExist, ValueError):
            raise NotFoundError(f"Review {review_id} not found", ErrorCodes.REVIEW_NOT_FOUND)

    def get_product_reviews(self, product_id, page: int = 1, page_size: int = 20) -> Dict[str, Any]:
        """Approved reviews of a product, newest first, as a paginated dict."""
        queryset = (
            ProductReview.objects.filter(product_id=product_id, is_approved=True)
            .select_related("reviewer")
            .order_by("-created_at", "-id")
        )
        return _paginate(queryset, page, page_size)

    def get_product_average_rating(self, product_id) -> float:
        """Mean rating over approved reviews, 0.0 when there are none."""
        average = ProductReview.objects.filter(product_id=product_id, is_approved=True).aggregate(
            average=Avg("rating")
        )["average"]
        return float(average) if average is not None else 0.0

    @BaseService.log_performance
    @transaction.atomic
    def create_review(self, product_id, user: User, rating, comment: str = "") -> ProductReview:
        try:
            product = Product.objects.select_related("vendor__user").get(id=product_id)
        except (Product.DoesNotExist, DjangoValidationError, ValueError):
            raise NotFoundError(f"Product {product_id} not found", ErrorCodes.PRODUCT_NOT_FOUND)

        rating = _to_rating(rating)

        if ProductReview.objects.filter(product=product, reviewer=user).exists():
            raise BadRequestError("You have already reviewed this product", ErrorCodes.DUPLICATE_REVIEW)

        has_purchased = OrderItem.objects.filter(order__customer=user, product=product).exists()

        review = ProductReview.objects.create(
            product=product,
            reviewer=user,
            rating=rating,
            comment=comment or "",
            is_verified_purchase=has_purchased,
            is_approved=False,
        )

        self.logger.info(
            f"Created review {review.id} for product {product.id} by user {user.id} (verified={has_purchased})"
        )

        self.notifications.notify_on_commit(
            product.vendor.user,
            "New Product Review",
            f"Your product '{product.name}' has received a new review",
        )
        return review

    @BaseService.log_performance
    @transaction.atomic
    def update_review(self, review_id, user: User, rating=None, comment: str = None) -> ProductReview:
        """Change rating and/or comment. The edited review goes back to the moderation queue."""
        review = self._get_review(review_id, for_update=True)
        if review.reviewer_id != user.id:
            raise BadRequestError("You don't have permission to update this review", ErrorCodes.NOT_REVIEW_OWNER)

        if rating is not None:
            review.rating = _to_rating(rating)
        if comment is not None:
            review.comment = comment
        review.is_approved = False
        review.save(update_fields=["rating", "comment", "is_approved", "updated_at"])

        self.logger.info(f"Updated review {review.id}; awaiting approval again")
        return review

    @BaseService.log_performance
    @transaction.atomic
    def delete_review(self, review_id, user: User) -> None:
        review = self._get_review(review_id)
        if review.reviewer_id != user.id and not user.is_admin():
            raise BadRequestError("You don't have permission to delete this review", ErrorCodes.NOT_REVIEW_OWNER)

        review.delete()
        self.logger.info(f"Deleted review {review_id} (by user {user.id})")

    @BaseService.log_performance
    @transaction.atomic
    def approve_review(self, review_id) -> ProductReview:
        review = self._get_review(review_id, for_update=True)
        review.is_approved = True
        review.save(update_fields=["is_approved", "updated_at"])

        self.logger.info(f"Approved review {review.id} for product {review.product_id}")

        self.notifications.notify_on_commit(
            review.reviewer,
            "Review Approved",
            f"Your review for '{review.product.name}' has been approved",
        )
        return review

    def get_pending_reviews(self, page: int = 1, page_size: int = 20) -> Dict[str, Any]:
        """Moderation queue, oldest first."""
        queryset = (
            ProductReview.objects.filter(is_approved=False)
            .select_related("product", "reviewer")
            .order_by("created_at", "id")
        )
        return _paginate(queryset, page, page_size)
