"""
Reviews and the vendor rating aggregate.
"""
from typing import Optional

from vendorhive.api.middleware.error_handler import (
    BadRequestException,
    ForbiddenException,
    NotFoundException,
)
from vendorhive.lib.logging import get_logger, log_with_context
from vendorhive.lib.metrics import MetricsCollector, get_metrics_collector
from vendorhive.schemas import NewReview, Review, Vendor
from vendorhive.services.authorization import Actor, Capability, authorize
from vendorhive.services.ratings import aggregate_rating
from vendorhive.storage.base import DuplicateRecordError, Storage

logger = get_logger(__name__)

DUPLICATE_REVIEW_MESSAGE = "You have already reviewed this vendor"


class ReviewService:
    """Review submission; each review is folded into the vendor's rating."""

    def __init__(self, storage: Storage, metrics: Optional[MetricsCollector] = None):
        self.storage = storage
        self.metrics = metrics or get_metrics_collector()

    def create_review(
        self,
        actor: Actor,
        vendor_id: int,
        rating: int,
        comment: Optional[str] = None,
        user_id: Optional[int] = None,
    ) -> Review:
        """Persist a review and update the vendor's rating and review count.

        Raises:
            ForbiddenException: reviewing on behalf of someone else, or own business
            NotFoundException: vendor does not exist
            BadRequestException: caller already reviewed this vendor
        """
        if user_id is not None and user_id != actor.user_id:
            raise ForbiddenException("You can only submit reviews as yourself")

        vendor = self.storage.get_vendor(vendor_id)
        if vendor is None:
            raise NotFoundException("Vendor", vendor_id)

        authorize(actor, Capability.CREATE_REVIEW, vendor)

        if self.storage.get_review_by_user_and_vendor(actor.user_id, vendor_id) is not None:
            raise BadRequestException(DUPLICATE_REVIEW_MESSAGE)

        try:
            review = self.storage.create_review(NewReview(
                user_id=actor.user_id,
                vendor_id=vendor_id,
                rating=rating,
                comment=comment,
            ))
        except DuplicateRecordError as e:
            raise BadRequestException(DUPLICATE_REVIEW_MESSAGE) from e

        updated_vendor = self.storage.record_vendor_rating(vendor_id, review.rating)
        if updated_vendor is not None:
            self.check_vendor_rating(updated_vendor)

        self.metrics.increment_reviews(rating=review.rating)
        log_with_context(
            logger, "info", "Review created",
            review_id=review.id,
            vendor_id=vendor_id,
            rating=review.rating,
            vendor_rating=updated_vendor.rating if updated_vendor else None,
            review_count=updated_vendor.review_count if updated_vendor else None,
        )
        return review

    def check_vendor_rating(self, vendor: Vendor) -> bool:
        """
        Compare the stored aggregate with one recomputed from the vendor's reviews.

        A mismatch is logged, not raised. Returns False only when the review
        count agrees but the rating does not; a differing count means another
        review landed in between and nothing is concluded.
        """
        ratings = [r.rating for r in self.storage.list_reviews_by_vendor(vendor.id)]
        if len(ratings) != vendor.review_count:
            return True
        expected = aggregate_rating(ratings)
        if expected == vendor.rating:
            return True
        log_with_context(
            logger, "warning", "Vendor rating out of step with reviews",
            vendor_id=vendor.id,
            stored_rating=vendor.rating,
            expected_rating=expected,
            review_count=vendor.review_count,
        )
        return False
