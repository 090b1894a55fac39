"""
Review routes.
"""
from typing import Optional

from fastapi import APIRouter, Depends, status
from pydantic import Field

from vendorhive.api.dependencies import get_current_actor, get_review_service
from vendorhive.schemas import CamelModel, Review
from vendorhive.services.authorization import Actor
from vendorhive.services.review_service import ReviewService


class CreateReviewRequest(CamelModel):
    vendor_id: int
    rating: int = Field(..., ge=1, le=5, description="1 to 5 stars")
    comment: Optional[str] = None
    user_id: Optional[int] = None


router = APIRouter(prefix="/api/reviews", tags=["reviews"])


@router.post("", response_model=Review, status_code=status.HTTP_201_CREATED)
def create_review(
    request: CreateReviewRequest,
    actor: Actor = Depends(get_current_actor),
    review_service: ReviewService = Depends(get_review_service),
):
    """
    Review a vendor.

    Updates the vendor's rating (rounded mean) and review count.
    One review per user and vendor.
    """
    return review_service.create_review(
        actor,
        vendor_id=request.vendor_id,
        rating=request.rating,
        comment=request.comment,
        user_id=request.user_id,
    )
