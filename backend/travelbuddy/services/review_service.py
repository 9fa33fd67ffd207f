"""
Review service: plan reviews and host rating aggregation.
"""
import logging
from datetime import datetime
from typing import Optional
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from travelbuddy.core.exceptions import (
    NotFoundError, ForbiddenError, ValidationFailedError,
    ReviewNotAllowedError, NotParticipantError, HostSelfReviewError
)
from travelbuddy.core.utils import utcnow
from travelbuddy.models.travel_plan import PlanStatus, TravelPlan, TravelPlanParticipant, TravelPlanReview
from travelbuddy.models.user import User
from travelbuddy.services.plan_status import derive_status

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 5


def refresh_host_rating(db: Session, host_id: int) -> Optional[User]:
    """
    Recompute a host's rating average and count from all of their reviews.
    Always a full re-aggregation, never an incremental update.
    """
    average, count = db.query(
        func.avg(TravelPlanReview.rating),
        func.count(TravelPlanReview.id)
    ).filter(TravelPlanReview.host_id == host_id).one()

    host = db.query(User).filter(User.id == host_id).first()
    if not host:
        return None

    host.rating_average = float(average) if average is not None else 0.0
    host.rating_count = count or 0
    db.commit()
    return host


def _validate_rating(rating) -> int:
    if isinstance(rating, bool) or not isinstance(rating, int):
        raise ValidationFailedError("Rating must be an integer")
    if rating < MIN_RATING or rating > MAX_RATING:
        raise ValidationFailedError(f"Rating must be between {MIN_RATING} and {MAX_RATING}")
    return rating


def upsert_review(
    db: Session,
    plan_id: int,
    reviewer_id: int,
    rating: int,
    comment: Optional[str] = None,
    now: Optional[datetime] = None
) -> TravelPlanReview:
    """Create or overwrite the reviewer's review of an ended plan."""
    now = now or utcnow()

    plan = db.query(TravelPlan).filter(TravelPlan.id == plan_id).first()
    if not plan:
        raise NotFoundError("Travel plan not found")

    if derive_status(plan, now) != PlanStatus.ENDED:
        raise ReviewNotAllowedError()

    if plan.host_id == reviewer_id:
        raise HostSelfReviewError()

    joined = db.query(TravelPlanParticipant).filter(
        TravelPlanParticipant.plan_id == plan_id,
        TravelPlanParticipant.user_id == reviewer_id
    ).first()
    if not joined:
        raise NotParticipantError()

    rating = _validate_rating(rating)

    try:
        review = _save_review(db, plan, reviewer_id, rating, comment)
    except IntegrityError:
        # A concurrent submission by the same reviewer inserted first
        db.rollback()
        review = _save_review(db, plan, reviewer_id, rating, comment)

    refresh_host_rating(db, plan.host_id)
    db.refresh(review)
    logger.info(f"Review {review.id} saved for plan {plan_id} by user {reviewer_id}")
    return review


def _save_review(db: Session, plan: TravelPlan, reviewer_id: int, rating: int, comment: Optional[str]) -> TravelPlanReview:
    review = db.query(TravelPlanReview).filter(
        TravelPlanReview.plan_id == plan.id,
        TravelPlanReview.reviewer_id == reviewer_id
    ).first()

    if review:
        review.rating = rating
        review.comment = comment
    else:
        review = TravelPlanReview(
            plan_id=plan.id,
            reviewer_id=reviewer_id,
            host_id=plan.host_id,
            rating=rating,
            comment=comment
        )
        db.add(review)

    db.commit()
    return review


def delete_review(db: Session, plan_id: int, review_id: int, requester_id: int) -> None:
    """Delete the requester's own review and re-aggregate the host rating."""
    review = db.query(TravelPlanReview).filter(TravelPlanReview.id == review_id).first()
    if not review or review.plan_id != plan_id:
        raise NotFoundError("Review not found")

    if review.reviewer_id != requester_id:
        raise ForbiddenError("You can only delete your own review")

    host_id = review.host_id
    db.delete(review)
    db.commit()

    refresh_host_rating(db, host_id)
    logger.info(f"Review {review_id} deleted from plan {plan_id}")
