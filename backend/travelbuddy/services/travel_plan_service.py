"""
Travel plan service for plan CRUD, list filtering and response enrichment.
"""
import logging
from datetime import datetime
from typing import List, Optional, Tuple
from sqlalchemy import or_, select
from sqlalchemy.orm import Session, Query, selectinload
from travelbuddy.core.exceptions import NotFoundError, ForbiddenError, ValidationFailedError
from travelbuddy.core.utils import utcnow
from travelbuddy.models.travel_plan import (
    TravelPlan, TravelPlanParticipant, TravelPlanReview, TravelPlanTag, TravelType, PlanStatus
)
from travelbuddy.models.user import User
from travelbuddy.schemas.travel_plan import (
    TravelPlanCreate, TravelPlanUpdate, TravelPlanResponse, ReviewResponse,
    HostSummary, ParticipantSummary
)
from travelbuddy.services.plan_status import derive_status, status_filter, joinable_filter
from travelbuddy.services.review_service import refresh_host_rating

logger = logging.getLogger(__name__)

NON_NULLABLE_FIELDS = ("title", "start_date", "end_date", "travel_type", "is_public")


# ---------------------- Response building ----------------------

def review_to_response(review: TravelPlanReview) -> ReviewResponse:
    return ReviewResponse(
        id=review.id,
        plan_id=review.plan_id,
        reviewer_id=review.reviewer_id,
        reviewer_name=review.reviewer.name if review.reviewer else None,
        host_id=review.host_id,
        rating=review.rating,
        comment=review.comment,
        created_at=review.created_at,
        updated_at=review.updated_at
    )


def to_plan_response(plan: TravelPlan, now: Optional[datetime] = None) -> TravelPlanResponse:
    """Attach derived status, host summary, participants and reviews to a plan."""
    now = now or utcnow()
    host = plan.host
    participants = sorted(plan.participants, key=lambda p: (p.created_at, p.id))
    reviews = sorted(plan.reviews, key=lambda r: (r.created_at, r.id), reverse=True)

    return TravelPlanResponse(
        id=plan.id,
        host_id=plan.host_id,
        title=plan.title,
        destination_country=plan.destination_country,
        destination_city=plan.destination_city,
        start_date=plan.start_date,
        end_date=plan.end_date,
        budget_min=plan.budget_min,
        budget_max=plan.budget_max,
        travel_type=plan.travel_type,
        description=plan.description,
        group_chat_link=plan.group_chat_link,
        contact=plan.contact,
        is_public=plan.is_public,
        images=plan.images or [],
        tags=plan.tags,
        max_participants=plan.max_participants,
        participants_count=plan.participants_count,
        status=derive_status(plan, now),
        host=HostSummary(
            id=host.id,
            name=host.name,
            image=host.image,
            rating_average=host.rating_average or 0.0,
            rating_count=host.rating_count or 0
        ) if host else None,
        participants=[
            ParticipantSummary(id=p.user_id, name=p.user.name if p.user else None)
            for p in participants
        ],
        reviews=[review_to_response(r) for r in reviews],
        created_at=plan.created_at,
        updated_at=plan.updated_at
    )


# ---------------------- Queries ----------------------

def _plan_query(db: Session) -> Query:
    """Plan query with everything the response needs loaded up front."""
    return db.query(TravelPlan).options(
        selectinload(TravelPlan.host),
        selectinload(TravelPlan.tag_rows),
        selectinload(TravelPlan.participants).selectinload(TravelPlanParticipant.user),
        selectinload(TravelPlan.reviews).selectinload(TravelPlanReview.reviewer)
    )


def _paginate(query: Query, page: int, limit: int, *order_by) -> Tuple[int, List[TravelPlan]]:
    total = query.order_by(None).count()
    items = query.order_by(*order_by).offset((page - 1) * limit).limit(limit).all()
    return total, items


def _destination_filter(destination: str):
    pattern = f"%{destination.strip()}%"
    return or_(
        TravelPlan.destination_country.ilike(pattern),
        TravelPlan.destination_city.ilike(pattern)
    )


def _tags_filter(tags: List[str]):
    wanted = [t.strip().lower() for t in tags if t.strip()]
    return TravelPlan.id.in_(
        select(TravelPlanTag.plan_id).where(TravelPlanTag.tag.in_(wanted))
    )


def _apply_list_filters(
    query: Query,
    destination: Optional[str] = None,
    from_date: Optional[datetime] = None,
    to_date: Optional[datetime] = None,
    tags: Optional[List[str]] = None
) -> Query:
    if destination and destination.strip():
        query = query.filter(_destination_filter(destination))
    if from_date:
        query = query.filter(TravelPlan.start_date >= from_date)
    if to_date:
        query = query.filter(TravelPlan.end_date <= to_date)
    if tags:
        query = query.filter(_tags_filter(tags))
    return query


def get_plan(db: Session, plan_id: int) -> TravelPlan:
    plan = _plan_query(db).filter(TravelPlan.id == plan_id).first()
    if not plan:
        raise NotFoundError("Travel plan not found")
    return plan


def list_public_plans(
    db: Session,
    page: int = 1,
    limit: int = 10,
    destination: Optional[str] = None,
    from_date: Optional[datetime] = None,
    to_date: Optional[datetime] = None,
    tags: Optional[List[str]] = None
) -> Tuple[int, List[TravelPlan]]:
    """Public plans, soonest first."""
    query = _plan_query(db).filter(TravelPlan.is_public.is_(True))
    query = _apply_list_filters(query, destination, from_date, to_date, tags)
    return _paginate(query, page, limit, TravelPlan.start_date.asc(), TravelPlan.id.asc())


def match_plans(
    db: Session,
    page: int = 1,
    limit: int = 10,
    destination: Optional[str] = None,
    from_date: Optional[datetime] = None,
    to_date: Optional[datetime] = None,
    tags: Optional[List[str]] = None,
    travel_type: Optional[TravelType] = None,
    exclude_host_id: Optional[int] = None,
    now: Optional[datetime] = None
) -> Tuple[int, List[TravelPlan]]:
    """Public plans a traveller could join right now, matching the given preferences."""
    now = now or utcnow()
    query = _plan_query(db).filter(TravelPlan.is_public.is_(True), joinable_filter(now))
    query = _apply_list_filters(query, destination, from_date, to_date, tags)
    if travel_type:
        query = query.filter(TravelPlan.travel_type == travel_type)
    if exclude_host_id is not None:
        query = query.filter(TravelPlan.host_id != exclude_host_id)
    return _paginate(query, page, limit, TravelPlan.start_date.asc(), TravelPlan.id.asc())


def search_plans(db: Session, q: str, page: int = 1, limit: int = 10) -> Tuple[int, List[TravelPlan]]:
    """Free-text search over public plans, their tags, travel type and host name/email."""
    q = (q or "").strip()
    if not q:
        raise ValidationFailedError("Search query is required")

    pattern = f"%{q}%"
    host_ids = select(User.id).where(or_(User.name.ilike(pattern), User.email.ilike(pattern)))

    conditions = [
        TravelPlan.title.ilike(pattern),
        TravelPlan.description.ilike(pattern),
        TravelPlan.destination_country.ilike(pattern),
        TravelPlan.destination_city.ilike(pattern),
        TravelPlan.contact.ilike(pattern),
        TravelPlan.group_chat_link.ilike(pattern),
        TravelPlan.id.in_(select(TravelPlanTag.plan_id).where(TravelPlanTag.tag == q.lower())),
        TravelPlan.host_id.in_(host_ids)
    ]

    travel_type = TravelType.__members__.get(q.upper())
    if travel_type:
        conditions.append(TravelPlan.travel_type == travel_type)

    query = _plan_query(db).filter(TravelPlan.is_public.is_(True), or_(*conditions))
    return _paginate(query, page, limit, TravelPlan.created_at.desc(), TravelPlan.id.desc())


def list_host_plans(db: Session, host_id: int, page: int = 1, limit: int = 10) -> Tuple[int, List[TravelPlan]]:
    """All plans hosted by a user, public or not, latest start first."""
    query = _plan_query(db).filter(TravelPlan.host_id == host_id)
    return _paginate(query, page, limit, TravelPlan.start_date.desc(), TravelPlan.id.desc())


def admin_list_plans(
    db: Session,
    page: int = 1,
    limit: int = 10,
    host_id: Optional[int] = None,
    destination: Optional[str] = None,
    status: Optional[PlanStatus] = None,
    now: Optional[datetime] = None
) -> Tuple[int, List[TravelPlan]]:
    """Every plan, filterable by host, destination and derived status."""
    now = now or utcnow()
    query = _plan_query(db)
    if host_id is not None:
        query = query.filter(TravelPlan.host_id == host_id)
    if destination and destination.strip():
        query = query.filter(_destination_filter(destination))
    if status:
        query = query.filter(status_filter(status, now))
    return _paginate(query, page, limit, TravelPlan.created_at.desc(), TravelPlan.id.desc())


def list_travel_history(
    db: Session,
    user: User,
    page: int = 1,
    limit: int = 10,
    now: Optional[datetime] = None
) -> Tuple[int, List[TravelPlan]]:
    """Plans the user joined that have already ended, most recent first."""
    now = now or utcnow()
    ids = list(user.travel_history or [])
    if not ids:
        return 0, []
    query = _plan_query(db).filter(TravelPlan.id.in_(ids), TravelPlan.end_date < now)
    return _paginate(query, page, limit, TravelPlan.end_date.desc(), TravelPlan.id.desc())


# ---------------------- Mutations ----------------------

def _ensure_host_or_admin(plan: TravelPlan, user: User, message: str) -> None:
    if plan.host_id != user.id and not user.is_admin:
        raise ForbiddenError(message)


def create_plan(db: Session, data: TravelPlanCreate, host: User) -> TravelPlan:
    """Create a plan hosted by ``host``."""
    values = data.model_dump(exclude={"tags"})
    values["images"] = values.get("images") or []

    plan = TravelPlan(**values, host_id=host.id, participants_count=0, manual_status=PlanStatus.OPEN)
    plan.tags = data.tags or []
    db.add(plan)
    db.commit()

    logger.info(f"Travel plan {plan.id} created by user {host.id}")
    return get_plan(db, plan.id)


def update_plan(db: Session, plan_id: int, data: TravelPlanUpdate, user: User) -> TravelPlan:
    """Apply a partial update. Only the host or an admin may edit."""
    plan = get_plan(db, plan_id)
    _ensure_host_or_admin(plan, user, "Only host or admin can edit this plan")

    values = data.model_dump(exclude_unset=True)
    for field in NON_NULLABLE_FIELDS:
        if field in values and values[field] is None:
            raise ValidationFailedError(f"{field} cannot be null")

    start = values.get("start_date", plan.start_date)
    end = values.get("end_date", plan.end_date)
    if start >= end:
        raise ValidationFailedError("Start date must be before end date")

    budget_min = values.get("budget_min", plan.budget_min)
    budget_max = values.get("budget_max", plan.budget_max)
    if budget_min is not None and budget_max is not None and budget_min > budget_max:
        raise ValidationFailedError("budget_min cannot exceed budget_max")

    if values.get("max_participants") is not None and values["max_participants"] < plan.participants_count:
        raise ValidationFailedError("max_participants cannot be lower than the current number of participants")

    if "tags" in values:
        plan.tags = values.pop("tags") or []
    if "images" in values:
        values["images"] = values["images"] or []

    for field, value in values.items():
        setattr(plan, field, value)

    db.commit()
    return get_plan(db, plan_id)


def update_plan_status(db: Session, plan_id: int, status: PlanStatus, user: User) -> TravelPlan:
    """Set or clear the manual status override."""
    plan = get_plan(db, plan_id)
    _ensure_host_or_admin(plan, user, "Only host or admin can change status")

    plan.manual_status = status
    db.commit()
    logger.info(f"Travel plan {plan_id} status set to {status.value} by user {user.id}")
    return get_plan(db, plan_id)


def delete_plan(db: Session, plan_id: int, user: User) -> None:
    """Delete a plan with its participants and reviews, then refresh the host rating."""
    plan = get_plan(db, plan_id)
    _ensure_host_or_admin(plan, user, "Only host or admin can delete this plan")

    host_id = plan.host_id
    had_reviews = bool(plan.reviews)
    db.delete(plan)
    db.commit()

    if had_reviews:
        refresh_host_rating(db, host_id)
    logger.info(f"Travel plan {plan_id} deleted by user {user.id}")
