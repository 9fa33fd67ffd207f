"""
Travel plan routes: CRUD, discovery, joining and reviews.
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import datetime
from travelbuddy.api.dependencies import get_current_user, get_current_user_optional, require_admin
from travelbuddy.core.utils import format_response, page_meta, split_csv, to_naive_utc, utcnow
from travelbuddy.db.session import get_db
from travelbuddy.models.travel_plan import PlanStatus, TravelPlan, TravelType
from travelbuddy.models.user import User
from travelbuddy.schemas.common import ApiResponse, Page
from travelbuddy.schemas.travel_plan import (
    TravelPlanCreate, TravelPlanUpdate, TravelPlanStatusUpdate, TravelPlanResponse,
    ReviewCreate, ReviewResponse, ParticipantsResponse
)
from travelbuddy.services import travel_plan_service
from travelbuddy.services.participation_service import join_plan, list_participants
from travelbuddy.services.review_service import upsert_review, delete_review

router = APIRouter(prefix="/travel-plans", tags=["travel-plans"])


def _plan_page(total: int, plans: List[TravelPlan], page: int, limit: int) -> dict:
    now = utcnow()
    return {
        "meta": page_meta(total, page, limit),
        "data": [travel_plan_service.to_plan_response(p, now) for p in plans]
    }


@router.post("", response_model=ApiResponse[TravelPlanResponse], status_code=status.HTTP_201_CREATED)
async def create_travel_plan(
    plan_data: TravelPlanCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Create a travel plan hosted by the current user."""
    plan = travel_plan_service.create_plan(db, plan_data, current_user)
    return format_response(travel_plan_service.to_plan_response(plan), "Travel plan created")


@router.get("", response_model=ApiResponse[Page[TravelPlanResponse]])
async def list_travel_plans(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    destination: Optional[str] = None,
    from_date: Optional[datetime] = None,
    to_date: Optional[datetime] = None,
    tags: Optional[str] = Query(None, description="Comma-separated tags"),
    db: Session = Depends(get_db)
):
    """List public travel plans."""
    total, plans = travel_plan_service.list_public_plans(
        db, page, limit, destination,
        to_naive_utc(from_date), to_naive_utc(to_date), split_csv(tags)
    )
    return format_response(_plan_page(total, plans, page, limit))


@router.get("/match", response_model=ApiResponse[Page[TravelPlanResponse]])
async def match_travel_plans(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    destination: Optional[str] = None,
    from_date: Optional[datetime] = None,
    to_date: Optional[datetime] = None,
    tags: Optional[str] = Query(None, description="Comma-separated tags"),
    travel_type: Optional[TravelType] = None,
    current_user: Optional[User] = Depends(get_current_user_optional),
    db: Session = Depends(get_db)
):
    """Find joinable public plans. A logged-in user does not see their own plans."""
    total, plans = travel_plan_service.match_plans(
        db, page, limit, destination,
        to_naive_utc(from_date), to_naive_utc(to_date), split_csv(tags),
        travel_type=travel_type,
        exclude_host_id=current_user.id if current_user else None
    )
    return format_response(_plan_page(total, plans, page, limit))


@router.get("/search", response_model=ApiResponse[Page[TravelPlanResponse]])
async def search_travel_plans(
    query: str = Query(""),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db)
):
    """Free-text search over public plans."""
    total, plans = travel_plan_service.search_plans(db, query, page, limit)
    return format_response(_plan_page(total, plans, page, limit))


@router.get("/my", response_model=ApiResponse[Page[TravelPlanResponse]])
async def my_travel_plans(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """List plans hosted by the current user."""
    total, plans = travel_plan_service.list_host_plans(db, current_user.id, page, limit)
    return format_response(_plan_page(total, plans, page, limit))


@router.get("/admin", response_model=ApiResponse[Page[TravelPlanResponse]])
async def admin_travel_plans(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    host_id: Optional[int] = None,
    destination: Optional[str] = None,
    status: Optional[PlanStatus] = None,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """List every plan (admin only)."""
    total, plans = travel_plan_service.admin_list_plans(db, page, limit, host_id, destination, status)
    return format_response(_plan_page(total, plans, page, limit))


@router.get("/{plan_id}", response_model=ApiResponse[TravelPlanResponse])
async def get_travel_plan(plan_id: int, db: Session = Depends(get_db)):
    """Get a travel plan by ID."""
    plan = travel_plan_service.get_plan(db, plan_id)
    return format_response(travel_plan_service.to_plan_response(plan))


@router.patch("/{plan_id}", response_model=ApiResponse[TravelPlanResponse])
async def update_travel_plan(
    plan_id: int,
    plan_data: TravelPlanUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Update a travel plan (host or admin)."""
    plan = travel_plan_service.update_plan(db, plan_id, plan_data, current_user)
    return format_response(travel_plan_service.to_plan_response(plan), "Travel plan updated")


@router.patch("/{plan_id}/status", response_model=ApiResponse[TravelPlanResponse])
async def update_travel_plan_status(
    plan_id: int,
    status_data: TravelPlanStatusUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Close, cancel or reopen a travel plan (host or admin)."""
    plan = travel_plan_service.update_plan_status(db, plan_id, status_data.status, current_user)
    return format_response(travel_plan_service.to_plan_response(plan), "Status updated")


@router.delete("/{plan_id}", response_model=ApiResponse[None])
async def delete_travel_plan(
    plan_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Delete a travel plan (host or admin)."""
    travel_plan_service.delete_plan(db, plan_id, current_user)
    return format_response(None, "Travel plan deleted")


@router.post("/{plan_id}/join", response_model=ApiResponse[TravelPlanResponse])
async def join_travel_plan(
    plan_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Join a travel plan as a participant."""
    join_plan(db, plan_id, current_user.id)
    plan = travel_plan_service.get_plan(db, plan_id)
    return format_response(travel_plan_service.to_plan_response(plan), "Joined travel plan")


@router.get("/{plan_id}/participants", response_model=ApiResponse[ParticipantsResponse])
async def get_travel_plan_participants(
    plan_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """List participants of a plan (host or admin)."""
    return format_response(list_participants(db, plan_id, current_user))


@router.post("/{plan_id}/reviews", response_model=ApiResponse[ReviewResponse], status_code=status.HTTP_201_CREATED)
async def review_travel_plan(
    plan_id: int,
    review_data: ReviewCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Review the host of an ended plan. Submitting again replaces the previous review."""
    review = upsert_review(db, plan_id, current_user.id, review_data.rating, review_data.comment)
    return format_response(travel_plan_service.review_to_response(review), "Review saved")


@router.delete("/{plan_id}/reviews/{review_id}", response_model=ApiResponse[None])
async def delete_travel_plan_review(
    plan_id: int,
    review_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Delete your own review."""
    delete_review(db, plan_id, review_id, current_user.id)
    return format_response(None, "Review deleted")
