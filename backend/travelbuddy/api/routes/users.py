"""
User management routes.
"""
import logging
from fastapi import APIRouter, Depends, Query
from sqlalchemy import String, cast, or_
from sqlalchemy.orm import Session, Query as OrmQuery
from typing import List, Optional
from travelbuddy.api.dependencies import get_current_user, require_admin
from travelbuddy.core.exceptions import ForbiddenError, NotFoundError, ValidationFailedError
from travelbuddy.core.security import verify_password, get_password_hash
from travelbuddy.core.utils import format_response, page_meta, split_csv, utcnow
from travelbuddy.db.session import get_db
from travelbuddy.models.user import User
from travelbuddy.schemas.common import ApiResponse, Page
from travelbuddy.schemas.travel_plan import TravelPlanResponse
from travelbuddy.schemas.user import UserResponse, UserUpdate, PasswordUpdate, UserAdminUpdate
from travelbuddy.services import travel_plan_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])

LIST_FIELDS = ("travel_interests", "visited_countries", "gallery")


def _get_user_or_404(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFoundError("User not found")
    return user


def _user_page(query: OrmQuery, page: int, limit: int) -> dict:
    total = query.order_by(None).count()
    users = query.order_by(User.created_at.desc(), User.id.desc()).offset((page - 1) * limit).limit(limit).all()
    return {
        "meta": page_meta(total, page, limit),
        "data": [UserResponse.model_validate(u) for u in users]
    }


def _text_filter(q: str):
    pattern = f"%{q.strip()}%"
    return or_(
        User.name.ilike(pattern),
        User.email.ilike(pattern),
        User.bio.ilike(pattern),
        User.current_location.ilike(pattern)
    )


def _json_list_contains(column, values: List[str]):
    """Match users whose JSON list column holds any of the values (case-insensitive)."""
    return or_(*[cast(column, String).ilike(f'%"{v}"%') for v in values])


@router.get("/me", response_model=ApiResponse[UserResponse])
async def get_current_user_info(current_user: User = Depends(get_current_user)):
    """Get current user information."""
    return format_response(UserResponse.model_validate(current_user))


@router.get("/me/travel-history", response_model=ApiResponse[Page[TravelPlanResponse]])
async def get_travel_history(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Plans the current user joined that have already ended."""
    now = utcnow()
    total, plans = travel_plan_service.list_travel_history(db, current_user, page, limit, now)
    return format_response({
        "meta": page_meta(total, page, limit),
        "data": [travel_plan_service.to_plan_response(p, now) for p in plans]
    })


@router.get("", response_model=ApiResponse[Page[UserResponse]])
async def admin_list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = None,
    status: Optional[str] = Query(None, pattern="^(blocked|unblocked)$"),
    id: Optional[int] = None,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """List users with search, block status and id filters (admin only)."""
    query = db.query(User)
    if search and search.strip():
        query = query.filter(_text_filter(search))
    if status == "blocked":
        query = query.filter(User.is_blocked.is_(True))
    elif status == "unblocked":
        query = query.filter(User.is_blocked.is_(False))
    if id is not None:
        query = query.filter(User.id == id)
    return format_response(_user_page(query, page, limit))


@router.get("/search", response_model=ApiResponse[Page[UserResponse]])
async def search_users(
    query: Optional[str] = None,
    visited_countries: Optional[str] = Query(None, description="Comma-separated countries"),
    travel_interests: Optional[str] = Query(None, description="Comma-separated interests"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db)
):
    """Find travellers by text, visited countries or interests."""
    users = db.query(User).filter(User.is_blocked.is_(False), User.is_active.is_(True))
    if query and query.strip():
        users = users.filter(_text_filter(query))
    countries = split_csv(visited_countries)
    if countries:
        users = users.filter(_json_list_contains(User.visited_countries, countries))
    interests = split_csv(travel_interests)
    if interests:
        users = users.filter(_json_list_contains(User.travel_interests, interests))
    return format_response(_user_page(users, page, limit))


@router.get("/all", response_model=ApiResponse[Page[UserResponse]])
async def list_all_users(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db)
):
    """List active travellers."""
    query = db.query(User).filter(User.is_blocked.is_(False), User.is_active.is_(True))
    return format_response(_user_page(query, page, limit))


@router.get("/{user_id}", response_model=ApiResponse[UserResponse])
async def get_user(user_id: int, db: Session = Depends(get_db)):
    """Get user by ID."""
    return format_response(UserResponse.model_validate(_get_user_or_404(db, user_id)))


@router.patch("/{user_id}", response_model=ApiResponse[UserResponse])
async def update_user(
    user_id: int,
    user_data: UserUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Update a profile (self or admin)."""
    if current_user.id != user_id and not current_user.is_admin:
        raise ForbiddenError("You can only update your own profile")

    user = _get_user_or_404(db, user_id)
    values = user_data.model_dump(exclude_unset=True)
    if "name" in values and values["name"] is None:
        raise ValidationFailedError("name cannot be null")

    for field, value in values.items():
        if field in LIST_FIELDS:
            value = value or []
        setattr(user, field, value)

    db.commit()
    db.refresh(user)
    return format_response(UserResponse.model_validate(user), "Profile updated")


@router.patch("/{user_id}/password", response_model=ApiResponse[None])
async def update_password(
    user_id: int,
    password_data: PasswordUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Change your own password."""
    if current_user.id != user_id:
        raise ForbiddenError("You can only change your own password")

    if not verify_password(password_data.current_password, current_user.hashed_password):
        raise ValidationFailedError("Current password is incorrect")

    current_user.hashed_password = get_password_hash(password_data.new_password)
    db.commit()
    logger.info(f"User {user_id} changed password")
    return format_response(None, "Password updated")


@router.patch("/{user_id}/admin", response_model=ApiResponse[UserResponse])
async def admin_update_user(
    user_id: int,
    update_data: UserAdminUpdate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Change role or block status (admin only)."""
    user = _get_user_or_404(db, user_id)
    values = update_data.model_dump(exclude_unset=True, exclude_none=True)

    if user.id == admin.id and values.get("is_blocked"):
        raise ValidationFailedError("You cannot block yourself")

    for field, value in values.items():
        setattr(user, field, value)

    db.commit()
    db.refresh(user)
    logger.info(f"Admin {admin.id} updated user {user_id}: {values}")
    return format_response(UserResponse.model_validate(user), "User updated")
