"""
Coupon routes: public validation and admin management.
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Optional
from travelbuddy.api.dependencies import require_admin
from travelbuddy.core.exceptions import NotFoundError
from travelbuddy.core.utils import format_response, page_meta, utcnow
from travelbuddy.db.session import get_db
from travelbuddy.models.coupon import Coupon
from travelbuddy.models.user import User
from travelbuddy.schemas.common import ApiResponse, Page
from travelbuddy.schemas.coupon import (
    CouponCreate, CouponUpdate, CouponResponse, CouponValidateRequest, CouponQuoteResponse
)
from travelbuddy.services import coupon_service

router = APIRouter(prefix="/coupons", tags=["coupons"])


def _to_response(coupon: Coupon, now=None) -> CouponResponse:
    response = CouponResponse.model_validate(coupon)
    response.is_expired = coupon.expires_at < (now or utcnow())
    return response


@router.post("/validate", response_model=ApiResponse[CouponQuoteResponse])
async def validate_coupon(request: CouponValidateRequest, db: Session = Depends(get_db)):
    """Check a coupon code against a purchase amount and return the discount."""
    quote = coupon_service.validate_coupon(db, request.code, request.amount)
    return format_response(CouponQuoteResponse.model_validate(quote), "Coupon is valid")


@router.post("", response_model=ApiResponse[CouponResponse], status_code=status.HTTP_201_CREATED)
async def create_coupon(
    coupon_data: CouponCreate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Create a coupon (admin only)."""
    coupon = coupon_service.create_coupon(db, coupon_data.model_dump(), admin.id)
    return format_response(_to_response(coupon), "Coupon created")


@router.get("", response_model=ApiResponse[Page[CouponResponse]])
async def list_coupons(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    is_active: Optional[bool] = None,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """List coupons, newest first (admin only)."""
    query = db.query(Coupon)
    if is_active is not None:
        query = query.filter(Coupon.is_active.is_(is_active))

    total = query.count()
    coupons = query.order_by(Coupon.created_at.desc(), Coupon.id.desc()).offset((page - 1) * limit).limit(limit).all()
    now = utcnow()
    return format_response({
        "meta": page_meta(total, page, limit),
        "data": [_to_response(c, now) for c in coupons]
    })


@router.get("/{coupon_id}", response_model=ApiResponse[CouponResponse])
async def get_coupon(
    coupon_id: int,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Get a coupon by ID (admin only)."""
    coupon = db.query(Coupon).filter(Coupon.id == coupon_id).first()
    if not coupon:
        raise NotFoundError("Coupon not found")
    return format_response(_to_response(coupon))


@router.patch("/{coupon_id}", response_model=ApiResponse[CouponResponse])
async def update_coupon(
    coupon_id: int,
    coupon_data: CouponUpdate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Update a coupon (admin only)."""
    coupon = coupon_service.update_coupon(db, coupon_id, coupon_data.model_dump(exclude_unset=True))
    return format_response(_to_response(coupon), "Coupon updated")


@router.delete("/{coupon_id}", response_model=ApiResponse[None])
async def delete_coupon(
    coupon_id: int,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Delete a coupon (admin only)."""
    coupon_service.delete_coupon(db, coupon_id)
    return format_response(None, "Coupon deleted")
