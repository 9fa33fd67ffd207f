"""
Coupon service for discount validation, redemption and admin management.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from sqlalchemy import update, or_
from sqlalchemy.orm import Session
from travelbuddy.core.exceptions import (
    NotFoundError, ConflictError, ValidationFailedError,
    CouponInactiveError, CouponExpiredError, CouponLimitExceededError, CouponBelowMinimumError
)
from travelbuddy.core.utils import utcnow
from travelbuddy.models.coupon import Coupon, DiscountType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CouponQuote:
    """Result of applying a coupon to a purchase amount."""
    coupon: Coupon
    original_amount: int
    discount_amount: int
    final_amount: int


def normalize_code(code: str) -> str:
    return (code or "").strip().upper()


def compute_discount(discount_type: DiscountType, discount_value: int, amount: int, max_discount: Optional[int] = None) -> int:
    """
    Discount for ``amount``. Percentages are floored and capped by
    ``max_discount``; the result never exceeds the amount itself.
    """
    if DiscountType(discount_type) == DiscountType.PERCENTAGE:
        discount = (amount * discount_value) // 100
        if max_discount is not None and discount > max_discount:
            discount = max_discount
    else:
        discount = discount_value

    return max(0, min(discount, amount))


def evaluate_coupon(coupon: Coupon, amount: int, now: datetime) -> CouponQuote:
    """Check a coupon against a purchase and compute the discount. Does not consume the coupon."""
    if not coupon.is_active:
        raise CouponInactiveError()

    if now > coupon.expires_at:
        raise CouponExpiredError()

    if coupon.usage_limit is not None and coupon.used_count >= coupon.usage_limit:
        raise CouponLimitExceededError()

    if coupon.min_amount is not None and amount < coupon.min_amount:
        raise CouponBelowMinimumError(f"Minimum purchase amount of {coupon.min_amount} required")

    discount = compute_discount(coupon.discount_type, coupon.discount_value, amount, coupon.max_discount)
    return CouponQuote(
        coupon=coupon,
        original_amount=amount,
        discount_amount=discount,
        final_amount=amount - discount
    )


def get_coupon_by_code(db: Session, code: str) -> Optional[Coupon]:
    return db.query(Coupon).filter(Coupon.code == normalize_code(code)).first()


def validate_coupon(db: Session, code: str, amount: int, now: Optional[datetime] = None) -> CouponQuote:
    """Look up a coupon by code (case-insensitive) and quote it for ``amount``."""
    coupon = get_coupon_by_code(db, code)
    if not coupon:
        raise NotFoundError("Invalid coupon code")
    return evaluate_coupon(coupon, amount, now or utcnow())


def redeem_coupon(db: Session, coupon_id: int) -> bool:
    """
    Count one use of a coupon. Must only be called once per confirmed purchase.
    The increment is conditional so used_count never passes usage_limit.
    Does not commit; the caller commits with the purchase confirmation.
    """
    result = db.execute(
        update(Coupon)
        .where(Coupon.id == coupon_id)
        .where(or_(Coupon.usage_limit.is_(None), Coupon.used_count < Coupon.usage_limit))
        .values(used_count=Coupon.used_count + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        logger.warning(f"Coupon {coupon_id} reached its usage limit before redemption")
        return False
    logger.info(f"Coupon {coupon_id} redeemed")
    return True


# ---------------------- Admin management ----------------------

REQUIRED_FIELDS = ("code", "discount_type", "discount_value", "expires_at", "is_active")

def _check_discount(discount_type, discount_value) -> None:
    if discount_type == DiscountType.PERCENTAGE and discount_value is not None and discount_value > 100:
        raise ValidationFailedError("Percentage discount cannot exceed 100%")


def _check_expiry(expires_at: datetime, now: datetime) -> None:
    if expires_at <= now:
        raise ValidationFailedError("Expiration date must be in the future")


def create_coupon(db: Session, data: dict, created_by: int, now: Optional[datetime] = None) -> Coupon:
    """Create a coupon. ``data`` comes from ``CouponCreate.model_dump()``."""
    now = now or utcnow()
    code = normalize_code(data["code"])

    if get_coupon_by_code(db, code):
        raise ConflictError("Coupon code already exists")

    _check_discount(data["discount_type"], data["discount_value"])
    _check_expiry(data["expires_at"], now)

    coupon = Coupon(**{**data, "code": code}, created_by=created_by)
    db.add(coupon)
    db.commit()
    db.refresh(coupon)
    logger.info(f"Coupon {coupon.code} created by user {created_by}")
    return coupon


def update_coupon(db: Session, coupon_id: int, data: dict, now: Optional[datetime] = None) -> Coupon:
    """Apply a partial update. ``data`` holds only the fields that were sent."""
    now = now or utcnow()
    coupon = db.query(Coupon).filter(Coupon.id == coupon_id).first()
    if not coupon:
        raise NotFoundError("Coupon not found")

    for field in REQUIRED_FIELDS:
        if field in data and data[field] is None:
            raise ValidationFailedError(f"{field} cannot be null")

    if data.get("code") is not None:
        data["code"] = normalize_code(data["code"])
        if data["code"] != coupon.code and get_coupon_by_code(db, data["code"]):
            raise ConflictError("Coupon code already exists")

    _check_discount(
        data.get("discount_type") or coupon.discount_type,
        data.get("discount_value", coupon.discount_value)
    )
    if data.get("expires_at") is not None:
        _check_expiry(data["expires_at"], now)

    if data.get("usage_limit") is not None and data["usage_limit"] < coupon.used_count:
        raise ValidationFailedError(f"Usage limit cannot be lower than current usage ({coupon.used_count})")

    for field, value in data.items():
        setattr(coupon, field, value)

    db.commit()
    db.refresh(coupon)
    return coupon


def delete_coupon(db: Session, coupon_id: int) -> None:
    coupon = db.query(Coupon).filter(Coupon.id == coupon_id).first()
    if not coupon:
        raise NotFoundError("Coupon not found")
    db.delete(coupon)
    db.commit()
    logger.info(f"Coupon {coupon_id} deleted")
