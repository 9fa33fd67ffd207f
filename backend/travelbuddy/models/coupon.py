"""
Coupon model for subscription discounts.
"""
from sqlalchemy import Column, String, Boolean, Integer, DateTime, ForeignKey, CheckConstraint, Enum as SQLEnum
from travelbuddy.db.base import BaseModel
import enum


class DiscountType(str, enum.Enum):
    """Discount type enumeration."""
    PERCENTAGE = "PERCENTAGE"
    FIXED = "FIXED"


class Coupon(BaseModel):
    """Discount coupon. Amounts are in the smallest currency unit (cents)."""
    __tablename__ = "coupons"

    code = Column(String(50), unique=True, nullable=False, index=True)  # always upper-case
    description = Column(String(500), nullable=True)
    discount_type = Column(SQLEnum(DiscountType), nullable=False)
    discount_value = Column(Integer, nullable=False)
    min_amount = Column(Integer, nullable=True)
    max_discount = Column(Integer, nullable=True)
    usage_limit = Column(Integer, nullable=True)
    used_count = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    expires_at = Column(DateTime, nullable=False)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    __table_args__ = (
        CheckConstraint("used_count >= 0", name="check_coupon_used_count_non_negative"),
    )
