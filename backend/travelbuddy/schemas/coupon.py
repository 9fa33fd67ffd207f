"""
Pydantic schemas for Coupon entity.
"""
from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import datetime
from travelbuddy.core.utils import to_naive_utc
from travelbuddy.models.coupon import DiscountType


def _normalize_code(v):
    if isinstance(v, str):
        return v.strip().upper()
    return v


class CouponBase(BaseModel):
    """Base coupon schema."""
    code: str = Field(min_length=3, max_length=50)
    description: Optional[str] = Field(default=None, max_length=500)
    discount_type: DiscountType
    discount_value: int = Field(gt=0)
    min_amount: Optional[int] = Field(default=None, ge=0)
    max_discount: Optional[int] = Field(default=None, ge=0)
    usage_limit: Optional[int] = Field(default=None, gt=0)
    expires_at: datetime

    @field_validator("code", mode="before")
    @classmethod
    def upper_code(cls, v):
        return _normalize_code(v)

    @field_validator("expires_at")
    @classmethod
    def naive_utc(cls, v):
        return to_naive_utc(v)


class CouponCreate(CouponBase):
    """Schema for coupon creation."""
    is_active: bool = True


class CouponUpdate(BaseModel):
    """Schema for coupon update. Only the fields sent are changed."""
    code: Optional[str] = Field(default=None, min_length=3, max_length=50)
    description: Optional[str] = Field(default=None, max_length=500)
    discount_type: Optional[DiscountType] = None
    discount_value: Optional[int] = Field(default=None, gt=0)
    min_amount: Optional[int] = Field(default=None, ge=0)
    max_discount: Optional[int] = Field(default=None, ge=0)
    usage_limit: Optional[int] = Field(default=None, gt=0)
    expires_at: Optional[datetime] = None
    is_active: Optional[bool] = None

    @field_validator("code", mode="before")
    @classmethod
    def upper_code(cls, v):
        return _normalize_code(v)

    @field_validator("expires_at")
    @classmethod
    def naive_utc(cls, v):
        return to_naive_utc(v)


class CouponResponse(CouponBase):
    """Schema for coupon response."""
    id: int
    used_count: int
    is_active: bool
    is_expired: bool = False
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class CouponValidateRequest(BaseModel):
    """Schema for checking a coupon against a purchase amount (in cents)."""
    code: str = Field(min_length=1)
    amount: int = Field(gt=0)


class CouponSummary(BaseModel):
    code: str
    description: Optional[str] = None
    discount_type: DiscountType
    discount_value: int

    class Config:
        from_attributes = True


class CouponQuoteResponse(BaseModel):
    """Discount computed for a purchase."""
    coupon: CouponSummary
    original_amount: int
    discount_amount: int
    final_amount: int

    class Config:
        from_attributes = True
