"""
Pydantic schemas for subscription payments.
"""
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from travelbuddy.core.config import settings
from travelbuddy.models.payment import PaymentStatus
from travelbuddy.models.user import SubscriptionStatus


class PaymentIntentCreate(BaseModel):
    """Schema for starting a subscription purchase. Amount is in cents."""
    amount: int = Field(gt=0)
    currency: str = Field(default=settings.DEFAULT_CURRENCY, min_length=3, max_length=3)
    subscription_days: int = Field(default=settings.DEFAULT_SUBSCRIPTION_DAYS, gt=0)
    coupon_code: Optional[str] = None


class PaymentIntentResponse(BaseModel):
    payment_id: int
    payment_intent_id: str
    client_secret: Optional[str] = None
    amount: int
    discount_amount: int
    final_amount: int
    currency: str
    status: PaymentStatus


class PaymentConfirm(BaseModel):
    payment_intent_id: str = Field(min_length=1)


class SubscriptionResponse(BaseModel):
    subscription_status: SubscriptionStatus
    subscription_expires_at: Optional[datetime] = None
    payment_status: PaymentStatus
