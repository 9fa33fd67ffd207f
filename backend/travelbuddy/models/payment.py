"""
Payment model for subscription purchases.
"""
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import relationship
from travelbuddy.db.base import BaseModel
import enum


class PaymentStatus(str, enum.Enum):
    """Payment status enumeration."""
    PENDING = "PENDING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"


class Payment(BaseModel):
    """A subscription purchase, one row per provider payment intent."""
    __tablename__ = "payments"

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    provider_payment_id = Column(String(100), unique=True, nullable=False, index=True)
    amount = Column(Integer, nullable=False)
    discount_amount = Column(Integer, default=0, nullable=False)
    final_amount = Column(Integer, nullable=False)
    currency = Column(String(3), nullable=False)
    subscription_days = Column(Integer, nullable=False)
    coupon_id = Column(Integer, ForeignKey("coupons.id", ondelete="SET NULL"), nullable=True)
    status = Column(SQLEnum(PaymentStatus), default=PaymentStatus.PENDING, nullable=False)
    confirmed_at = Column(DateTime, nullable=True)

    # Relationships
    user = relationship("User", back_populates="payments")
    coupon = relationship("Coupon")
