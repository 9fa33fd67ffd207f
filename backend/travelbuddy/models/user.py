"""
User model for authentication, profiles and host ratings.
"""
from sqlalchemy import Column, String, Boolean, Text, Float, Integer, DateTime, JSON, Enum as SQLEnum
from sqlalchemy.orm import relationship
from travelbuddy.db.base import BaseModel
import enum


class UserRole(str, enum.Enum):
    """User role enumeration."""
    USER = "USER"
    ADMIN = "ADMIN"
    MODERATOR = "MODERATOR"


class SubscriptionStatus(str, enum.Enum):
    """Subscription status enumeration."""
    NONE = "NONE"
    ACTIVE = "ACTIVE"
    EXPIRED = "EXPIRED"


class User(BaseModel):
    """User model. Rating fields are re-aggregated from reviews on the user's hosted plans."""
    __tablename__ = "users"

    name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    hashed_password = Column(String(255), nullable=False)
    role = Column(SQLEnum(UserRole), default=UserRole.USER, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    is_blocked = Column(Boolean, default=False, nullable=False)

    # Profile
    image = Column(String(500), nullable=True)
    bio = Column(Text, nullable=True)
    phone = Column(String(50), nullable=True)
    current_location = Column(String(200), nullable=True)
    travel_interests = Column(JSON, default=list, nullable=False)
    visited_countries = Column(JSON, default=list, nullable=False)
    gallery = Column(JSON, default=list, nullable=False)

    # Host rating aggregate
    rating_average = Column(Float, default=0.0, nullable=False)
    rating_count = Column(Integer, default=0, nullable=False)

    # Plan ids appended on every successful join
    travel_history = Column(JSON, default=list, nullable=False)

    # Subscription
    subscription_status = Column(SQLEnum(SubscriptionStatus), default=SubscriptionStatus.NONE, nullable=False)
    subscription_expires_at = Column(DateTime, nullable=True)
    stripe_customer_id = Column(String(100), nullable=True)

    # Password reset
    otp_hash = Column(String(64), nullable=True)
    otp_expires_at = Column(DateTime, nullable=True)

    # Relationships
    hosted_plans = relationship("TravelPlan", back_populates="host", cascade="all, delete-orphan")
    participations = relationship("TravelPlanParticipant", back_populates="user", cascade="all, delete-orphan")
    payments = relationship("Payment", back_populates="user", cascade="all, delete-orphan")

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN
