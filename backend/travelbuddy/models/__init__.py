"""Models package - Import all models for SQLAlchemy registration."""
from travelbuddy.models.user import User, UserRole, SubscriptionStatus
from travelbuddy.models.travel_plan import (
    TravelPlan, TravelPlanParticipant, TravelPlanReview, TravelPlanTag,
    TravelType, PlanStatus
)
from travelbuddy.models.coupon import Coupon, DiscountType
from travelbuddy.models.payment import Payment, PaymentStatus

__all__ = [
    "User",
    "UserRole",
    "SubscriptionStatus",
    "TravelPlan",
    "TravelPlanParticipant",
    "TravelPlanReview",
    "TravelPlanTag",
    "TravelType",
    "PlanStatus",
    "Coupon",
    "DiscountType",
    "Payment",
    "PaymentStatus",
]
