"""
Subscription payment routes.
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from travelbuddy.api.dependencies import get_current_user
from travelbuddy.core.utils import format_response
from travelbuddy.db.session import get_db
from travelbuddy.models.user import User
from travelbuddy.schemas.common import ApiResponse
from travelbuddy.schemas.payment import (
    PaymentIntentCreate, PaymentIntentResponse, PaymentConfirm, SubscriptionResponse
)
from travelbuddy.services.payment_service import create_subscription_intent, confirm_subscription_payment

router = APIRouter(prefix="/payments", tags=["payments"])


@router.post("/create-intent", response_model=ApiResponse[PaymentIntentResponse], status_code=status.HTTP_201_CREATED)
async def create_payment_intent(
    intent_data: PaymentIntentCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Start a subscription purchase, optionally with a coupon."""
    payment, client_secret = create_subscription_intent(
        db,
        current_user,
        amount=intent_data.amount,
        currency=intent_data.currency,
        subscription_days=intent_data.subscription_days,
        coupon_code=intent_data.coupon_code
    )
    data = PaymentIntentResponse(
        payment_id=payment.id,
        payment_intent_id=payment.provider_payment_id,
        client_secret=client_secret,
        amount=payment.amount,
        discount_amount=payment.discount_amount,
        final_amount=payment.final_amount,
        currency=payment.currency,
        status=payment.status
    )
    return format_response(data, "Payment intent created")


@router.post("/confirm", response_model=ApiResponse[SubscriptionResponse])
async def confirm_payment(
    confirm_data: PaymentConfirm,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Confirm a completed payment and activate the subscription."""
    payment = confirm_subscription_payment(db, current_user, confirm_data.payment_intent_id)
    data = SubscriptionResponse(
        subscription_status=current_user.subscription_status,
        subscription_expires_at=current_user.subscription_expires_at,
        payment_status=payment.status
    )
    return format_response(data, "Subscription activated")
