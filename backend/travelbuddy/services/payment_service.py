"""
Payment service for subscription purchases through Stripe.

Flow: the client asks for a PaymentIntent (optionally with a coupon), pays it
with Stripe on the frontend, then calls confirm. Confirmation is the purchase
event: it activates the subscription and redeems the coupon exactly once.
"""
import logging
import smtplib
import uuid
from datetime import datetime, timedelta
from typing import Optional, Tuple
import stripe
from sqlalchemy.orm import Session
from travelbuddy.core.config import settings
from travelbuddy.core.exceptions import NotFoundError, InvalidStateError, PaymentProviderError
from travelbuddy.core.utils import utcnow
from travelbuddy.models.payment import Payment, PaymentStatus
from travelbuddy.models.user import User, SubscriptionStatus
from travelbuddy.services.coupon_service import validate_coupon, redeem_coupon
from travelbuddy.services.email_service import send_subscription_email

logger = logging.getLogger(__name__)


def extend_subscription(user: User, days: int, now: datetime) -> None:
    """Extend from the current expiry if still active, otherwise from now."""
    if user.subscription_expires_at and user.subscription_expires_at > now:
        base = user.subscription_expires_at
    else:
        base = now
    user.subscription_expires_at = base + timedelta(days=days)
    user.subscription_status = SubscriptionStatus.ACTIVE


def expire_subscription_if_due(user: User, now: Optional[datetime] = None) -> bool:
    """Downgrade an ACTIVE subscription whose expiry has passed. Returns True if changed."""
    now = now or utcnow()
    if (
        user.subscription_status == SubscriptionStatus.ACTIVE
        and user.subscription_expires_at
        and user.subscription_expires_at < now
    ):
        user.subscription_status = SubscriptionStatus.EXPIRED
        return True
    return False


def _complete_payment(db: Session, payment: Payment, user: User, now: datetime) -> None:
    payment.status = PaymentStatus.SUCCEEDED
    payment.confirmed_at = now
    if payment.coupon_id:
        redeem_coupon(db, payment.coupon_id)
    extend_subscription(user, payment.subscription_days, now)


def _notify(user: User) -> None:
    try:
        send_subscription_email(user.email, user.name, user.subscription_expires_at)
    except (smtplib.SMTPException, OSError) as e:
        logger.error(f"Failed to send subscription email to {user.email}: {e}")


def create_subscription_intent(
    db: Session,
    user: User,
    amount: int,
    currency: str,
    subscription_days: int,
    coupon_code: Optional[str] = None,
    now: Optional[datetime] = None
) -> Tuple[Payment, Optional[str]]:
    """
    Create a Stripe PaymentIntent for the discounted amount and record a pending Payment.
    Returns the payment and the client secret. A fully discounted purchase
    completes immediately and has no client secret.
    """
    now = now or utcnow()
    currency = currency.lower()

    quote = validate_coupon(db, coupon_code, amount, now) if coupon_code else None
    discount = quote.discount_amount if quote else 0
    final_amount = amount - discount

    payment = Payment(
        user_id=user.id,
        amount=amount,
        discount_amount=discount,
        final_amount=final_amount,
        currency=currency,
        subscription_days=subscription_days,
        coupon_id=quote.coupon.id if quote else None,
        status=PaymentStatus.PENDING
    )

    if final_amount == 0:
        payment.provider_payment_id = f"free_{uuid.uuid4().hex}"
        db.add(payment)
        _complete_payment(db, payment, user, now)
        db.commit()
        db.refresh(payment)
        logger.info(f"Fully discounted payment {payment.id} completed for user {user.id}")
        _notify(user)
        return payment, None

    stripe.api_key = settings.STRIPE_SECRET_KEY
    try:
        if not user.stripe_customer_id:
            customer = stripe.Customer.create(email=user.email, name=user.name)
            user.stripe_customer_id = customer.id

        intent = stripe.PaymentIntent.create(
            amount=final_amount,
            currency=currency,
            customer=user.stripe_customer_id,
            metadata={
                "user_id": str(user.id),
                "subscription_days": str(subscription_days),
                "coupon_code": quote.coupon.code if quote else ""
            }
        )
    except stripe.StripeError as e:
        db.rollback()
        logger.error(f"Stripe error creating payment intent for user {user.id}: {e}")
        raise PaymentProviderError("Could not create payment")

    payment.provider_payment_id = intent.id
    db.add(payment)
    db.commit()
    db.refresh(payment)
    logger.info(f"Payment intent {intent.id} created for user {user.id} ({final_amount} {currency})")
    return payment, intent.client_secret


def confirm_subscription_payment(
    db: Session,
    user: User,
    payment_intent_id: str,
    now: Optional[datetime] = None
) -> Payment:
    """
    Confirm a payment after the client completed it. Safe to call repeatedly:
    only the first successful confirmation activates the subscription and
    redeems the coupon.
    """
    now = now or utcnow()
    payment = db.query(Payment).filter(
        Payment.provider_payment_id == payment_intent_id
    ).with_for_update().first()
    if not payment or payment.user_id != user.id:
        raise NotFoundError("Payment not found")

    if payment.status == PaymentStatus.SUCCEEDED:
        db.rollback()
        return payment

    stripe.api_key = settings.STRIPE_SECRET_KEY
    try:
        intent = stripe.PaymentIntent.retrieve(payment_intent_id)
    except stripe.StripeError as e:
        db.rollback()
        logger.error(f"Stripe error retrieving payment intent {payment_intent_id}: {e}")
        raise PaymentProviderError("Could not verify payment")

    if intent.status != "succeeded":
        if intent.status == "canceled":
            payment.status = PaymentStatus.FAILED
            db.commit()
        else:
            db.rollback()
        raise InvalidStateError(f"Payment has not succeeded (status: {intent.status})")

    _complete_payment(db, payment, user, now)
    db.commit()
    db.refresh(payment)
    logger.info(f"Payment {payment.id} confirmed; subscription for user {user.id} active until {user.subscription_expires_at}")
    _notify(user)
    return payment
