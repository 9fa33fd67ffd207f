"""
Authentication routes for registration, login, logout and password reset.
"""
import logging
from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session
from travelbuddy.core.config import settings
from travelbuddy.core.exceptions import ConflictError, UnauthorizedError, ValidationFailedError
from travelbuddy.core.security import (
    verify_password, get_password_hash, create_access_token,
    generate_otp, hash_otp, otp_matches, otp_expiry
)
from travelbuddy.core.utils import format_response, utcnow
from travelbuddy.db.session import get_db
from travelbuddy.models.user import User
from travelbuddy.schemas.common import ApiResponse
from travelbuddy.schemas.user import (
    UserCreate, UserLogin, AuthResponse, ForgotPasswordRequest, ResetPasswordRequest
)
from travelbuddy.services.email_service import send_password_reset_email
from travelbuddy.services.payment_service import expire_subscription_if_due

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def _issue_token(response: Response, user: User) -> str:
    """Create a JWT for the user and set it as the auth cookie."""
    token = create_access_token(data={"sub": str(user.id), "role": user.role.value})
    response.set_cookie(
        key=settings.COOKIE_NAME,
        value=token,
        httponly=True,
        samesite="lax",
        secure=settings.COOKIE_SECURE,
        max_age=settings.ACCESS_TOKEN_EXPIRE_DAYS * 24 * 60 * 60
    )
    return token


def _auth_payload(user: User, token: str) -> AuthResponse:
    return AuthResponse(
        id=user.id,
        name=user.name,
        email=user.email,
        role=user.role,
        subscription_status=user.subscription_status,
        subscription_expires_at=user.subscription_expires_at,
        token=token
    )


@router.post("/register", response_model=ApiResponse[AuthResponse], status_code=status.HTTP_201_CREATED)
async def register(user_data: UserCreate, response: Response, db: Session = Depends(get_db)):
    """Register a new user and log them in."""
    email = user_data.email.lower()
    existing = db.query(User).filter(User.email == email).first()
    if existing:
        raise ConflictError("Email already in use")

    new_user = User(
        name=user_data.name,
        email=email,
        hashed_password=get_password_hash(user_data.password)
    )
    db.add(new_user)
    db.commit()
    db.refresh(new_user)
    logger.info(f"User {new_user.id} registered")

    token = _issue_token(response, new_user)
    return format_response(_auth_payload(new_user, token), "Registered successfully")


@router.post("/login", response_model=ApiResponse[AuthResponse])
async def login(credentials: UserLogin, response: Response, db: Session = Depends(get_db)):
    """Login and get JWT token."""
    user = db.query(User).filter(User.email == credentials.email.lower()).first()

    if not user or user.is_blocked or not user.is_active:
        raise UnauthorizedError("Invalid credentials")

    if not verify_password(credentials.password, user.hashed_password):
        raise UnauthorizedError("Invalid credentials")

    if expire_subscription_if_due(user):
        db.commit()

    token = _issue_token(response, user)
    return format_response(_auth_payload(user, token), "Logged in successfully")


@router.post("/logout", response_model=ApiResponse[None])
async def logout(response: Response):
    """Logout by clearing the auth cookie."""
    response.delete_cookie(settings.COOKIE_NAME)
    return format_response(None, "Logged out")


@router.post("/forgot-password", response_model=ApiResponse[None])
async def forgot_password(payload: ForgotPasswordRequest, db: Session = Depends(get_db)):
    """Email a one-time code for password reset. Never reveals whether the email exists."""
    message = "If that email exists, OTP has been sent"
    user = db.query(User).filter(User.email == payload.email.lower()).first()
    if not user:
        return format_response(None, message)

    otp = generate_otp()
    user.otp_hash = hash_otp(otp)
    user.otp_expires_at = otp_expiry()
    db.commit()

    send_password_reset_email(user.email, otp)
    return format_response(None, message)


@router.post("/reset-password", response_model=ApiResponse[None])
async def reset_password(payload: ResetPasswordRequest, db: Session = Depends(get_db)):
    """Reset the password with the emailed one-time code."""
    user = db.query(User).filter(User.email == payload.email.lower()).first()
    if not user or not user.otp_hash or not user.otp_expires_at:
        raise ValidationFailedError("Invalid or expired OTP")

    if user.otp_expires_at < utcnow():
        raise ValidationFailedError("OTP expired")

    if not otp_matches(payload.otp, user.otp_hash):
        raise ValidationFailedError("Invalid OTP")

    user.hashed_password = get_password_hash(payload.new_password)
    user.otp_hash = None
    user.otp_expires_at = None
    db.commit()
    logger.info(f"Password reset for user {user.id}")
    return format_response(None, "Password reset successfully")
