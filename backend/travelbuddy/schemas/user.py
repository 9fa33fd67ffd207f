"""
Pydantic schemas for User entity and authentication.
"""
from pydantic import BaseModel, EmailStr, Field
from typing import List, Optional
from datetime import datetime
from travelbuddy.models.user import UserRole, SubscriptionStatus


class UserCreate(BaseModel):
    """Schema for registration."""
    name: str = Field(min_length=2, max_length=100)
    email: EmailStr
    password: str = Field(min_length=6)


class UserLogin(BaseModel):
    """Schema for user login."""
    email: EmailStr
    password: str


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    email: EmailStr
    otp: str = Field(min_length=6, max_length=6)
    new_password: str = Field(min_length=6)


class AuthResponse(BaseModel):
    """Schema returned by register and login."""
    id: int
    name: str
    email: EmailStr
    role: UserRole
    subscription_status: SubscriptionStatus
    subscription_expires_at: Optional[datetime] = None
    token: str


class UserUpdate(BaseModel):
    """Schema for profile update."""
    name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    image: Optional[str] = Field(default=None, max_length=500)
    bio: Optional[str] = Field(default=None, max_length=500)
    phone: Optional[str] = Field(default=None, max_length=50)
    travel_interests: Optional[List[str]] = None
    visited_countries: Optional[List[str]] = None
    current_location: Optional[str] = Field(default=None, max_length=200)
    gallery: Optional[List[str]] = None


class PasswordUpdate(BaseModel):
    current_password: str = Field(min_length=6)
    new_password: str = Field(min_length=6)


class UserAdminUpdate(BaseModel):
    """Schema for admin moderation (role change, block/unblock)."""
    role: Optional[UserRole] = None
    is_blocked: Optional[bool] = None


class UserResponse(BaseModel):
    """Public user profile."""
    id: int
    name: str
    email: EmailStr
    role: UserRole
    image: Optional[str] = None
    bio: Optional[str] = None
    phone: Optional[str] = None
    travel_interests: List[str] = []
    visited_countries: List[str] = []
    current_location: Optional[str] = None
    gallery: List[str] = []
    rating_average: float
    rating_count: int
    subscription_status: SubscriptionStatus
    subscription_expires_at: Optional[datetime] = None
    is_blocked: bool
    created_at: datetime

    class Config:
        from_attributes = True


class UserSummary(BaseModel):
    """Public identity fields of a user."""
    id: int
    name: Optional[str] = None
    image: Optional[str] = None

    class Config:
        from_attributes = True
