"""
Pydantic schemas for TravelPlan and its reviews.
"""
from pydantic import BaseModel, Field, AnyHttpUrl, TypeAdapter, field_validator, model_validator
from typing import List, Optional
from datetime import datetime
from travelbuddy.core.utils import to_naive_utc
from travelbuddy.models.travel_plan import PlanStatus, TravelType
from travelbuddy.schemas.user import UserSummary
from travelbuddy.services.plan_status import SETTABLE_STATUSES

_url = TypeAdapter(AnyHttpUrl)


def _check_url(value: Optional[str]) -> Optional[str]:
    if value is not None:
        _url.validate_python(value)
    return value


class TravelPlanFields(BaseModel):
    """Editable plan fields shared by create and update."""
    destination_country: Optional[str] = Field(default=None, max_length=100)
    destination_city: Optional[str] = Field(default=None, max_length=100)
    budget_min: Optional[int] = Field(default=None, ge=0)
    budget_max: Optional[int] = Field(default=None, ge=0)
    description: Optional[str] = Field(default=None, max_length=2000)
    group_chat_link: Optional[str] = Field(default=None, max_length=500)
    contact: Optional[str] = Field(default=None, min_length=3, max_length=200)
    images: Optional[List[str]] = None
    tags: Optional[List[str]] = None
    is_public: Optional[bool] = None
    max_participants: Optional[int] = Field(default=None, gt=0)

    @field_validator("start_date", "end_date", check_fields=False)
    @classmethod
    def naive_utc(cls, v):
        return to_naive_utc(v)

    @field_validator("group_chat_link")
    @classmethod
    def valid_link(cls, v):
        return _check_url(v)

    @field_validator("images")
    @classmethod
    def valid_images(cls, v):
        if v is not None:
            for url in v:
                _check_url(url)
        return v

    @model_validator(mode="after")
    def check_ranges(self):
        start, end = getattr(self, "start_date", None), getattr(self, "end_date", None)
        if start and end and start >= end:
            raise ValueError("Start date must be before end date")
        if self.budget_min is not None and self.budget_max is not None and self.budget_min > self.budget_max:
            raise ValueError("budget_min cannot exceed budget_max")
        return self


class TravelPlanCreate(TravelPlanFields):
    """Schema for plan creation. The caller becomes the host."""
    title: str = Field(min_length=3, max_length=200)
    start_date: datetime
    end_date: datetime
    travel_type: TravelType
    is_public: bool = True


class TravelPlanUpdate(TravelPlanFields):
    """Schema for plan update. Only the fields sent are changed."""
    title: Optional[str] = Field(default=None, min_length=3, max_length=200)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    travel_type: Optional[TravelType] = None


class TravelPlanStatusUpdate(BaseModel):
    """Manual status change. OPEN clears a previous CLOSED/CANCELED override."""
    status: PlanStatus

    @field_validator("status")
    @classmethod
    def settable(cls, v):
        if v not in SETTABLE_STATUSES:
            raise ValueError("Status must be one of OPEN, CLOSED, CANCELED")
        return v


class ReviewCreate(BaseModel):
    """Schema for creating or replacing a review."""
    rating: int = Field(ge=1, le=5)
    comment: Optional[str] = Field(default=None, max_length=2000)


class ReviewResponse(BaseModel):
    """Schema for review response."""
    id: int
    plan_id: int
    reviewer_id: int
    reviewer_name: Optional[str] = None
    host_id: int
    rating: int
    comment: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class HostSummary(BaseModel):
    id: int
    name: Optional[str] = None
    image: Optional[str] = None
    rating_average: float = 0.0
    rating_count: int = 0


class ParticipantSummary(BaseModel):
    id: int
    name: Optional[str] = None


class TravelPlanResponse(BaseModel):
    """Plan with derived status, host summary, participants and reviews."""
    id: int
    host_id: int
    title: str
    destination_country: Optional[str] = None
    destination_city: Optional[str] = None
    start_date: datetime
    end_date: datetime
    budget_min: Optional[int] = None
    budget_max: Optional[int] = None
    travel_type: TravelType
    description: Optional[str] = None
    group_chat_link: Optional[str] = None
    contact: Optional[str] = None
    is_public: bool
    images: List[str] = []
    tags: List[str] = []
    max_participants: Optional[int] = None
    participants_count: int
    status: PlanStatus
    host: Optional[HostSummary] = None
    participants: List[ParticipantSummary] = []
    reviews: List[ReviewResponse] = []
    created_at: datetime
    updated_at: datetime


class ParticipantsResponse(BaseModel):
    count: int
    users: List[UserSummary]
