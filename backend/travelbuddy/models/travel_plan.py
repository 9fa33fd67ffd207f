"""
Travel plan models: plans, their participants, tags and reviews.
"""
from sqlalchemy import (
    Column, String, Text, Boolean, DateTime, Integer, ForeignKey, JSON,
    UniqueConstraint, CheckConstraint, Enum as SQLEnum
)
from sqlalchemy.orm import relationship
from travelbuddy.db.base import Base, BaseModel
import enum


class TravelType(str, enum.Enum):
    """Travel type enumeration."""
    SOLO = "SOLO"
    FAMILY = "FAMILY"
    FRIENDS = "FRIENDS"


class PlanStatus(str, enum.Enum):
    """Plan lifecycle status. Only CLOSED and CANCELED are ever stored as overrides."""
    OPEN = "OPEN"
    CLOSED = "CLOSED"
    CANCELED = "CANCELED"
    FULL = "FULL"
    ONGOING = "ONGOING"
    ENDED = "ENDED"


class TravelPlan(BaseModel):
    """Travel plan hosted by a single user."""
    __tablename__ = "travel_plans"

    host_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    destination_country = Column(String(100), nullable=True, index=True)
    destination_city = Column(String(100), nullable=True, index=True)
    start_date = Column(DateTime, nullable=False, index=True)
    end_date = Column(DateTime, nullable=False, index=True)
    budget_min = Column(Integer, nullable=True)
    budget_max = Column(Integer, nullable=True)
    travel_type = Column(SQLEnum(TravelType), nullable=False)
    description = Column(Text, nullable=True)
    group_chat_link = Column(String(500), nullable=True)
    contact = Column(String(200), nullable=True)
    is_public = Column(Boolean, default=True, nullable=False)
    images = Column(JSON, default=list, nullable=False)
    max_participants = Column(Integer, nullable=True)
    participants_count = Column(Integer, default=0, nullable=False)
    manual_status = Column(SQLEnum(PlanStatus), default=PlanStatus.OPEN, nullable=False)

    # Relationships
    host = relationship("User", back_populates="hosted_plans")
    participants = relationship("TravelPlanParticipant", back_populates="plan", cascade="all, delete-orphan")
    reviews = relationship("TravelPlanReview", back_populates="plan", cascade="all, delete-orphan")
    tag_rows = relationship("TravelPlanTag", back_populates="plan", cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint("participants_count >= 0", name="check_plan_participants_count_non_negative"),
    )

    @property
    def tags(self):
        return sorted(row.tag for row in self.tag_rows)

    @tags.setter
    def tags(self, values):
        wanted = {v.strip().lower() for v in values or [] if v and v.strip()}
        self.tag_rows = [row for row in self.tag_rows if row.tag in wanted]
        existing = {row.tag for row in self.tag_rows}
        for tag in sorted(wanted - existing):
            self.tag_rows.append(TravelPlanTag(tag=tag))


class TravelPlanTag(Base):
    """Tag attached to a plan, kept in its own table so tag filters stay in SQL."""
    __tablename__ = "travel_plan_tags"

    plan_id = Column(Integer, ForeignKey("travel_plans.id", ondelete="CASCADE"), primary_key=True)
    tag = Column(String(50), primary_key=True, index=True)

    plan = relationship("TravelPlan", back_populates="tag_rows")


class TravelPlanParticipant(BaseModel):
    """A user's membership in a plan. One row per (user, plan)."""
    __tablename__ = "travel_plan_participants"

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    plan_id = Column(Integer, ForeignKey("travel_plans.id", ondelete="CASCADE"), nullable=False, index=True)

    # Relationships
    plan = relationship("TravelPlan", back_populates="participants")
    user = relationship("User", back_populates="participations")

    __table_args__ = (
        UniqueConstraint("user_id", "plan_id", name="uq_participant_user_plan"),
    )


class TravelPlanReview(BaseModel):
    """Review of a finished plan by one of its participants."""
    __tablename__ = "travel_plan_reviews"

    plan_id = Column(Integer, ForeignKey("travel_plans.id", ondelete="CASCADE"), nullable=False, index=True)
    reviewer_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    host_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=True)

    # Relationships
    plan = relationship("TravelPlan", back_populates="reviews")
    reviewer = relationship("User", foreign_keys=[reviewer_id])

    __table_args__ = (
        UniqueConstraint("plan_id", "reviewer_id", name="uq_review_plan_reviewer"),
        CheckConstraint("rating >= 1 AND rating <= 5", name="check_review_rating_range"),
    )
