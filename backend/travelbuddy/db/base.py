"""
Declarative base and shared columns for all models.
"""
from sqlalchemy import Column, Integer, DateTime
from sqlalchemy.orm import declarative_base
from travelbuddy.core.utils import utcnow

Base = declarative_base()


class BaseModel(Base):
    """Abstract base with surrogate key and audit timestamps."""
    __abstract__ = True

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
