"""
Utility functions for the application.
"""
from typing import Any, Dict, Optional
from datetime import datetime, timezone
import math


def utcnow() -> datetime:
    """Current UTC time as a naive datetime (the format stored in the database)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Convert an aware datetime to naive UTC; naive values are assumed to be UTC already."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def format_response(data: Any = None, message: str = "OK") -> Dict[str, Any]:
    """Format API success response."""
    return {
        "success": True,
        "message": message,
        "data": data
    }


def format_error(message: str = "Something went wrong", errors: Any = None) -> Dict[str, Any]:
    """Format API failure response."""
    return {
        "success": False,
        "message": message,
        "errors": errors
    }


def page_meta(total: int, page: int, limit: int) -> Dict[str, int]:
    """Build pagination metadata for list responses."""
    return {
        "total": total,
        "page": page,
        "limit": limit,
        "total_pages": math.ceil(total / limit) if limit else 0
    }


def split_csv(value: Optional[str]) -> list:
    """Split a comma-separated query parameter into trimmed, non-empty items."""
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]
