"""
Shared response envelope and pagination schemas.
"""
from pydantic import BaseModel
from typing import Generic, List, Optional, TypeVar

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """Uniform success envelope."""
    success: bool = True
    message: str = "OK"
    data: Optional[T] = None


class PageMeta(BaseModel):
    """Pagination metadata."""
    total: int
    page: int
    limit: int
    total_pages: int


class Page(BaseModel, Generic[T]):
    """One page of a list endpoint."""
    meta: PageMeta
    data: List[T]
