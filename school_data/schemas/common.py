from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Generic, List, Optional, TypeVar

from pydantic import BaseModel, Field

from school_data.repositories.paging import PagedResult

ItemT = TypeVar("ItemT")


# PUBLIC_INTERFACE
class PagedResponse(BaseModel, Generic[ItemT]):
    """Serializable page of items with total-count and paging metadata."""
    items: List[ItemT] = Field(default_factory=list, description="Items of this page")
    total_count: int = Field(..., ge=0, description="Rows matching the filter, ignoring paging")
    page_index: int = Field(..., ge=0, description="Zero-based page index")
    page_size: int = Field(..., ge=1, description="Requested page size")
    total_pages: int = Field(..., ge=0, description="Number of pages for total_count")
    has_next: bool = Field(..., description="Whether a following page exists")
    has_previous: bool = Field(..., description="Whether a preceding page exists")

    @classmethod
    def from_page(cls, page: PagedResult[Any], convert: Callable[[Any], ItemT]) -> "PagedResponse[ItemT]":
        """Build a response from a repository page, converting each item."""
        return cls(
            items=[convert(item) for item in page.items],
            total_count=page.total_count,
            page_index=page.page_index,
            page_size=page.page_size,
            total_pages=page.total_pages,
            has_next=page.has_next,
            has_previous=page.has_previous,
        )


class MessageResponse(BaseModel):
    """Standard message response."""
    message: str = Field(..., description="Human readable message")
    details: Optional[dict] = Field(default=None, description="Optional extra data")


class ErrorInfo(BaseModel):
    """Structured error description."""
    type: str = Field(..., description="Machine-readable error type code")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[Any] = Field(default=None, description="Optional error details (e.g., validation issues)")


# PUBLIC_INTERFACE
class ErrorResponse(BaseModel):
    """Standardized API error envelope returned by exception handlers."""
    status: int = Field(..., description="HTTP status code")
    error: ErrorInfo = Field(..., description="Error details")
    correlation_id: Optional[str] = Field(default=None, description="Request correlation ID")
    path: Optional[str] = Field(default=None, description="Request path")
    method: Optional[str] = Field(default=None, description="HTTP method")
    timestamp: datetime = Field(..., description="Error timestamp (UTC)")
