"""
Pagination utilities for the UserHub API.
"""
import math

from pydantic import BaseModel

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100


class Pagination(BaseModel):
    """Pagination metadata returned with list endpoints."""
    page: int
    limit: int
    total: int
    pages: int

    class Config:
        json_schema_extra = {
            "example": {"page": 1, "limit": 10, "total": 42, "pages": 5}
        }


def create_pagination(page: int, limit: int, total: int) -> Pagination:
    """
    Build pagination metadata.

    Args:
        page: Current page number (1-indexed)
        limit: Items per page
        total: Total count of all items
    """
    pages = math.ceil(total / limit) if limit > 0 else 0
    return Pagination(page=page, limit=limit, total=total, pages=pages)


def clamp_page_params(page: int, limit: int) -> tuple[int, int]:
    """Fall back to defaults for out-of-range values, cap the limit."""
    if page < 1:
        page = DEFAULT_PAGE
    if limit < 1:
        limit = DEFAULT_LIMIT
    return page, min(limit, MAX_LIMIT)
