"""Pagination utilities for list endpoints."""

from dataclasses import dataclass

from fastapi import Query

DEFAULT_LIMIT = 50
MAX_LIMIT = 500


@dataclass
class PageParams:
    """Limit/offset parameters from query string."""
    limit: int
    offset: int


def get_page_params(
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT, description=f"Max rows (<= {MAX_LIMIT})"),
    offset: int = Query(0, ge=0, description="Rows to skip"),
) -> PageParams:
    """
    Pagination dependency.

    Usage:
        @router.get("/items")
        def list_items(page: PageParams = Depends(get_page_params)):
            ...
    """
    return PageParams(limit=limit, offset=offset)
