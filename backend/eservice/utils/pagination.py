"""
Pagination Utility Module

Provides the page/limit pagination used by every list endpoint.
"""
from typing import List, Optional, Any, Tuple
from pydantic import BaseModel
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select

DEFAULT_PAGE_LIMIT = 10
MAX_PAGE_LIMIT = 100


class PaginationMeta(BaseModel):
    """Pagination block of the response envelope"""
    page: int
    limit: int
    total: int
    total_pages: int


def calculate_total_pages(total: int, limit: int) -> int:
    """ceil(total / limit); 0 when there is nothing to page"""
    if total <= 0 or limit <= 0:
        return 0
    return (total + limit - 1) // limit


def normalize_page_params(page: Optional[int], limit: Optional[int]) -> Tuple[int, int]:
    """Clamp page to >= 1 and limit to 1..MAX_PAGE_LIMIT"""
    page = max(1, page or 1)
    limit = max(1, min(MAX_PAGE_LIMIT, limit or DEFAULT_PAGE_LIMIT))
    return page, limit


def build_pagination(total: int, page: int, limit: int) -> dict:
    return PaginationMeta(
        page=page,
        limit=limit,
        total=total,
        total_pages=calculate_total_pages(total, limit),
    ).model_dump()


async def paginate(
    db: AsyncSession,
    query: Select,
    page: int = 1,
    limit: int = DEFAULT_PAGE_LIMIT,
) -> Tuple[List[Any], dict]:
    """
    Apply pagination to a SQLAlchemy query.

    Args:
        db: Database session
        query: Base SQLAlchemy query (already filtered and ordered)
        page: Page number (1-indexed)
        limit: Items per page

    Returns:
        (items, pagination) where pagination is {page, limit, total, total_pages}
    """
    page, limit = normalize_page_params(page, limit)
    offset = (page - 1) * limit

    count_stmt = select(func.count()).select_from(query.order_by(None).subquery())
    total = (await db.execute(count_stmt)).scalar() or 0

    result = await db.execute(query.offset(offset).limit(limit))
    items = list(result.scalars().all())

    return items, build_pagination(total, page, limit)
