"""
Unit tests for pagination helpers
"""
import pytest
from sqlalchemy import select

from eservice.models.office import Office
from eservice.utils.pagination import (
    paginate,
    calculate_total_pages,
    normalize_page_params,
    build_pagination,
    MAX_PAGE_LIMIT,
    DEFAULT_PAGE_LIMIT,
)

from tests.conftest import create_office


@pytest.mark.parametrize("total,limit,expected", [
    (0, 10, 0),
    (1, 10, 1),
    (10, 10, 1),
    (11, 10, 2),
    (5, 0, 0),
])
def test_calculate_total_pages(total, limit, expected):
    assert calculate_total_pages(total, limit) == expected


def test_normalize_page_params_clamps():
    assert normalize_page_params(0, 0) == (1, DEFAULT_PAGE_LIMIT)
    assert normalize_page_params(-3, 500) == (1, MAX_PAGE_LIMIT)
    assert normalize_page_params(None, None) == (1, DEFAULT_PAGE_LIMIT)
    assert normalize_page_params(4, 25) == (4, 25)


def test_build_pagination_shape():
    assert build_pagination(total=23, page=2, limit=10) == {
        "page": 2,
        "limit": 10,
        "total": 23,
        "total_pages": 3,
    }


@pytest.mark.asyncio
async def test_paginate_counts_the_filtered_query(db_session):
    for name in ("Adama", "Bishoftu", "Dire Dawa", "Gondar", "Hawassa"):
        await create_office(db_session, name=name)

    query = select(Office).where(Office.name != "Gondar").order_by(Office.name)
    items, pagination = await paginate(db_session, query, page=2, limit=3)

    assert [office.name for office in items] == ["Hawassa"]
    assert pagination == {"page": 2, "limit": 3, "total": 4, "total_pages": 2}
