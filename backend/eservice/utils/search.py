"""Case-insensitive substring search across columns"""
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.sql.elements import ColumnElement

from eservice.utils.phone import phone_search_variants

LIKE_ESCAPE = "\\"


def clean_search_term(search: Optional[str]) -> Optional[str]:
    if search is None:
        return None
    search = search.strip()
    return search or None


def escape_like(term: str) -> str:
    """Make LIKE wildcards in user input match literally"""
    return (
        term.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )


def contains_pattern(term: str) -> str:
    return f"%{escape_like(term)}%"


def build_search_filter(search: str, *columns, phone_columns=()) -> Optional[ColumnElement]:
    """
    OR of `column ILIKE %search%` over every column.

    `%`, `_` and backslashes in the term match themselves. phone_columns
    additionally match the digit variants of the term. Returns None for an
    empty term.
    """
    term = clean_search_term(search)
    if term is None:
        return None

    pattern = contains_pattern(term)
    clauses = [column.ilike(pattern, escape=LIKE_ESCAPE) for column in columns]
    for column in phone_columns:
        clauses.append(column.ilike(pattern, escape=LIKE_ESCAPE))
        clauses.extend(
            column.ilike(contains_pattern(variant), escape=LIKE_ESCAPE)
            for variant in phone_search_variants(term)
        )
    return or_(*clauses)
