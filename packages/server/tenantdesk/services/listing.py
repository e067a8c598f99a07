"""
Shared helpers for paginated, filtered, sorted listings.

The org/project scope is always part of the base statement handed to
``paginate``; filters built here only ever add further ``WHERE`` clauses.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping, Optional

from fastapi import Query
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select

from tenantdesk.core.config import get_settings
from tenantdesk_shared.schemas.common import Pagination, SortOrder

settings = get_settings()


@dataclass
class ListParams:
    page: int = 1
    limit: int = 10
    sort_by: Optional[str] = None
    sort_order: SortOrder = SortOrder.DESC
    search: Optional[str] = None


def list_params(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    sort_by: Optional[str] = None,
    sort_order: SortOrder = SortOrder.DESC,
    search: Optional[str] = None,
) -> ListParams:
    """FastAPI dependency. Oversized limits are clamped, not rejected."""
    size = min(limit or settings.default_page_size, settings.max_page_size)
    return ListParams(
        page=page,
        limit=size,
        sort_by=sort_by,
        sort_order=sort_order,
        search=search.strip() if search and search.strip() else None,
    )


def order_by(
    columns: Mapping[str, Any],
    sort_by: Optional[str],
    sort_order: SortOrder,
    default: str,
    tiebreaker: Any,
    default_order: SortOrder = SortOrder.DESC,
) -> list[Any]:
    """ORDER BY for a whitelisted sort key, then ``tiebreaker`` ascending.

    An unknown key sorts by ``default`` in ``default_order`` and ignores the
    caller's direction. The tiebreaker must be unique within the listing so
    OFFSET pages never overlap.
    """
    if sort_by is not None and sort_by not in columns:
        sort_by, sort_order = default, default_order
    column = columns[sort_by or default]
    primary = column.asc() if sort_order == SortOrder.ASC else column.desc()
    return [primary, tiebreaker.asc()]


def search_filter(search: Optional[str], *columns: Any) -> Optional[Any]:
    if not search:
        return None
    pattern = f"%{search}%"
    return or_(*(column.ilike(pattern) for column in columns))


def date_range(column: Any, start: Optional[datetime], end: Optional[datetime]) -> list[Any]:
    clauses = []
    if start is not None:
        clauses.append(column >= start)
    if end is not None:
        clauses.append(column <= end)
    return clauses


def narrow(stmt: Select, *clauses: Any) -> Select:
    """Add optional filter clauses, skipping ``None``."""
    for clause in clauses:
        if clause is not None:
            stmt = stmt.where(clause)
    return stmt


async def paginate(
    session: AsyncSession, stmt: Select, page: int, limit: int
) -> tuple[list[Any], Pagination]:
    """Count the scoped statement, then fetch one page of its rows."""
    count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())
    total = (await session.execute(count_stmt)).scalar_one()
    result = await session.execute(stmt.offset((page - 1) * limit).limit(limit))
    return list(result.all()), Pagination.build(page, limit, total)
