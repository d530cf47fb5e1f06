"""Result windows over ordered SQLAlchemy selects.

Two modes share one entry point:

- page mode (``page`` + ``limit``): offset windows with total/total_pages,
  used by admin tables;
- cursor mode (``cursor`` + ``limit``): keyset windows ordered by
  ``(sort_column, id)``, used by feeds and moderation queues.

``page`` takes priority whenever it is supplied. A cursor is the id of the
last item of the previous window; an unknown or malformed cursor restarts
from the beginning of the collection.
"""
from __future__ import annotations

import math
import uuid
from dataclasses import dataclass, field
from typing import Any, Optional

from sqlalchemy import Select, and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings


@dataclass
class Window:
    """One page of results plus the metadata needed to fetch the next one."""
    items: list[Any]
    total: int
    page_info: dict = field(default_factory=dict)


def is_valid_id(value: Any) -> bool:
    """True for strings that parse as a UUID (the id format of every table)."""
    if not isinstance(value, str):
        return False
    try:
        uuid.UUID(value)
    except ValueError:
        return False
    return True


def clamp_limit(limit: Optional[int]) -> int:
    if limit is None:
        return settings.DEFAULT_PAGE_LIMIT
    return max(1, min(int(limit), settings.MAX_PAGE_LIMIT))


async def count_rows(session: AsyncSession, stmt: Select) -> int:
    count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())
    return (await session.execute(count_stmt)).scalar() or 0


async def paginate(
    session: AsyncSession,
    stmt: Select,
    *,
    model,
    sort_column,
    order: str = "desc",
    page: Optional[int] = None,
    cursor: Optional[str] = None,
    limit: Optional[int] = None,
) -> Window:
    """Window ``stmt`` (a filtered ``select(model)``) by page or by cursor."""
    limit = clamp_limit(limit)
    descending = order != "asc"
    total = await count_rows(session, stmt)

    if descending:
        ordered = stmt.order_by(sort_column.desc(), model.id.desc())
    else:
        ordered = stmt.order_by(sort_column.asc(), model.id.asc())

    if page is not None:
        return await _page_window(session, ordered, total=total, page=page, limit=limit)
    return await _cursor_window(
        session, ordered, model=model, sort_column=sort_column,
        descending=descending, cursor=cursor, total=total, limit=limit,
    )


async def _page_window(session: AsyncSession, stmt: Select, *, total: int, page: int, limit: int) -> Window:
    page = max(1, int(page))
    total_pages = math.ceil(total / limit)
    skip = (page - 1) * limit

    result = await session.execute(stmt.offset(skip).limit(limit))
    items = list(result.scalars().all())

    return Window(
        items=items,
        total=total,
        page_info={
            "mode": "page",
            "page": page,
            "limit": limit,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    )


async def _cursor_window(
    session: AsyncSession,
    stmt: Select,
    *,
    model,
    sort_column,
    descending: bool,
    cursor: Optional[str],
    total: int,
    limit: int,
) -> Window:
    anchor = await _load_anchor(session, model, sort_column, cursor)
    if anchor is not None:
        anchor_value, anchor_id = anchor
        if descending:
            stmt = stmt.where(or_(
                sort_column < anchor_value,
                and_(sort_column == anchor_value, model.id < anchor_id),
            ))
        else:
            stmt = stmt.where(or_(
                sort_column > anchor_value,
                and_(sort_column == anchor_value, model.id > anchor_id),
            ))

    # Fetch one extra row to learn whether another window exists
    result = await session.execute(stmt.limit(limit + 1))
    items = list(result.scalars().all())
    has_next = len(items) > limit
    if has_next:
        items = items[:limit]

    return Window(
        items=items,
        total=total,
        page_info={
            "mode": "cursor",
            "limit": limit,
            "next_cursor": items[-1].id if has_next and items else None,
            "has_next": has_next,
        },
    )


async def _load_anchor(session: AsyncSession, model, sort_column, cursor: Optional[str]):
    if not cursor or not is_valid_id(cursor):
        return None
    row = (await session.execute(
        select(sort_column, model.id).where(model.id == cursor)
    )).first()
    if row is None:
        return None
    return row[0], row[1]
