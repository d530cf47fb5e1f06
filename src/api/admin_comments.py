"""Admin comment moderation API — queue, approve / hide / delete, bulk actions, stats."""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.auth import actor_for, require_admin
from src.db.engine import get_session
from src.db.user_tables import UserRow
from src.services import comment_moderation

router = APIRouter(prefix="/api/v1/admin/comments", tags=["admin", "comments"])


class HideRequest(BaseModel):
    reason: str | None = Field(None, max_length=500)


class BulkRequest(BaseModel):
    ids: list[str] = Field(..., max_length=settings.BULK_MAX_IDS)
    action: str = Field(..., description="approve or hide")
    reason: str | None = Field(None, max_length=500)


@router.get("")
async def list_comments(
    status: str | None = Query(None, description="pending, approved, hidden"),
    recipe_id: str | None = Query(None),
    user_id: str | None = Query(None),
    sort: str = Query("newest", pattern="^(newest|oldest)$"),
    page: int | None = Query(None),
    cursor: str | None = Query(None),
    limit: int | None = Query(None),
    admin: UserRow = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    """Moderation queue. Page mode when ``page`` is given, cursor mode otherwise."""
    return await comment_moderation.list_comments(
        session,
        status=status,
        recipe_id=recipe_id,
        user_id=user_id,
        sort=sort,
        page=page,
        cursor=cursor,
        limit=limit,
    )


@router.get("/stats")
async def comment_stats(
    admin: UserRow = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    return await comment_moderation.get_comment_stats(session)


@router.post("/bulk")
async def bulk_moderate(
    body: BulkRequest,
    admin: UserRow = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    """Approve or hide up to ``BULK_MAX_IDS`` comments; failures are reported per item."""
    return await comment_moderation.bulk_moderate(
        session, body.ids, body.action, actor_for(admin), body.reason,
    )


@router.get("/{comment_id}")
async def get_comment(
    comment_id: str,
    admin: UserRow = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    return await comment_moderation.get_comment(session, comment_id)


@router.post("/{comment_id}/approve")
async def approve_comment(
    comment_id: str,
    admin: UserRow = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    return await comment_moderation.approve_comment(session, comment_id, actor_for(admin))


@router.post("/{comment_id}/hide")
async def hide_comment(
    comment_id: str,
    body: HideRequest | None = None,
    admin: UserRow = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    reason = body.reason if body else None
    return await comment_moderation.hide_comment(session, comment_id, actor_for(admin), reason)


@router.delete("/{comment_id}")
async def delete_comment(
    comment_id: str,
    admin: UserRow = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    """Permanently delete a comment, keeping the recipe rating in step."""
    comment = await comment_moderation.delete_comment(session, comment_id, actor_for(admin))
    if comment is None:
        raise HTTPException(status_code=404, detail="Comment not found")
    return {"deleted": True, "comment": comment}
