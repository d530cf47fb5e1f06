"""
RecipeHub Comment Moderation
---
Comment lifecycle (pending -> approved / hidden, hard delete) and bulk
moderation.

Every mutation follows the same order, each step committed on its own:

1. the comment change itself;
2. a recipe rating recompute, when the set of approved rated comments may
   have changed;
3. one audit entry.

A failure in a later step never rolls back an earlier one.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.db.comment_tables import CommentRow
from src.db.tables import RecipeRow
from src.models import AuditAction, BulkAction, CommentStatus
from src.services import ratings
from src.services.audit import SYSTEM_ACTOR, Actor, record_audit
from src.services.errors import (
    CommentNotFound,
    CommentsNotFound,
    InvalidAction,
    InvalidIds,
    ModerationError,
    RecipeNotFound,
)
from src.services.pagination import is_valid_id, paginate

logger = logging.getLogger(__name__)

ENTITY = "comment"


def comment_response(row: CommentRow) -> dict[str, Any]:
    return {
        "id": row.id,
        "recipe_id": row.recipe_id,
        "user_id": row.user_id,
        "content": row.content,
        "rating": row.rating,
        "status": row.status,
        "moderated_by": row.moderated_by,
        "moderated_at": row.moderated_at.isoformat() if row.moderated_at else None,
        "moderation_reason": row.moderation_reason,
        "created_at": row.created_at.isoformat() if row.created_at else None,
        "updated_at": row.updated_at.isoformat() if row.updated_at else None,
    }


async def _get_row(session: AsyncSession, comment_id: str) -> Optional[CommentRow]:
    if not is_valid_id(comment_id):
        return None
    return await session.get(CommentRow, comment_id, populate_existing=True)


async def _set_status(
    session: AsyncSession,
    comment_id: str,
    status: CommentStatus,
    actor: Actor,
    reason: Optional[str] = None,
) -> CommentRow:
    """Write a moderation decision; raises CommentNotFound if the row vanished."""
    now = datetime.now(timezone.utc)
    result = await session.execute(
        update(CommentRow)
        .where(CommentRow.id == comment_id)
        .values(
            status=status.value,
            moderated_by=actor.id,
            moderated_at=now,
            moderation_reason=reason,
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        await session.rollback()
        raise CommentNotFound()
    await session.commit()

    row = await session.get(CommentRow, comment_id, populate_existing=True)
    if row is None:
        raise CommentNotFound()
    return row


# ── Single-item operations ───────────────────────────────────────────────────

async def create_comment(
    session: AsyncSession,
    *,
    recipe_id: str,
    author: Actor,
    content: str,
    rating: Optional[int] = None,
) -> dict[str, Any]:
    """New comments start pending, so the recipe rating is untouched."""
    if not is_valid_id(recipe_id) or await session.get(RecipeRow, recipe_id) is None:
        raise RecipeNotFound()

    comment = CommentRow(
        recipe_id=recipe_id,
        user_id=author.id,
        content=content,
        rating=rating,
        status=CommentStatus.PENDING.value,
    )
    session.add(comment)
    await session.commit()
    await session.refresh(comment)
    payload = comment_response(comment)

    await record_audit(
        session,
        action=AuditAction.CREATE,
        entity_type=ENTITY,
        entity_id=payload["id"],
        actor=author,
        metadata={
            "operation": "create_comment",
            "recipe_id": recipe_id,
            "has_rating": rating is not None,
        },
    )
    return payload


async def get_comment(session: AsyncSession, comment_id: str) -> dict[str, Any]:
    row = await _get_row(session, comment_id)
    if row is None:
        raise CommentNotFound()
    return comment_response(row)


async def list_comments(
    session: AsyncSession,
    *,
    status: Optional[str] = None,
    recipe_id: Optional[str] = None,
    user_id: Optional[str] = None,
    sort: str = "newest",
    page: Optional[int] = None,
    cursor: Optional[str] = None,
    limit: Optional[int] = None,
) -> dict[str, Any]:
    stmt = select(CommentRow)
    if status:
        stmt = stmt.where(CommentRow.status == status)
    if recipe_id:
        stmt = stmt.where(CommentRow.recipe_id == recipe_id)
    if user_id:
        stmt = stmt.where(CommentRow.user_id == user_id)

    window = await paginate(
        session, stmt,
        model=CommentRow,
        sort_column=CommentRow.created_at,
        order="asc" if sort == "oldest" else "desc",
        page=page,
        cursor=cursor,
        limit=limit,
    )
    return {
        "comments": [comment_response(r) for r in window.items],
        "total": window.total,
        "pagination": window.page_info,
    }


async def approve_comment(session: AsyncSession, comment_id: str, actor: Actor) -> dict[str, Any]:
    """Approve a comment and fold its rating (if any) into the recipe aggregate."""
    if await _get_row(session, comment_id) is None:
        raise CommentNotFound()

    comment = await _set_status(session, comment_id, CommentStatus.APPROVED, actor)
    payload = comment_response(comment)

    stats = None
    if comment.has_rating:
        stats = await ratings.recompute_recipe_rating(session, comment.recipe_id)

    await record_audit(
        session,
        action=AuditAction.UPDATE,
        entity_type=ENTITY,
        entity_id=comment_id,
        actor=actor,
        metadata={
            "operation": "approve_comment",
            "recipe_id": payload["recipe_id"],
            "has_rating": payload["rating"] is not None,
            "rating": payload["rating"],
            "updated_recipe_stats": stats.to_dict() if stats else None,
        },
    )
    return payload


async def hide_comment(
    session: AsyncSession,
    comment_id: str,
    actor: Actor,
    reason: Optional[str] = None,
) -> dict[str, Any]:
    """Hide a comment. The aggregate changes only if it was an approved rated one."""
    existing = await _get_row(session, comment_id)
    if existing is None:
        raise CommentNotFound()
    was_approved = existing.is_approved
    had_rating = existing.has_rating
    previous_status = existing.status

    comment = await _set_status(session, comment_id, CommentStatus.HIDDEN, actor, reason)
    payload = comment_response(comment)

    stats = None
    if was_approved and had_rating:
        stats = await ratings.recompute_recipe_rating(session, comment.recipe_id)

    await record_audit(
        session,
        action=AuditAction.UPDATE,
        entity_type=ENTITY,
        entity_id=comment_id,
        actor=actor,
        metadata={
            "operation": "hide_comment",
            "recipe_id": payload["recipe_id"],
            "reason": reason,
            "previous_status": previous_status,
            "was_approved": was_approved,
            "had_rating": had_rating,
            "updated_recipe_stats": stats.to_dict() if stats else None,
        },
    )
    return payload


async def delete_comment(
    session: AsyncSession,
    comment_id: str,
    actor: Optional[Actor] = None,
) -> Optional[dict[str, Any]]:
    """Hard-delete a comment. Returns None when there is nothing to delete."""
    comment = await _get_row(session, comment_id)
    if comment is None:
        return None

    actor = actor or SYSTEM_ACTOR
    payload = comment_response(comment)
    had_rating = comment.has_rating

    await session.execute(delete(CommentRow).where(CommentRow.id == comment_id))
    await session.commit()

    stats = None
    if had_rating:
        stats = await ratings.recompute_recipe_rating(session, payload["recipe_id"])

    await record_audit(
        session,
        action=AuditAction.DELETE,
        entity_type=ENTITY,
        entity_id=comment_id,
        actor=actor,
        metadata={
            "operation": "delete_comment",
            "recipe_id": payload["recipe_id"],
            "had_rating": had_rating,
            "original_content": (payload["content"] or "")[:100],
            "updated_recipe_stats": stats.to_dict() if stats else None,
        },
    )
    return payload


# ── Bulk moderation ──────────────────────────────────────────────────────────

@dataclass(frozen=True)
class _Snapshot:
    """State of a comment as loaded before the batch touches it."""
    id: str
    recipe_id: str
    had_rating: bool
    was_approved: bool


async def _load_comments(session: AsyncSession, ids: list[str]) -> list[_Snapshot]:
    result = await session.execute(select(CommentRow).where(CommentRow.id.in_(ids)))
    by_id = {row.id: row for row in result.scalars().all()}
    return [
        _Snapshot(
            id=row.id,
            recipe_id=row.recipe_id,
            had_rating=row.has_rating,
            was_approved=row.is_approved,
        )
        for row in (by_id[i] for i in ids if i in by_id)
    ]


def _affects_rating(item: _Snapshot, action: BulkAction) -> bool:
    if not item.had_rating:
        return False
    if action == BulkAction.APPROVE:
        return True
    return item.was_approved


async def bulk_moderate(
    session: AsyncSession,
    comment_ids: list[str],
    action: str,
    actor: Actor,
    reason: Optional[str] = None,
) -> dict[str, Any]:
    """Approve or hide many comments, collecting per-item failures.

    Items are processed one at a time, each committed on its own; a failing
    item lands in ``failed`` and the batch carries on. Each affected recipe
    is recomputed once after the pass.
    """
    try:
        bulk_action = BulkAction(action)
    except ValueError:
        raise InvalidAction(f"Action must be one of: {', '.join(a.value for a in BulkAction)}") from None

    valid_ids = list(dict.fromkeys(i for i in comment_ids if is_valid_id(i)))
    if not valid_ids:
        raise InvalidIds()

    snapshots = await _load_comments(session, valid_ids)
    if not snapshots:
        raise CommentsNotFound()

    status = CommentStatus.APPROVED if bulk_action == BulkAction.APPROVE else CommentStatus.HIDDEN
    successful: list[dict[str, Any]] = []
    failed: list[dict[str, Any]] = []
    affected_recipes: list[str] = []

    for item in snapshots:
        try:
            await _set_status(
                session, item.id, status, actor,
                reason if bulk_action == BulkAction.HIDE else None,
            )
        except ModerationError as e:
            logger.warning("Bulk %s failed for comment %s: %s", bulk_action.value, item.id, e.message)
            failed.append({"id": item.id, "error": e.message})
            continue
        except Exception as e:
            await session.rollback()
            logger.exception("Bulk %s failed for comment %s", bulk_action.value, item.id)
            failed.append({"id": item.id, "error": str(e) or type(e).__name__})
            continue

        successful.append({
            "id": item.id,
            "recipe_id": item.recipe_id,
            "had_rating": item.had_rating,
            "was_approved": item.was_approved,
        })
        if _affects_rating(item, bulk_action) and item.recipe_id not in affected_recipes:
            affected_recipes.append(item.recipe_id)

    rating_updates: dict[str, dict] = {}
    for recipe_id in affected_recipes:
        stats = await ratings.recompute_recipe_rating(session, recipe_id)
        rating_updates[recipe_id] = stats.to_dict()

    await record_audit(
        session,
        action=AuditAction.BULK,
        entity_type=ENTITY,
        entity_id=None,
        actor=actor,
        metadata={
            "operation": f"bulk_{bulk_action.value}_comments",
            "requested_ids": valid_ids,
            "successful": len(successful),
            "failed": len(failed),
            "updated_recipes": affected_recipes,
            "rating_updates": rating_updates,
            "reason": reason,
        },
    )

    logger.info(
        "Bulk %s by %s: %d ok, %d failed, %d recipes recomputed",
        bulk_action.value, actor.email, len(successful), len(failed), len(affected_recipes),
    )
    return {
        "action": bulk_action.value,
        "requested": len(valid_ids),
        "successful_count": len(successful),
        "failed_count": len(failed),
        "successful": successful,
        "failed": failed,
        "updated_recipes": affected_recipes,
        "rating_updates": rating_updates,
    }


# ── Statistics ───────────────────────────────────────────────────────────────

async def _count_by_status(session: AsyncSession, since: Optional[datetime] = None) -> dict[str, int]:
    stmt = select(CommentRow.status, func.count(CommentRow.id)).group_by(CommentRow.status)
    if since is not None:
        stmt = stmt.where(CommentRow.created_at >= since)
    counts = {s.value: 0 for s in CommentStatus}
    for status, count in (await session.execute(stmt)).all():
        counts[status] = count
    counts["total"] = sum(counts.values())
    return counts


async def get_comment_stats(session: AsyncSession) -> dict[str, Any]:
    since = datetime.now(timezone.utc) - timedelta(days=settings.RECENT_WINDOW_DAYS)
    stats = await _count_by_status(session)
    stats["recent"] = await _count_by_status(session, since)
    return stats
