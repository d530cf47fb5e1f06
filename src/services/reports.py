"""
RecipeHub Content Reports
---
Report lifecycle (pending -> resolved / rejected) and the resolution
dispatcher that applies a moderator's decision to the reported content.

A report points at one of three kinds of content (comment, recipe, post).
Every place that dereferences the target branches on ``TargetType``
explicitly.

Side effects on comments go through the comment moderation operations so
the recipe rating aggregate stays consistent.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.db.comment_tables import CommentRow
from src.db.post_tables import PostRow
from src.db.report_tables import ReportRow
from src.db.tables import RecipeRow
from src.models import (
    AWAITING_RESOLUTION,
    AuditAction,
    PostStatus,
    RecipeStatus,
    ReportReason,
    ReportStatus,
    ResolutionAction,
    TargetType,
)
from src.services import comment_moderation
from src.services.audit import Actor, record_audit
from src.services.errors import (
    DuplicateReport,
    InvalidReason,
    InvalidResolutionAction,
    InvalidTargetType,
    ModerationError,
    ReportAlreadyResolved,
    ReportNotFound,
    TargetNotFound,
)
from src.services.pagination import is_valid_id, paginate

logger = logging.getLogger(__name__)

ENTITY = "report"

HIDDEN_NOTE_DEFAULT = "Hidden due to report"
REMOVED_NOTE_DEFAULT = "Content violated guidelines"


def report_response(row: ReportRow, target: Optional[dict] = None) -> dict[str, Any]:
    data = {
        "id": row.id,
        "reporter_id": row.reporter_id,
        "target_type": row.target_type,
        "target_id": row.target_id,
        "reason": row.reason,
        "description": row.description,
        "status": row.status,
        "resolution": None,
        "created_at": row.created_at.isoformat() if row.created_at else None,
        "updated_at": row.updated_at.isoformat() if row.updated_at else None,
    }
    if row.resolved_at is not None:
        data["resolution"] = {
            "action": row.resolution_action,
            "note": row.resolution_note,
            "resolved_by": row.resolved_by,
            "resolved_at": row.resolved_at.isoformat(),
        }
    if target is not None:
        data["target"] = target
    return data


# ── Target dereferencing ─────────────────────────────────────────────────────

async def _load_target(session: AsyncSession, target_type: TargetType, target_id: str):
    if not is_valid_id(target_id):
        return None
    if target_type == TargetType.COMMENT:
        return await session.get(CommentRow, target_id, populate_existing=True)
    elif target_type == TargetType.RECIPE:
        return await session.get(RecipeRow, target_id, populate_existing=True)
    elif target_type == TargetType.POST:
        return await session.get(PostRow, target_id, populate_existing=True)
    raise InvalidTargetType()


async def _snapshot_target(session: AsyncSession, target_type: TargetType, target_id: str) -> Optional[dict]:
    """Plain-data view of the reported content, or None if it no longer exists."""
    target = await _load_target(session, target_type, target_id)
    if target is None:
        return None
    snapshot = {"type": target_type.value, "id": target.id, "status": target.status}
    if target_type == TargetType.COMMENT:
        snapshot["content"] = target.content
        snapshot["recipe_id"] = target.recipe_id
        snapshot["author_id"] = target.user_id
    elif target_type == TargetType.RECIPE:
        snapshot["content"] = target.title
        snapshot["author_id"] = target.author_id
    elif target_type == TargetType.POST:
        snapshot["content"] = target.content
        snapshot["author_id"] = target.author_id
    return snapshot


async def _get_report_row(session: AsyncSession, report_id: str) -> ReportRow:
    report = (
        await session.get(ReportRow, report_id, populate_existing=True)
        if is_valid_id(report_id) else None
    )
    if report is None:
        raise ReportNotFound()
    return report


# ── Creation and reads ───────────────────────────────────────────────────────

async def create_report(
    session: AsyncSession,
    *,
    reporter: Actor,
    target_type: str,
    target_id: str,
    reason: str,
    description: Optional[str] = None,
) -> dict[str, Any]:
    """File a report. One report per (reporter, target)."""
    try:
        kind = TargetType(target_type)
    except ValueError:
        raise InvalidTargetType() from None
    try:
        reason = ReportReason(reason).value
    except ValueError:
        raise InvalidReason(
            f"Reason must be one of: {', '.join(r.value for r in ReportReason)}"
        ) from None

    existing = await session.execute(
        select(ReportRow.id).where(
            ReportRow.reporter_id == reporter.id,
            ReportRow.target_type == kind.value,
            ReportRow.target_id == target_id,
        )
    )
    if existing.scalar_one_or_none() is not None:
        raise DuplicateReport()

    if await _load_target(session, kind, target_id) is None:
        raise TargetNotFound(kind.value.capitalize())

    report = ReportRow(
        reporter_id=reporter.id,
        target_type=kind.value,
        target_id=target_id,
        reason=reason,
        description=description,
        status=ReportStatus.PENDING.value,
    )
    session.add(report)
    try:
        await session.commit()
    except IntegrityError:
        # Lost a race with an identical report
        await session.rollback()
        raise DuplicateReport()
    await session.refresh(report)
    payload = report_response(report)

    await record_audit(
        session,
        action=AuditAction.CREATE,
        entity_type=ENTITY,
        entity_id=payload["id"],
        actor=reporter,
        metadata={
            "operation": "create_report",
            "target_type": kind.value,
            "target_id": target_id,
            "reason": reason,
        },
    )
    logger.info("Report %s filed by %s on %s %s", payload["id"], reporter.id, kind.value, target_id)
    return payload


async def get_report(session: AsyncSession, report_id: str) -> dict[str, Any]:
    report = await _get_report_row(session, report_id)
    target = await _snapshot_target(session, TargetType(report.target_type), report.target_id)
    data = report_response(report)
    data["target"] = target
    return data


async def list_reports(
    session: AsyncSession,
    *,
    status: Optional[str] = None,
    target_type: Optional[str] = None,
    reason: Optional[str] = None,
    sort: str = "newest",
    page: Optional[int] = None,
    cursor: Optional[str] = None,
    limit: Optional[int] = None,
) -> dict[str, Any]:
    stmt = select(ReportRow)
    if status:
        if status in AWAITING_RESOLUTION:
            stmt = stmt.where(ReportRow.status.in_(sorted(AWAITING_RESOLUTION)))
        else:
            stmt = stmt.where(ReportRow.status == status)
    if target_type:
        stmt = stmt.where(ReportRow.target_type == target_type)
    if reason:
        stmt = stmt.where(ReportRow.reason == reason)

    window = await paginate(
        session, stmt,
        model=ReportRow,
        sort_column=ReportRow.created_at,
        order="asc" if sort == "oldest" else "desc",
        page=page,
        cursor=cursor,
        limit=limit,
    )
    return {
        "reports": [report_response(r) for r in window.items],
        "total": window.total,
        "pagination": window.page_info,
    }


async def list_reports_for_reporter(
    session: AsyncSession,
    reporter_id: str,
    *,
    page: int = 1,
    limit: Optional[int] = None,
) -> dict[str, Any]:
    window = await paginate(
        session,
        select(ReportRow).where(ReportRow.reporter_id == reporter_id),
        model=ReportRow,
        sort_column=ReportRow.created_at,
        order="desc",
        page=page,
        limit=limit,
    )
    return {
        "reports": [report_response(r) for r in window.items],
        "total": window.total,
        "pagination": window.page_info,
    }


# ── Resolution dispatcher ────────────────────────────────────────────────────

async def _apply_resolution(
    session: AsyncSession,
    target_type: TargetType,
    target_id: str,
    action: ResolutionAction,
    actor: Actor,
    note: str,
) -> dict[str, Any]:
    """Carry out a resolution's side effect on the target.

    Failures are reported in the returned record rather than raised, so the
    report itself is still resolved.
    """
    if action == ResolutionAction.NO_ACTION:
        return {"applied": False}

    if action == ResolutionAction.HIDDEN:
        if target_type == TargetType.COMMENT:
            try:
                await comment_moderation.hide_comment(
                    session, target_id, actor,
                    reason=f"Report resolution: {note or HIDDEN_NOTE_DEFAULT}",
                )
            except ModerationError as e:
                logger.warning("Hiding reported comment %s failed: %s", target_id, e.message)
                return {"applied": False, "error": e.message}
            return {"applied": True, "effect": "comment_hidden"}
        elif target_type == TargetType.POST:
            result = await session.execute(
                update(PostRow)
                .where(PostRow.id == target_id)
                .values(status=PostStatus.HIDDEN.value)
                .execution_options(synchronize_session=False)
            )
            await session.commit()
            if result.rowcount == 0:
                return {"applied": False, "error": "Post not found"}
            return {"applied": True, "effect": "post_hidden"}
        elif target_type == TargetType.RECIPE:
            return {"applied": False, "skipped": "recipes cannot be hidden"}

    if action == ResolutionAction.REMOVED:
        if target_type == TargetType.COMMENT:
            removed = await comment_moderation.delete_comment(session, target_id, actor)
            if removed is None:
                return {"applied": False, "error": "Comment not found"}
            return {"applied": True, "effect": "comment_deleted"}
        elif target_type == TargetType.RECIPE:
            result = await session.execute(
                update(RecipeRow)
                .where(RecipeRow.id == target_id)
                .values(
                    status=RecipeStatus.REJECTED.value,
                    rejection_reason=f"Removed due to report: {note or REMOVED_NOTE_DEFAULT}",
                    rejected_at=datetime.now(timezone.utc),
                    rejected_by=actor.id,
                )
                .execution_options(synchronize_session=False)
            )
            await session.commit()
            if result.rowcount == 0:
                return {"applied": False, "error": "Recipe not found"}
            return {"applied": True, "effect": "recipe_rejected"}
        elif target_type == TargetType.POST:
            result = await session.execute(
                delete(PostRow)
                .where(PostRow.id == target_id)
                .execution_options(synchronize_session=False)
            )
            await session.commit()
            if result.rowcount == 0:
                return {"applied": False, "error": "Post not found"}
            return {"applied": True, "effect": "post_deleted"}

    raise InvalidResolutionAction()


async def _close_report(
    session: AsyncSession,
    report_id: str,
    status: ReportStatus,
    action: ResolutionAction,
    actor: Actor,
    note: str,
) -> ReportRow:
    now = datetime.now(timezone.utc)
    result = await session.execute(
        update(ReportRow)
        .where(
            ReportRow.id == report_id,
            ReportRow.status.in_(sorted(AWAITING_RESOLUTION)),
        )
        .values(
            status=status.value,
            resolution_action=action.value,
            resolution_note=note or None,
            resolved_by=actor.id,
            resolved_at=now,
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        await session.rollback()
        # lost a race: closed or deleted since it was read
        await _get_report_row(session, report_id)
        raise ReportAlreadyResolved()
    await session.commit()
    return await session.get(ReportRow, report_id, populate_existing=True)


async def resolve_report(
    session: AsyncSession,
    report_id: str,
    actor: Actor,
    action: str,
    note: str = "",
) -> dict[str, Any]:
    """Resolve an awaiting report and apply the decision to its target."""
    report = await _get_report_row(session, report_id)
    if not report.can_resolve():
        raise ReportAlreadyResolved()
    try:
        decision = ResolutionAction(action)
    except ValueError:
        raise InvalidResolutionAction(
            f"Action must be one of: {', '.join(a.value for a in ResolutionAction)}"
        ) from None

    original_status = report.status
    target_type = TargetType(report.target_type)
    target_id = report.target_id
    target = await _snapshot_target(session, target_type, target_id)

    report = await _close_report(session, report_id, ReportStatus.RESOLVED, decision, actor, note)
    payload = report_response(report, target)

    action_result = await _apply_resolution(session, target_type, target_id, decision, actor, note)
    payload["action_result"] = action_result

    await record_audit(
        session,
        action=AuditAction.UPDATE,
        entity_type=ENTITY,
        entity_id=report_id,
        actor=actor,
        metadata={
            "operation": "resolve_report",
            "original_status": original_status,
            "resolution": {"action": decision.value, "note": note},
            "target": {
                "type": target_type.value,
                "id": target_id,
                "content": target.get("content") if target else None,
            },
            "action_result": action_result,
        },
    )
    logger.info("Report %s resolved by %s with %s", report_id, actor.email, decision.value)
    return payload


async def reject_report(
    session: AsyncSession,
    report_id: str,
    actor: Actor,
    note: str = "",
) -> dict[str, Any]:
    """Dismiss an awaiting report without touching its target."""
    report = await _get_report_row(session, report_id)
    if not report.can_resolve():
        raise ReportAlreadyResolved()
    original_status = report.status

    report = await _close_report(
        session, report_id, ReportStatus.REJECTED, ResolutionAction.NO_ACTION, actor, note,
    )
    payload = report_response(report)

    await record_audit(
        session,
        action=AuditAction.UPDATE,
        entity_type=ENTITY,
        entity_id=report_id,
        actor=actor,
        metadata={
            "operation": "reject_report",
            "original_status": original_status,
            "note": note,
        },
    )
    return payload


async def delete_report(session: AsyncSession, report_id: str, actor: Actor) -> dict[str, Any]:
    report = await _get_report_row(session, report_id)
    payload = report_response(report)

    await session.execute(
        delete(ReportRow)
        .where(ReportRow.id == report_id)
        .execution_options(synchronize_session=False)
    )
    await session.commit()

    await record_audit(
        session,
        action=AuditAction.DELETE,
        entity_type=ENTITY,
        entity_id=report_id,
        actor=actor,
        metadata={
            "operation": "delete_report",
            "target_type": payload["target_type"],
            "target_id": payload["target_id"],
            "reason": payload["reason"],
            "status": payload["status"],
        },
    )
    return payload


# ── Statistics ───────────────────────────────────────────────────────────────

async def get_report_stats(session: AsyncSession) -> dict[str, Any]:
    since = datetime.now(timezone.utc) - timedelta(days=settings.RECENT_WINDOW_DAYS)

    by_status = {s.value: 0 for s in ReportStatus if s != ReportStatus.OPEN}
    rows = await session.execute(
        select(ReportRow.status, func.count(ReportRow.id)).group_by(ReportRow.status)
    )
    for status, count in rows.all():
        if status == ReportStatus.OPEN.value:
            status = ReportStatus.PENDING.value
        by_status[status] = by_status.get(status, 0) + count

    recent = (await session.execute(
        select(func.count(ReportRow.id)).where(ReportRow.created_at >= since)
    )).scalar() or 0

    reason_rows = await session.execute(
        select(ReportRow.reason, func.count(ReportRow.id)).group_by(ReportRow.reason)
    )
    by_reason = sorted(
        ({"reason": reason, "count": count} for reason, count in reason_rows.all()),
        key=lambda r: (-r["count"], r["reason"]),
    )

    by_target_type = {t.value: 0 for t in TargetType}
    type_rows = await session.execute(
        select(ReportRow.target_type, func.count(ReportRow.id)).group_by(ReportRow.target_type)
    )
    for target_type, count in type_rows.all():
        by_target_type[target_type] = count

    return {
        "total": sum(by_status.values()),
        "by_status": by_status,
        "recent": recent,
        "by_reason": by_reason,
        "by_target_type": by_target_type,
    }
