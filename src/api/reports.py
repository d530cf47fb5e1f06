"""Content Reporting API — community safety and the admin moderation queue.

Users can report comments, recipes and community posts. Admins work the
queue: resolve (with an optional side effect on the target), reject, or
delete reports.
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from src.auth import actor_for, require_admin, require_user
from src.db.engine import get_session
from src.db.user_tables import UserRow
from src.services import reports as report_service

router = APIRouter(prefix="/api/v1", tags=["reports"])


class ReportRequest(BaseModel):
    target_type: str = Field(..., description="comment, recipe, or post")
    target_id: str = Field(..., min_length=1, max_length=64)
    reason: str = Field(..., description="spam, abuse, inappropriate, misinformation, copyright, other")
    description: str | None = Field(None, max_length=1000)


class ResolveRequest(BaseModel):
    action: str = Field(..., description="no_action, hidden, or removed")
    note: str = Field("", max_length=500)


class RejectRequest(BaseModel):
    note: str = Field("", max_length=500)


@router.post("/reports", status_code=201)
async def submit_report(
    body: ReportRequest,
    user: UserRow = Depends(require_user),
    session: AsyncSession = Depends(get_session),
):
    """Submit a content report."""
    report = await report_service.create_report(
        session,
        reporter=actor_for(user),
        target_type=body.target_type,
        target_id=body.target_id,
        reason=body.reason,
        description=body.description,
    )
    return {**report, "message": "Report submitted. Our team will review it shortly."}


@router.get("/reports/my")
async def my_reports(
    user: UserRow = Depends(require_user),
    session: AsyncSession = Depends(get_session),
    page: int = Query(1),
    limit: int | None = Query(None),
):
    """List reports submitted by the current user."""
    return await report_service.list_reports_for_reporter(session, user.id, page=page, limit=limit)


# ── Admin Endpoints ──────────────────────────────────────────────────────

@router.get("/admin/reports")
async def list_reports(
    status: str | None = Query(None, description="pending, reviewed, resolved, rejected"),
    target_type: str | None = Query(None),
    reason: str | None = Query(None),
    sort: str = Query("newest", pattern="^(newest|oldest)$"),
    page: int | None = Query(None),
    cursor: str | None = Query(None),
    limit: int | None = Query(None),
    admin: UserRow = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    """Moderation queue. Page mode when ``page`` is given, cursor mode otherwise."""
    return await report_service.list_reports(
        session,
        status=status,
        target_type=target_type,
        reason=reason,
        sort=sort,
        page=page,
        cursor=cursor,
        limit=limit,
    )


@router.get("/admin/reports/stats")
async def report_stats(
    admin: UserRow = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    return await report_service.get_report_stats(session)


@router.get("/admin/reports/{report_id}")
async def get_report(
    report_id: str,
    admin: UserRow = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    """A single report with a snapshot of the reported content."""
    return await report_service.get_report(session, report_id)


@router.post("/admin/reports/{report_id}/resolve")
async def resolve_report(
    report_id: str,
    body: ResolveRequest,
    admin: UserRow = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    """Resolve a report, hiding or removing the target when asked to."""
    return await report_service.resolve_report(
        session, report_id, actor_for(admin), body.action, body.note,
    )


@router.post("/admin/reports/{report_id}/reject")
async def reject_report(
    report_id: str,
    body: RejectRequest | None = None,
    admin: UserRow = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    """Dismiss a report without acting on the target."""
    note = body.note if body else ""
    return await report_service.reject_report(session, report_id, actor_for(admin), note)


@router.delete("/admin/reports/{report_id}")
async def delete_report(
    report_id: str,
    admin: UserRow = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    report = await report_service.delete_report(session, report_id, actor_for(admin))
    return {"deleted": True, "report": report}
