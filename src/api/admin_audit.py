"""Admin audit log API — read-only view of the moderation trail."""
from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.auth import require_admin
from src.db.engine import get_session
from src.db.user_tables import UserRow
from src.services.audit import list_audit_logs

router = APIRouter(prefix="/api/v1/admin/audit-logs", tags=["admin", "audit"])


@router.get("")
async def get_audit_logs(
    action: str | None = Query(None, description="create, update, delete, bulk"),
    entity_type: str | None = Query(None),
    entity_id: str | None = Query(None),
    user_id: str | None = Query(None),
    since: datetime | None = Query(None),
    until: datetime | None = Query(None),
    page: int = Query(1),
    limit: int | None = Query(None),
    admin: UserRow = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    """Newest-first audit entries, page-paginated."""
    return await list_audit_logs(
        session,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        user_id=user_id,
        since=since,
        until=until,
        page=page,
        limit=limit,
    )
