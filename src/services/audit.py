"""
RecipeHub Audit Trail
---
Append-only record of every moderation mutation: who did it, to which
entity, from where, and with what side effects.

Writing an entry is best-effort. The mutation it describes has already been
committed by the time the audit runs, so a failed audit write is logged and
counted but never surfaces to the caller.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.db.audit_tables import AuditLogRow
from src.db.user_tables import UserRow
from src.middleware.metrics import metrics
from src.middleware.request_id import current_provenance
from src.models import AuditAction, Role
from src.services.pagination import paginate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Actor:
    """The identity a moderation action is attributed to."""
    id: str
    email: str
    role: str
    is_system: bool = False

    @classmethod
    def from_user(cls, user: UserRow) -> "Actor":
        return cls(id=user.id, email=user.email, role=user.role or Role.USER.value)


# Attributed to mutations that run without an authenticated request
SYSTEM_ACTOR = Actor(
    id=settings.SYSTEM_ACTOR_ID,
    email=settings.SYSTEM_ACTOR_EMAIL,
    role=Role.ADMIN.value,
    is_system=True,
)


def _build_entry(
    *,
    action: str,
    entity_type: str,
    entity_id: Optional[str],
    actor: Actor,
    metadata: dict,
) -> AuditLogRow:
    prov = current_provenance()
    return AuditLogRow(
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        user_id=actor.id,
        user_email=actor.email,
        user_role=actor.role,
        details=metadata,
        ip_address=prov.ip_address,
        user_agent=prov.user_agent,
        request_id=prov.request_id,
        created_at=datetime.now(timezone.utc),
    )


async def record_audit(
    session: AsyncSession,
    *,
    action: AuditAction | str,
    entity_type: str,
    entity_id: Optional[str],
    actor: Actor,
    metadata: Optional[dict] = None,
) -> Optional[AuditLogRow]:
    """Persist one audit entry. Returns None if the write failed."""
    action = action.value if isinstance(action, AuditAction) else action
    metadata = dict(metadata or {})
    operation = metadata.get("operation") or f"{action}_{entity_type}"

    try:
        entry = _build_entry(
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            actor=actor,
            metadata=metadata,
        )
        session.add(entry)
        await session.commit()
    except SQLAlchemyError:
        await session.rollback()
        logger.exception(
            "Audit write failed: %s %s %s by %s", action, entity_type, entity_id, actor.id,
        )
        metrics.record_audit_failure()
        return None

    metrics.record_moderation(operation)
    logger.info("Audit: %s %s %s by %s", action, entity_type, entity_id or "-", actor.email)
    return entry


def audit_log_response(row: AuditLogRow) -> dict:
    return {
        "id": row.id,
        "action": row.action,
        "entity_type": row.entity_type,
        "entity_id": row.entity_id,
        "user_id": row.user_id,
        "user_email": row.user_email,
        "user_role": row.user_role,
        "metadata": row.details or {},
        "ip_address": row.ip_address,
        "user_agent": row.user_agent,
        "request_id": row.request_id,
        "created_at": row.created_at.isoformat() if row.created_at else None,
    }


async def list_audit_logs(
    session: AsyncSession,
    *,
    action: Optional[str] = None,
    entity_type: Optional[str] = None,
    entity_id: Optional[str] = None,
    user_id: Optional[str] = None,
    since: Optional[datetime] = None,
    until: Optional[datetime] = None,
    page: int = 1,
    limit: Optional[int] = None,
) -> dict[str, Any]:
    """Newest-first audit entries, optionally filtered."""
    stmt = select(AuditLogRow)
    if since:
        stmt = stmt.where(AuditLogRow.created_at >= since)
    if until:
        stmt = stmt.where(AuditLogRow.created_at <= until)
    if action:
        stmt = stmt.where(AuditLogRow.action == action)
    if entity_type:
        stmt = stmt.where(AuditLogRow.entity_type == entity_type)
    if entity_id:
        stmt = stmt.where(AuditLogRow.entity_id == entity_id)
    if user_id:
        stmt = stmt.where(AuditLogRow.user_id == user_id)

    window = await paginate(
        session, stmt,
        model=AuditLogRow,
        sort_column=AuditLogRow.created_at,
        order="desc",
        page=page,
        limit=limit,
    )
    return {
        "logs": [audit_log_response(r) for r in window.items],
        "total": window.total,
        "pagination": window.page_info,
    }
