"""Audit trail table — append-only record of every moderation mutation."""
from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, DateTime, JSON, Index

from src.db.tables import Base


class AuditLogRow(Base):
    """Who did what, to what, with what side effects. Never updated or deleted."""
    __tablename__ = "audit_logs"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    action = Column(String(20), nullable=False)  # create, update, delete, bulk
    entity_type = Column(String(20), nullable=False)  # comment, report, recipe, post
    entity_id = Column(String(36), nullable=True)  # null for bulk operations
    user_id = Column(String(36), nullable=False)
    user_email = Column(String(320), nullable=False)
    user_role = Column(String(20), nullable=False)
    # "metadata" is reserved on declarative classes
    details = Column("metadata", JSON, nullable=False, default=dict)
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(String(500), nullable=True)
    request_id = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        Index("ix_audit_created", "created_at"),
        Index("ix_audit_action_created", "action", "created_at"),
        Index("ix_audit_user_created", "user_id", "created_at"),
        Index("ix_audit_entity", "entity_type", "entity_id"),
    )
