"""Content reporting tables — community safety and moderation queue."""
from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Column, String, Text, DateTime,
    ForeignKey, Index, UniqueConstraint
)

from src.db.tables import Base
from src.models import AWAITING_RESOLUTION, ReportStatus


def _now():
    return datetime.now(timezone.utc)


class ReportRow(Base):
    """User-submitted content reports for moderation."""
    __tablename__ = "reports"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    reporter_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    target_type = Column(String(20), nullable=False)  # comment, recipe, post
    target_id = Column(String(36), nullable=False)
    reason = Column(String(50), nullable=False)  # spam, abuse, inappropriate, misinformation, copyright, other
    description = Column(Text, nullable=True)
    status = Column(String(20), default=ReportStatus.PENDING.value, nullable=False)

    # Resolution record, null until the report is resolved or rejected
    resolution_action = Column(String(20), nullable=True)  # no_action, hidden, removed
    resolution_note = Column(Text, nullable=True)
    resolved_by = Column(String(36), nullable=True)
    resolved_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), default=_now, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_now, onupdate=_now)

    __table_args__ = (
        UniqueConstraint("reporter_id", "target_type", "target_id", name="uq_user_report"),
        Index("ix_report_status", "status", "created_at"),
        Index("ix_report_target", "target_type", "target_id"),
    )

    def can_resolve(self) -> bool:
        return self.status in AWAITING_RESOLUTION
