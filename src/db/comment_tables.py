"""Comment database tables — user feedback on recipes, optionally rated, moderated by admins."""
from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Text, ForeignKey, DateTime, Index, CheckConstraint

from src.db.tables import Base
from src.models import CommentStatus


def _now():
    return datetime.now(timezone.utc)


class CommentRow(Base):
    """User comment on a recipe. Starts pending; only approved, rated comments count toward the recipe rating."""
    __tablename__ = "comments"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    recipe_id = Column(String(36), ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    rating = Column(Integer, nullable=True)  # 1-5 stars, immutable once set
    status = Column(String(20), nullable=False, default=CommentStatus.PENDING.value)

    # Moderation info
    moderated_by = Column(String(36), nullable=True)
    moderated_at = Column(DateTime(timezone=True), nullable=True)
    moderation_reason = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at = Column(DateTime(timezone=True), nullable=True, default=_now, onupdate=_now)

    __table_args__ = (
        CheckConstraint("rating IS NULL OR (rating >= 1 AND rating <= 5)", name="ck_comment_rating_range"),
        Index("ix_comments_recipe_status", "recipe_id", "status", "created_at"),
        Index("ix_comments_status_created", "status", "created_at"),
    )

    @property
    def has_rating(self) -> bool:
        return self.rating is not None

    @property
    def is_approved(self) -> bool:
        return self.status == CommentStatus.APPROVED.value
