"""Community post table — user posts that can be reported and hidden."""
from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, Text, DateTime, ForeignKey

from src.db.tables import Base
from src.models import PostStatus


class PostRow(Base):
    __tablename__ = "posts"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    author_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    status = Column(String(20), nullable=False, default=PostStatus.PUBLISHED.value)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
