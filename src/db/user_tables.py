"""User table — identities that author content, file reports, and moderate."""
from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, DateTime

from src.db.tables import Base
from src.models import Role


class UserRow(Base):
    """Authenticated user (email + password). Role gates the admin surface."""
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(320), nullable=False, unique=True, index=True)
    password_hash = Column(String(256), nullable=True)  # PBKDF2-SHA256
    display_name = Column(String(100), nullable=True)
    avatar_url = Column(String(2000), nullable=True)
    role = Column(String(20), nullable=False, default=Role.USER.value)

    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN.value
