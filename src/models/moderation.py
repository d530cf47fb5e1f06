"""Moderation vocabulary — statuses, target types, and actions shared by services and API."""
from __future__ import annotations

from enum import Enum


class CommentStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    HIDDEN = "hidden"


class RecipeStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    REJECTED = "rejected"


class PostStatus(str, Enum):
    PUBLISHED = "published"
    HIDDEN = "hidden"


class TargetType(str, Enum):
    """What a report points at."""
    COMMENT = "comment"
    RECIPE = "recipe"
    POST = "post"


class ReportReason(str, Enum):
    SPAM = "spam"
    ABUSE = "abuse"
    INAPPROPRIATE = "inappropriate"
    MISINFORMATION = "misinformation"
    COPYRIGHT = "copyright"
    OTHER = "other"


class ReportStatus(str, Enum):
    PENDING = "pending"
    OPEN = "open"  # legacy synonym of PENDING
    REVIEWED = "reviewed"  # legacy, read-only
    RESOLVED = "resolved"
    REJECTED = "rejected"


# Statuses that still await a moderator decision.
AWAITING_RESOLUTION = frozenset({ReportStatus.PENDING.value, ReportStatus.OPEN.value})


class ResolutionAction(str, Enum):
    NO_ACTION = "no_action"
    HIDDEN = "hidden"
    REMOVED = "removed"


class BulkAction(str, Enum):
    APPROVE = "approve"
    HIDE = "hide"


class AuditAction(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    BULK = "bulk"


class Role(str, Enum):
    USER = "user"
    ADMIN = "admin"
