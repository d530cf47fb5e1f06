from src.models.moderation import (
    AWAITING_RESOLUTION,
    AuditAction,
    BulkAction,
    CommentStatus,
    PostStatus,
    RecipeStatus,
    ReportReason,
    ReportStatus,
    ResolutionAction,
    Role,
    TargetType,
)

__all__ = [
    "AWAITING_RESOLUTION",
    "AuditAction",
    "BulkAction",
    "CommentStatus",
    "PostStatus",
    "RecipeStatus",
    "ReportReason",
    "ReportStatus",
    "ResolutionAction",
    "Role",
    "TargetType",
]
