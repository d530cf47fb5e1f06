"""Moderation error taxonomy.

Every error carries a stable machine-readable ``code``, a human ``message``,
and the HTTP status the API layer answers with.
"""
from __future__ import annotations


class ModerationError(Exception):
    """Base moderation error."""

    status_code = 400

    def __init__(self, message: str, code: str = "MODERATION_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


# ── Not found ────────────────────────────────────────────────────────────────

class NotFoundError(ModerationError):
    status_code = 404

    def __init__(self, message: str = "Not found", code: str = "NOT_FOUND"):
        super().__init__(message, code)


class CommentNotFound(NotFoundError):
    def __init__(self, message: str = "Comment not found"):
        super().__init__(message, "COMMENT_NOT_FOUND")


class CommentsNotFound(NotFoundError):
    def __init__(self, message: str = "No comments found"):
        super().__init__(message, "COMMENTS_NOT_FOUND")


class RecipeNotFound(NotFoundError):
    def __init__(self, message: str = "Recipe not found"):
        super().__init__(message, "RECIPE_NOT_FOUND")


class ReportNotFound(NotFoundError):
    def __init__(self, message: str = "Report not found"):
        super().__init__(message, "REPORT_NOT_FOUND")


class TargetNotFound(NotFoundError):
    def __init__(self, target_type: str):
        super().__init__(f"{target_type} not found", "TARGET_NOT_FOUND")


# ── Invalid input ────────────────────────────────────────────────────────────

class InvalidAction(ModerationError):
    def __init__(self, message: str = "Invalid action"):
        super().__init__(message, "INVALID_ACTION")


class InvalidResolutionAction(ModerationError):
    def __init__(self, message: str = "Invalid resolution action"):
        super().__init__(message, "INVALID_RESOLUTION_ACTION")


class InvalidIds(ModerationError):
    def __init__(self, message: str = "No valid comment IDs provided"):
        super().__init__(message, "INVALID_IDS")


class InvalidTargetType(ModerationError):
    def __init__(self, message: str = "Target type must be comment, recipe, or post"):
        super().__init__(message, "INVALID_TARGET_TYPE")


class InvalidReason(ModerationError):
    def __init__(self, message: str = "Invalid reason value"):
        super().__init__(message, "INVALID_REASON")


# ── Conflicts ────────────────────────────────────────────────────────────────

class DuplicateReport(ModerationError):
    status_code = 409

    def __init__(self, message: str = "You have already reported this item"):
        super().__init__(message, "DUPLICATE_REPORT")


class ReportAlreadyResolved(ModerationError):
    def __init__(self, message: str = "Report is already resolved"):
        super().__init__(message, "REPORT_ALREADY_RESOLVED")
