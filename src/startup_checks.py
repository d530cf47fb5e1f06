"""Startup validation — catch misconfigurations before the app serves traffic."""
from __future__ import annotations

import logging
import sys

from config.settings import settings

logger = logging.getLogger(__name__)

DEFAULT_JWT_SECRET = "recipehub-dev-secret-change-in-prod"


def validate_settings() -> list[str]:
    """Validate configuration. Returns list of warnings (empty = all good).

    Raises SystemExit for critical misconfigurations in production.
    """
    warnings: list[str] = []
    is_prod = settings.DATABASE_URL and "sqlite" not in settings.DATABASE_URL

    # Critical: JWT secret must be changed in production
    if is_prod and settings.JWT_SECRET == DEFAULT_JWT_SECRET:
        logger.critical("JWT_SECRET is still the default! Set a real secret for production.")
        sys.exit(1)

    if is_prod and "*" in settings.CORS_ORIGINS:
        warnings.append("CORS_ORIGINS is set to * — restrict in production")

    if settings.DEFAULT_PAGE_LIMIT > settings.MAX_PAGE_LIMIT:
        warnings.append(
            f"DEFAULT_PAGE_LIMIT ({settings.DEFAULT_PAGE_LIMIT}) exceeds MAX_PAGE_LIMIT "
            f"({settings.MAX_PAGE_LIMIT}); pages will be clamped"
        )

    if settings.BULK_MAX_IDS < 1:
        warnings.append("BULK_MAX_IDS is below 1 — bulk moderation will reject every request")

    if is_prod and not settings.SENTRY_DSN:
        warnings.append("SENTRY_DSN not set — production errors will only reach the logs")

    for w in warnings:
        logger.warning("⚠️  %s", w)

    if not warnings:
        logger.info("✅ All startup checks passed")

    return warnings
