"""App settings — loaded from environment."""
from __future__ import annotations

import os
from dotenv import load_dotenv

load_dotenv()


class Settings:
    # API
    API_HOST = os.getenv("API_HOST", "0.0.0.0")
    API_PORT = int(os.getenv("API_PORT", "8000"))

    # Database
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///recipehub.db")

    # Auth
    JWT_SECRET = os.getenv("JWT_SECRET", "recipehub-dev-secret-change-in-prod")

    # CORS origins (comma-separated, or * for dev)
    CORS_ORIGINS = [
        o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",")
    ]

    # Pagination
    DEFAULT_PAGE_LIMIT = int(os.getenv("DEFAULT_PAGE_LIMIT", "20"))
    MAX_PAGE_LIMIT = int(os.getenv("MAX_PAGE_LIMIT", "100"))

    # Moderation
    BULK_MAX_IDS = int(os.getenv("BULK_MAX_IDS", "50"))
    RECENT_WINDOW_DAYS = int(os.getenv("RECENT_WINDOW_DAYS", "7"))

    # Identity recorded on audit entries when no acting user is available
    SYSTEM_ACTOR_ID = os.getenv("SYSTEM_ACTOR_ID", "00000000-0000-0000-0000-000000000001")
    SYSTEM_ACTOR_EMAIL = os.getenv("SYSTEM_ACTOR_EMAIL", "system@admin.com")

    # Observability
    SENTRY_DSN = os.getenv("SENTRY_DSN", "")
    SENTRY_ENVIRONMENT = os.getenv("SENTRY_ENVIRONMENT", "development")
    SENTRY_TRACES_SAMPLE_RATE = float(os.getenv("SENTRY_TRACES_SAMPLE_RATE", "0.1"))

    # Logging
    LOG_FORMAT = os.getenv("LOG_FORMAT", "text")  # "text" or "json"
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


settings = Settings()
