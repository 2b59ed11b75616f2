"""
Simple configuration management.

The ``Settings`` dataclass reads configuration directly from
environment variables.  Defaults are provided for all fields so the
service starts with no configuration at all; in a deployment you
should at least override ``SECRET_KEY`` and ``DATABASE_URL``.
"""

import os
from dataclasses import dataclass


@dataclass
class Settings:
    """Application settings loaded from environment variables."""

    project_name: str = os.getenv("PROJECT_NAME", "ZenCare API")
    api_version: str = os.getenv("API_VERSION", "1.0.0")
    debug: bool = os.getenv("DEBUG", "false").lower() in {"1", "true", "yes"}
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_file: str = os.getenv("LOG_FILE", "")
    secret_key: str = os.getenv("SECRET_KEY", "change_me")
    access_token_expire_minutes: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 24)))
    algorithm: str = os.getenv("ALGORITHM", "HS256")

    # Optional static token for operator access.  Requests carrying this
    # token in the Authorization header are treated as the system admin
    # (user id 1).
    super_admin_static_token: str = os.getenv("SUPER_ADMIN_TOKEN", "")

    # Path or connection string for the SQLite database.  A relative
    # path is resolved relative to the project root by ``core.db``.
    database_url: str = os.getenv("DATABASE_URL", "zencare.db")

    # External AI counsellor service.  When ``AI_CHAT_URL`` is empty the
    # built-in supportive responder is used instead.
    ai_chat_url: str = os.getenv("AI_CHAT_URL", "")
    ai_chat_api_key: str = os.getenv("AI_CHAT_API_KEY", "")
    ai_chat_timeout: int = int(os.getenv("AI_CHAT_TIMEOUT", "15"))

    # Comma-separated English phrases appended to the crisis keyword list.
    crisis_extra_keywords: str = os.getenv("CRISIS_EXTRA_KEYWORDS", "")

    # Default length of a counselling session in minutes.  Counsellors may
    # override it on their profile.
    session_duration_minutes: int = int(os.getenv("SESSION_DURATION_MINUTES", "50"))

    # Offset from UTC used when deciding what "today" and the current hour
    # are for slot generation.
    timezone_offset_hours: int = int(os.getenv("TIMEZONE_OFFSET_HOURS", "0"))


# Instantiate settings once so other modules can import it without
# repeatedly reading environment variables.  Environment variables must
# be set before this module is imported.
settings = Settings()
