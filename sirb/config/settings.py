"""
sirb/config/settings.py
Environment-driven settings.

All values are read once at import time after load_dotenv().
Tests override attributes directly on the `settings` instance.
"""
import os
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


def get_bool_env(key: str, default: bool = False) -> bool:
    """Get a boolean value from environment variable."""
    value = os.getenv(key, str(default)).lower()
    return value in ('true', '1', 'yes', 'on', 'enabled')


def get_int_env(key: str, default: int) -> int:
    """Get an integer value from environment variable, falling back on bad input."""
    raw = os.getenv(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


DEV_SECRET_KEY = "dev-secret-key-change-in-production"


class Settings:
    """
    Runtime settings for the Sirb content service.

    Database
    - DATABASE_URL: async SQLAlchemy URL (aiosqlite for dev, asyncpg for production)

    Sessions
    - JWT_SECRET_KEY / JWT_ALGORITHM: shared with the external auth service

    Abuse controls
    - COMMENT_RATE_LIMIT / REPORT_RATE_LIMIT: rows per RATE_LIMIT_WINDOW_SECONDS
    - UPLOAD_RATE_LIMIT: upload slots per minute per user
    - REDIS_URL: when set, upload limits are shared across workers

    Notifications
    - NOTIFY_WEBHOOK_URL: when set, notices are POSTed there instead of logged
    """

    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./sirb.db")

    JWT_SECRET_KEY: str = os.getenv("JWT_SECRET_KEY", DEV_SECRET_KEY)
    JWT_ALGORITHM: str = os.getenv("JWT_ALGORITHM", "HS256")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = get_int_env("ACCESS_TOKEN_EXPIRE_MINUTES", 60)

    ALLOWED_ORIGINS: str = os.getenv("ALLOWED_ORIGINS", "")

    COMMENT_RATE_LIMIT: int = get_int_env("COMMENT_RATE_LIMIT", 5)
    REPORT_RATE_LIMIT: int = get_int_env("REPORT_RATE_LIMIT", 5)
    RATE_LIMIT_WINDOW_SECONDS: int = get_int_env("RATE_LIMIT_WINDOW_SECONDS", 60)
    UPLOAD_RATE_LIMIT: int = get_int_env("UPLOAD_RATE_LIMIT", 10)
    UPLOAD_IP_RATE_LIMIT: str = os.getenv("UPLOAD_IP_RATE_LIMIT", "30/minute")
    REDIS_URL: Optional[str] = os.getenv("REDIS_URL") or None

    NOTIFY_WEBHOOK_URL: Optional[str] = os.getenv("NOTIFY_WEBHOOK_URL") or None
    NOTIFY_TIMEOUT_SECONDS: int = get_int_env("NOTIFY_TIMEOUT_SECONDS", 10)
    SUBMISSION_NOTIFY_COOLDOWN_MINUTES: int = get_int_env("SUBMISSION_NOTIFY_COOLDOWN_MINUTES", 30)
    REPORT_NOTIFY_COOLDOWN_MINUTES: int = get_int_env("REPORT_NOTIFY_COOLDOWN_MINUTES", 15)

    MAX_UPLOAD_BYTES: int = get_int_env("MAX_UPLOAD_BYTES", 10 * 1024 * 1024)

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT == "development"

    @property
    def uses_dev_secret(self) -> bool:
        return self.JWT_SECRET_KEY == DEV_SECRET_KEY


settings = Settings()
