# xfin/config.py
import os
from datetime import timedelta


def _env_bool(name, default):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Config:
    """Defaults read from the environment. create_app() can override any key."""

    DATABASE = os.environ.get("DB_PATH", os.path.join("data", "xfin.db"))

    JWT_SECRET_KEY = os.environ.get("JWT_SECRET_KEY", "dev-key-change-me-in-production")
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(minutes=int(os.environ.get("ACCESS_TOKEN_MINUTES", 15)))
    REFRESH_TOKEN_DAYS = int(os.environ.get("REFRESH_TOKEN_DAYS", 7))
    REMEMBER_ME_REFRESH_TOKEN_DAYS = int(os.environ.get("REMEMBER_ME_REFRESH_TOKEN_DAYS", 30))

    CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "http://localhost:8501")

    UPLOAD_FOLDER = os.environ.get("UPLOAD_FOLDER", "uploads")
    MAX_CONTENT_LENGTH = int(os.environ.get("MAX_UPLOAD_MB", 5)) * 1024 * 1024
    ALLOWED_IMAGE_EXTENSIONS = {"jpg", "jpeg", "png", "gif", "webp"}

    # None means werkzeug's default (scrypt); tests use a cheap pbkdf2 round count
    PASSWORD_HASH_METHOD = os.environ.get("PASSWORD_HASH_METHOD") or None

    RATELIMIT_ENABLED = _env_bool("RATELIMIT_ENABLED", True)
    RATELIMIT_STORAGE_URI = os.environ.get("RATELIMIT_STORAGE_URI", "memory://")
    LOGIN_RATE_LIMIT = os.environ.get("LOGIN_RATE_LIMIT", "5 per 15 minutes")

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
