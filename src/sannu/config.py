"""
Environment-driven settings.

Values are read on every call so the process environment (and `.env`, loaded
by the app entrypoint) stays the single source of truth.
"""
import os
from urllib.parse import urlparse


def get_app_url() -> str:
    return os.getenv("APP_URL", "http://localhost:8000").rstrip("/")


def get_app_host() -> str:
    """Host part of APP_URL, used as the base for tenant subdomains."""
    return urlparse(get_app_url()).hostname or "localhost"


def get_app_env() -> str:
    return os.getenv("APP_ENV", "local").lower()


def is_production() -> bool:
    return get_app_env() == "production"


def get_app_key() -> str:
    return os.getenv("APP_KEY", "sannu-local-development-key")


def get_session_lifetime_minutes() -> int:
    return int(os.getenv("SESSION_LIFETIME", "120"))


def get_session_cookie_name() -> str:
    return os.getenv("SESSION_COOKIE", "sannu_session")


def get_media_root() -> str:
    return os.getenv("MEDIA_ROOT", os.path.join(".", "storage", "public"))


def get_media_url() -> str:
    return os.getenv("MEDIA_URL", "/storage").rstrip("/")


def get_system_admin_email() -> str:
    return os.getenv("SYSTEM_ADMIN_EMAIL", "admin@sannu-sannu.com")


def get_redis_url():
    return os.getenv("REDIS_URL")
