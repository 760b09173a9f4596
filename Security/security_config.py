"""
SECURITY CONFIG
===============
Centralized security settings loaded from environment.
"""

# FLOW:
# - Read env vars once and expose SECURITY_SETTINGS.
# - Middleware layers take their defaults from SECURITY_SETTINGS.
# HOW:
# - Loads .env with python-dotenv, then reads env vars into a dict.

from __future__ import annotations

import logging
import os

import dotenv


def get_bool(name: str, default: bool = False) -> bool:
    return os.getenv(name, str(default)).strip().lower() == "true"


def get_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


def get_str(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip()


def get_list(name: str, default: list[str]) -> list[str]:
    raw = os.getenv(name)
    if not raw:
        return default
    return [item.strip() for item in raw.split(",") if item.strip()]


def _same_site(name: str, default: str) -> str:
    value = get_str(name, default).lower()
    if value not in {"lax", "strict", "none"}:
        return default
    return value


dotenv.load_dotenv()

if get_bool("APP_ENV_LOG", False):
    logging.getLogger("security.env").info("Loaded security settings from environment")

SECURITY_SETTINGS = {
    "SESSION_COOKIE_NAME": get_str("SESSION_COOKIE_NAME", "session_token"),
    "SESSION_MAX_AGE": get_int("SESSION_MAX_AGE", 60 * 60 * 24),
    "SESSION_COOKIE_SECURE": get_bool("SESSION_COOKIE_SECURE", True),
    "SESSION_COOKIE_SAMESITE": _same_site("SESSION_COOKIE_SAMESITE", "lax"),
    "SESSION_PURGE_MINUTES": get_int("SESSION_PURGE_MINUTES", 15),
    "CSRF_COOKIE_NAME": get_str("CSRF_COOKIE_NAME", "csrf_token"),
    "CSRF_FIELD_NAME": get_str("CSRF_FIELD_NAME", "csrf_token"),
    "CSRF_MAX_AGE": get_int("CSRF_MAX_AGE", 60 * 60 * 24),
    "CSRF_COOKIE_SECURE": get_bool("CSRF_COOKIE_SECURE", True),
    # Reference deployment allowed the cookie cross-site.
    "CSRF_COOKIE_SAMESITE": _same_site("CSRF_COOKIE_SAMESITE", "none"),
    "CORS_ORIGINS": get_list("CORS_ORIGINS", ["http://localhost", "http://127.0.0.1"]),
    "LOG_DIR": get_str("LOG_DIR", "logs"),
}
