"""Core configuration and infrastructure helpers."""

from .config import (
    ALLOWED_CORS_ORIGINS,
    COOKIE_DOMAIN,
    COOKIE_SAMESITE,
    COOKIE_SECURE,
    DATABASE_URL,
    DB_RESET,
    FRONTEND_ORIGIN,
    FRONTEND_ORIGINS,
    GOOGLE_CLIENT_ID,
    GOOGLE_CLIENT_SECRET,
    LOG_LEVEL,
    OAUTH_REDIRECT_BASE,
    REGISTRATION_PATH,
    SECRET_KEY,
    LLMSettings,
    llm_settings,
)
from .database import engine, get_session, init_db
from .i18n import t
from .logging import configure_logging
from .time import utcnow

__all__ = [
    "ALLOWED_CORS_ORIGINS",
    "COOKIE_DOMAIN",
    "COOKIE_SAMESITE",
    "COOKIE_SECURE",
    "DATABASE_URL",
    "DB_RESET",
    "FRONTEND_ORIGIN",
    "FRONTEND_ORIGINS",
    "GOOGLE_CLIENT_ID",
    "GOOGLE_CLIENT_SECRET",
    "LLMSettings",
    "LOG_LEVEL",
    "OAUTH_REDIRECT_BASE",
    "REGISTRATION_PATH",
    "SECRET_KEY",
    "configure_logging",
    "engine",
    "get_session",
    "init_db",
    "llm_settings",
    "t",
    "utcnow",
]
