"""
Configuration classes for the PMS frontend.

Every value can be overridden through an environment variable of the same
name. ``FLASK_ENV`` picks the class (``development``, ``testing`` or
``production``); unknown names fall back to development.
"""

from __future__ import annotations

import os


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_float(name: str, default: float) -> float:
    return float(os.environ.get(name, default))


class Config:
    """Settings shared by all environments."""

    SECRET_KEY: str = os.environ.get("SECRET_KEY", "pms-frontend-insecure-dev-key")

    # PMS REST API root; every client path is appended to it.
    API_BASE_URL: str = os.environ.get("API_BASE_URL", "http://localhost:8080/api")
    API_TIMEOUT: float = _env_float("API_TIMEOUT", 10)

    CACHE_STALE_SECONDS: float = _env_float("CACHE_STALE_SECONDS", 30)
    # Per-user caches unused for this long are discarded.
    CACHE_IDLE_SECONDS: float = _env_float("CACHE_IDLE_SECONDS", 3600)
    SEARCH_DEBOUNCE_MS: int = int(os.environ.get("SEARCH_DEBOUNCE_MS", 150))

    # Tolerance when checking the session token's ``exp`` claim locally.
    JWT_CLOCK_SKEW_SECONDS: int = int(os.environ.get("JWT_CLOCK_SKEW_SECONDS", 30))

    SESSION_COOKIE_NAME: str = "pms_session"
    SESSION_COOKIE_HTTPONLY: bool = True
    SESSION_COOKIE_SAMESITE: str = os.environ.get("SESSION_COOKIE_SAMESITE", "Lax")
    SESSION_COOKIE_SECURE: bool = _env_flag("SESSION_COOKIE_SECURE", False)


class DevelopmentConfig(Config):
    DEBUG: bool = True
    TESTING: bool = False


class TestingConfig(Config):
    """Points at a fake API host; tests replace the HTTP layer anyway."""

    DEBUG: bool = True
    TESTING: bool = True

    API_BASE_URL: str = os.environ.get("TEST_API_BASE_URL", "http://pms-api")
    API_TIMEOUT: float = 1
    CACHE_STALE_SECONDS: float = 30.0
    SEARCH_DEBOUNCE_MS: int = 150
    SESSION_COOKIE_SECURE: bool = False


class ProductionConfig(Config):
    DEBUG: bool = False
    TESTING: bool = False
    SESSION_COOKIE_SECURE: bool = _env_flag("SESSION_COOKIE_SECURE", True)


config = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}


def get_config(env: str | None = None) -> type[Config]:
    """
    Return the configuration class for *env*.

    Args:
        env: Environment name; ``None`` reads ``FLASK_ENV``.
    """
    name = (env or os.environ.get("FLASK_ENV") or "development").strip().lower()
    return config.get(name, DevelopmentConfig)
