# backend/bankportal/config.py
from __future__ import annotations
import os


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    if value is None or not value.strip():
        return default
    return int(value)


def engine_options_for(database_uri: str, timeout_seconds: int) -> dict:
    """
    Engine options with a bounded connect/lock timeout.

    SQLite takes "timeout" (busy wait on locked database); network drivers
    take "connect_timeout".
    """
    if database_uri.startswith("sqlite"):
        connect_args = {"timeout": timeout_seconds}
    else:
        connect_args = {"connect_timeout": timeout_seconds}
    return {"pool_pre_ping": True, "connect_args": connect_args}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/bankportal.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",  # optional alternative location
        "sqlite:///bankportal.sqlite3",  # default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    DB_TIMEOUT_SECONDS = _env_int("DB_TIMEOUT_SECONDS", 5)
    SQLALCHEMY_ENGINE_OPTIONS = engine_options_for(SQLALCHEMY_DATABASE_URI, DB_TIMEOUT_SECONDS)

    # JSON bodies above 10 KB are rejected with 413
    MAX_CONTENT_LENGTH = 10 * 1024

    BCRYPT_ROUNDS = _env_int("BCRYPT_ROUNDS", 12)

    SESSION_LIFETIME_HOURS = _env_int("SESSION_LIFETIME_HOURS", 24)
    AUTH_COOKIE_NAME = os.environ.get("AUTH_COOKIE_NAME", "bank_session")
    AUTH_COOKIE_SECURE = _env_bool("AUTH_COOKIE_SECURE", True)

    # Reference deployment allows unauthenticated staff sign-up.
    # Set to false to provision staff through `flask users create-staff` only.
    ALLOW_STAFF_SELF_REGISTRATION = _env_bool("ALLOW_STAFF_SELF_REGISTRATION", True)

    RATELIMIT_ENABLED = _env_bool("RATELIMIT_ENABLED", True)
    RATELIMIT_MAX_REQUESTS = _env_int("RATELIMIT_MAX_REQUESTS", 120)
    RATELIMIT_WINDOW_SECONDS = _env_int("RATELIMIT_WINDOW_SECONDS", 15 * 60)

    CORS_ORIGINS = [
        origin.strip()
        for origin in os.environ.get("CORS_ORIGINS", "https://localhost:5173").split(",")
        if origin.strip()
    ]

    TLS_CERT_FILE = os.environ.get("TLS_CERT_FILE", "certs/certificate.pem")
    TLS_KEY_FILE = os.environ.get("TLS_KEY_FILE", "certs/privatekey.pem")
    HTTPS_PORT = _env_int("HTTPS_PORT", 8443)
