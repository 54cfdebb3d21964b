"""
Application settings, read once from the environment at start-up.
"""
from __future__ import annotations

import os
from typing import Mapping, Optional

from dotenv import load_dotenv
from pydantic import BaseModel

from core.db.users.codes import parse_expiry_minutes

LOCAL_ENV = "local"
TEST_ENV = "test"
PROD_ENV = "prod"

REQUIRED_ENV = ["DATABASE_URL", "JWT_SECRET", "APP_ENV"]


class ConfigError(RuntimeError):
    pass


def missing_env(environ: Mapping[str, str], required=REQUIRED_ENV) -> list[str]:
    return [name for name in required if not environ.get(name)]


def parse_int(value: Optional[str], fallback: int) -> int:
    """Numeric knob from the environment; `fallback` when absent or not a number."""
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return fallback


def parse_bool(value: Optional[str], fallback: bool = False) -> bool:
    if value is None or value == "":
        return fallback
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings(BaseModel):
    app_name: str = "WAW Accounts"
    app_env: str = PROD_ENV
    database_url: str = ""

    jwt_secret: str
    auth_token_ttl_seconds: int = 24 * 60 * 60
    code_expiry_minutes: float = 1

    global_rate_limit: int = 100  # requests per minute per client
    auth_rate_limit: int = 10  # per minute per client on credential routes

    # When true, password reset routes answer 400 for unknown emails instead of
    # masking them as success / invalid code.
    reset_reveals_unknown_email: bool = False

    smtp_server: str = "smtp.gmail.com"
    smtp_port: int = 587
    email_user: str = ""
    email_password: str = ""
    email_from: str = ""

    @property
    def is_local(self) -> bool:
        return self.app_env == LOCAL_ENV

    @property
    def is_test(self) -> bool:
        return self.app_env == TEST_ENV

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        if environ is None:
            # Use override=True so editing `.env` and restarting reliably takes effect.
            load_dotenv(override=True)
            environ = os.environ

        missing = missing_env(environ)
        if missing:
            raise ConfigError(f"Missing required environment variables: {', '.join(missing)}")

        return cls(
            app_name=environ.get("APP_NAME") or "WAW Accounts",
            app_env=environ["APP_ENV"],
            database_url=environ["DATABASE_URL"],
            jwt_secret=environ["JWT_SECRET"],
            auth_token_ttl_seconds=parse_int(environ.get("AUTH_TOKEN_TTL_SECONDS"), 24 * 60 * 60),
            code_expiry_minutes=parse_expiry_minutes(environ.get("TOKEN_EXPIRY_MINUTES")),
            global_rate_limit=parse_int(environ.get("GLOBAL_RATE_LIMIT"), 100),
            auth_rate_limit=parse_int(environ.get("AUTH_RATE_LIMIT"), 10),
            reset_reveals_unknown_email=parse_bool(environ.get("PASSWORD_RESET_REVEAL_UNKNOWN_EMAIL")),
            smtp_server=environ.get("SMTP_SERVER") or "smtp.gmail.com",
            smtp_port=parse_int(environ.get("SMTP_PORT"), 587),
            email_user=environ.get("EMAIL_USER") or "",
            email_password=environ.get("EMAIL_PASSWORD") or "",
            email_from=environ.get("EMAIL_FROM") or "",
        )


__all__ = [
    "LOCAL_ENV",
    "TEST_ENV",
    "PROD_ENV",
    "REQUIRED_ENV",
    "ConfigError",
    "Settings",
    "missing_env",
    "parse_int",
    "parse_bool",
]
