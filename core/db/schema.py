"""
Schema helpers for Postgres.
"""
from __future__ import annotations

from core.db.base import Database

TABLES = [
    "availability",
    "password_reset_requests",
    "emails",
    "user_verification",
    "users",
]


def init_db(db: Database) -> None:
    """Create the account tables if they don't exist."""
    with db.connect() as conn:
        cur = conn.cursor()
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS users(
                userid TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                email TEXT NOT NULL UNIQUE,
                passwordhash TEXT NOT NULL,
                created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                role TEXT[] NOT NULL DEFAULT ARRAY['user'],
                last_logout_at TIMESTAMPTZ
            )
            """
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS user_verification(
                userid TEXT PRIMARY KEY REFERENCES users(userid),
                email_token TEXT,
                email_token_expires_at TIMESTAMPTZ,
                email_verified_status BOOLEAN NOT NULL DEFAULT FALSE
            )
            """
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS emails(
                userid TEXT PRIMARY KEY REFERENCES users(userid),
                current_email TEXT,
                new_email TEXT NOT NULL,
                email_token TEXT NOT NULL,
                email_token_expires_at TIMESTAMPTZ NOT NULL,
                new_mail_verified BOOLEAN NOT NULL DEFAULT FALSE
            )
            """
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS password_reset_requests(
                userid TEXT PRIMARY KEY REFERENCES users(userid),
                reset_code TEXT NOT NULL,
                reset_code_expires_at TIMESTAMPTZ NOT NULL,
                is_verified BOOLEAN NOT NULL DEFAULT FALSE,
                status TEXT NOT NULL DEFAULT 'pending',
                created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
            )
            """
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS availability(
                id SERIAL PRIMARY KEY,
                userid TEXT NOT NULL REFERENCES users(userid),
                day_of_week TEXT NOT NULL,
                start_time TEXT NOT NULL,
                end_time TEXT NOT NULL
            )
            """
        )
        cur.execute("CREATE INDEX IF NOT EXISTS idx_availability_userid ON availability(userid)")


__all__ = ["TABLES", "init_db"]
