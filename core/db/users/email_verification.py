"""
Email verification code storage helpers.
"""
from __future__ import annotations

from datetime import datetime

from core.db.base import Database


def is_email_verified(db: Database, userid: str) -> bool:
    with db.connect() as conn:
        cur = conn.cursor()
        cur.execute(
            "SELECT email_verified_status FROM user_verification WHERE userid = ? LIMIT 1",
            (userid,),
        )
        row = cur.fetchone()
    return bool(row and row["email_verified_status"])


def check_email_token(db: Database, userid: str, code: str) -> bool:
    """True when the code matches the user's current code and has not expired."""
    if not code:
        return False
    with db.connect() as conn:
        cur = conn.cursor()
        cur.execute(
            """
            SELECT 1 FROM user_verification
            WHERE userid = ? AND email_token = ? AND email_token_expires_at > NOW()
            LIMIT 1
            """,
            (userid, code),
        )
        return cur.fetchone() is not None


def mark_email_verified(db: Database, userid: str) -> None:
    with db.connect() as conn:
        cur = conn.cursor()
        cur.execute(
            "UPDATE user_verification SET email_verified_status = TRUE WHERE userid = ?",
            (userid,),
        )


def regenerate_email_token(db: Database, userid: str, code: str, expires_at: datetime) -> bool:
    """
    Replace the user's code so the old one stops matching, and mark the email
    unverified until the new code is used. False when the user has no
    verification row.
    """
    with db.connect() as conn:
        cur = conn.cursor()
        cur.execute(
            """
            UPDATE user_verification
            SET email_token = ?, email_token_expires_at = ?, email_verified_status = FALSE
            WHERE userid = ?
            """,
            (code, expires_at, userid),
        )
        return cur.rowcount > 0


__all__ = [
    "is_email_verified",
    "check_email_token",
    "mark_email_verified",
    "regenerate_email_token",
]
