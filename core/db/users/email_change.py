"""
Pending email-change requests.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from core.db.base import Database, is_unique_violation
from core.db.errors import DuplicateEmailError


def init_email_change(
    db: Database,
    userid: str,
    new_email: str,
    code: str,
    expires_at: datetime,
) -> None:
    """
    Record a pending change to `new_email`, replacing any earlier request.
    Raises DuplicateEmailError when the address already belongs to a user.
    """
    with db.connect() as conn:
        cur = conn.cursor()
        cur.execute("SELECT 1 FROM users WHERE email = ? LIMIT 1", (new_email,))
        if cur.fetchone():
            raise DuplicateEmailError(new_email)

        cur.execute("SELECT email FROM users WHERE userid = ?", (userid,))
        row = cur.fetchone()
        current_email = row["email"] if row else None

        cur.execute("DELETE FROM emails WHERE userid = ?", (userid,))
        cur.execute(
            """
            INSERT INTO emails (userid, current_email, new_email, email_token, email_token_expires_at, new_mail_verified)
            VALUES (?, ?, ?, ?, ?, FALSE)
            """,
            (userid, current_email, new_email, code, expires_at),
        )


def verify_email_change(db: Database, userid: str, code: str) -> Optional[str]:
    """
    Apply the pending change when `code` matches and is unexpired.
    Returns the new email, or None when the code is wrong, expired or already used.
    """
    if not code:
        return None
    new_email = None
    try:
        with db.connect() as conn:
            cur = conn.cursor()
            cur.execute(
                """
                UPDATE emails SET new_mail_verified = TRUE
                WHERE userid = ? AND email_token = ? AND email_token_expires_at > NOW()
                  AND new_mail_verified = FALSE
                RETURNING new_email
                """,
                (userid, code),
            )
            row = cur.fetchone()
            if not row:
                return None
            new_email = row["new_email"]
            cur.execute(
                "UPDATE users SET email = ?, updated_at = ? WHERE userid = ?",
                (new_email, datetime.now(timezone.utc), userid),
            )
    except Exception as exc:
        if is_unique_violation(exc):
            raise DuplicateEmailError(new_email) from exc
        raise
    return new_email


__all__ = ["init_email_change", "verify_email_change"]
