"""
Password reset request storage.

A request moves through three steps: created with a code, marked verified when
the code is checked, and deleted once the new password is stored.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict

from core.db.base import Database
from core.db.errors import UnknownEmailError
from core.db.users.user_store import get_user_by_email, update_password_hash


def _require_user(db: Database, email: str) -> Dict:
    user = get_user_by_email(db, email)
    if not user:
        raise UnknownEmailError(email)
    return user


def init_password_reset(db: Database, email: str, code: str, expires_at: datetime) -> Dict:
    """Store a fresh reset request for `email`, replacing any earlier one. Returns the user."""
    user = _require_user(db, email)
    with db.connect() as conn:
        cur = conn.cursor()
        cur.execute("DELETE FROM password_reset_requests WHERE userid = ?", (user["userid"],))
        cur.execute(
            """
            INSERT INTO password_reset_requests (userid, reset_code, reset_code_expires_at, is_verified, status, created_at)
            VALUES (?, ?, ?, FALSE, 'pending', ?)
            """,
            (user["userid"], code, expires_at, datetime.now(timezone.utc)),
        )
    return user


def verify_password_reset_code(db: Database, email: str, code: str) -> bool:
    """Mark the request verified when the code matches, is unexpired and unused."""
    user = _require_user(db, email)
    if not code:
        return False
    with db.connect() as conn:
        cur = conn.cursor()
        cur.execute(
            """
            UPDATE password_reset_requests
            SET status = 'completed', is_verified = TRUE
            WHERE userid = ? AND reset_code = ? AND reset_code_expires_at > NOW() AND is_verified = FALSE
            """,
            (user["userid"], code),
        )
        return cur.rowcount > 0


def apply_password_reset(db: Database, email: str, raw_password: str) -> bool:
    """
    Store the new password if a verified request exists, then consume the
    request and move the logout cutoff. False when nothing was verified.
    """
    user = _require_user(db, email)
    now = datetime.now(timezone.utc)
    with db.connect() as conn:
        cur = conn.cursor()
        cur.execute(
            "DELETE FROM password_reset_requests WHERE userid = ? AND is_verified = TRUE RETURNING userid",
            (user["userid"],),
        )
        if not cur.fetchone():
            return False
        update_password_hash(cur, user["userid"], raw_password, now)
        cur.execute("UPDATE users SET last_logout_at = ? WHERE userid = ?", (now, user["userid"]))
    return True


__all__ = [
    "init_password_reset",
    "verify_password_reset_code",
    "apply_password_reset",
]
