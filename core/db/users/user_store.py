"""
User CRUD, logout cutoff and password helpers.
"""
from __future__ import annotations

import secrets
from dataclasses import dataclass, fields
from datetime import datetime, timezone
from typing import Dict, List, Optional

from core.db.base import Database, is_unique_violation
from core.db.errors import DuplicateEmailError, NoUpdateFieldsError
from core.db.users.auth import hash_password, verify_password

USER_ROLE = "user"
ADMIN_ROLE = "admin"

PUBLIC_COLUMNS = "userid, name, email, role, created_at, updated_at"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _new_userid() -> str:
    return secrets.token_urlsafe(12)


@dataclass
class UserPatch:
    """Partial profile update. Only fields that are not None are written."""

    name: Optional[str] = None
    role: Optional[List[str]] = None

    # field -> column; the only columns an update may touch
    COLUMNS = {"name": "name", "role": "role"}

    def items(self):
        for f in fields(self):
            value = getattr(self, f.name)
            if value is not None:
                yield self.COLUMNS[f.name], value

    def is_empty(self) -> bool:
        return not any(True for _ in self.items())


def exists_by_email(db: Database, email: str) -> bool:
    with db.connect() as conn:
        cur = conn.cursor()
        cur.execute("SELECT 1 FROM users WHERE email = ? LIMIT 1", (email,))
        return cur.fetchone() is not None


def create_user(
    db: Database,
    name: str,
    email: str,
    raw_password: str,
    email_token: str,
    email_token_expires_at: datetime,
) -> Dict:
    """
    Insert the user and its email verification row in one transaction.
    Raises DuplicateEmailError if the email is already registered, including
    when a concurrent signup won the race.
    """
    password_hash = hash_password(raw_password)
    if password_hash is None:
        raise ValueError("password could not be hashed")

    now = _now()
    userid = _new_userid()
    try:
        with db.connect() as conn:
            cur = conn.cursor()
            cur.execute(
                f"""
                INSERT INTO users (userid, name, email, passwordhash, created_at, updated_at, role, last_logout_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, NULL)
                ON CONFLICT (email) DO NOTHING
                RETURNING {PUBLIC_COLUMNS}
                """,
                (userid, name, email, password_hash, now, now, [USER_ROLE]),
            )
            row = cur.fetchone()
            if not row:
                raise DuplicateEmailError(email)
            cur.execute(
                """
                INSERT INTO user_verification (userid, email_token, email_token_expires_at, email_verified_status)
                VALUES (?, ?, ?, FALSE)
                """,
                (userid, email_token, email_token_expires_at),
            )
    except Exception as exc:
        if is_unique_violation(exc):
            raise DuplicateEmailError(email) from exc
        raise
    return dict(row)


def list_users(db: Database) -> List[Dict]:
    with db.connect() as conn:
        cur = conn.cursor()
        cur.execute(f"SELECT {PUBLIC_COLUMNS} FROM users ORDER BY created_at, userid")
        return [dict(r) for r in cur.fetchall()]


def get_user_by_email(db: Database, email: str) -> Optional[Dict]:
    with db.connect() as conn:
        cur = conn.cursor()
        cur.execute(
            f"SELECT {PUBLIC_COLUMNS}, passwordhash, last_logout_at FROM users WHERE email = ? LIMIT 1",
            (email,),
        )
        row = cur.fetchone()
    return dict(row) if row else None


def get_user_by_id(db: Database, userid: str) -> Optional[Dict]:
    with db.connect() as conn:
        cur = conn.cursor()
        cur.execute(
            f"SELECT {PUBLIC_COLUMNS}, passwordhash, last_logout_at FROM users WHERE userid = ? LIMIT 1",
            (userid,),
        )
        row = cur.fetchone()
    return dict(row) if row else None


def set_last_logout(db: Database, userid: str, now: datetime | None = None) -> datetime:
    """Move the logout cutoff forward; tokens issued before it stop working."""
    now = now or _now()
    with db.connect() as conn:
        cur = conn.cursor()
        cur.execute("UPDATE users SET last_logout_at = ? WHERE userid = ?", (now, userid))
    return now


def update_basic_fields(db: Database, userid: str, patch: UserPatch) -> Optional[Dict]:
    if patch.is_empty():
        raise NoUpdateFieldsError("no fields to update")

    columns, values = [], []
    for column, value in patch.items():
        columns.append(f"{column} = ?")
        values.append(value)
    columns.append("updated_at = ?")
    values.append(_now())
    values.append(userid)

    with db.connect() as conn:
        cur = conn.cursor()
        cur.execute(
            f"UPDATE users SET {', '.join(columns)} WHERE userid = ? RETURNING {PUBLIC_COLUMNS}",
            values,
        )
        row = cur.fetchone()
    return dict(row) if row else None


def update_password_hash(cur, userid: str, raw_password: str, now: datetime) -> None:
    password_hash = hash_password(raw_password)
    if password_hash is None:
        raise ValueError("password could not be hashed")
    cur.execute(
        "UPDATE users SET passwordhash = ?, updated_at = ? WHERE userid = ?",
        (password_hash, now, userid),
    )


def change_password(db: Database, userid: str, current_password: str, new_password: str) -> bool:
    """
    Re-check the current password, then store the new one and move the logout
    cutoff so every existing session ends. False when the check fails.
    """
    user = get_user_by_id(db, userid)
    if not user or not verify_password(current_password, user["passwordhash"]):
        return False

    now = _now()
    with db.connect() as conn:
        cur = conn.cursor()
        update_password_hash(cur, userid, new_password, now)
        cur.execute("UPDATE users SET last_logout_at = ? WHERE userid = ?", (now, userid))
    return True


__all__ = [
    "USER_ROLE",
    "ADMIN_ROLE",
    "UserPatch",
    "exists_by_email",
    "create_user",
    "list_users",
    "get_user_by_email",
    "get_user_by_id",
    "set_last_logout",
    "update_basic_fields",
    "update_password_hash",
    "change_password",
]
