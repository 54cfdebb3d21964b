"""
AccountStore: the storage surface the HTTP layer talks to.

Wraps the per-table helpers in core.db.users around one Database handle and
owns code generation so every issued code uses the configured validity window.
"""
from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Tuple

from core.db import users
from core.db.base import Database
from core.db.schema import init_db
from core.db.users import UserPatch, expiry_timestamp, new_code


class AccountStore:
    def __init__(self, db: Database, code_expiry_minutes: float = 1):
        self.db = db
        self.code_expiry_minutes = code_expiry_minutes

    def _fresh_code(self):
        return new_code(), expiry_timestamp(self.code_expiry_minutes)

    def init_schema(self) -> None:
        init_db(self.db)

    # --- users ---
    def exists_by_email(self, email: str) -> bool:
        return users.exists_by_email(self.db, email)

    def create_user(self, name: str, email: str, raw_password: str) -> Tuple[Dict, str]:
        code, expires_at = self._fresh_code()
        user = users.create_user(self.db, name, email, raw_password, code, expires_at)
        return user, code

    def list_users(self) -> List[Dict]:
        return users.list_users(self.db)

    def get_user_by_email(self, email: str) -> Optional[Dict]:
        return users.get_user_by_email(self.db, email)

    def get_user_by_id(self, userid: str) -> Optional[Dict]:
        return users.get_user_by_id(self.db, userid)

    def set_last_logout(self, userid: str, now=None):
        return users.set_last_logout(self.db, userid, now)

    def update_basic_fields(self, userid: str, patch: UserPatch) -> Optional[Dict]:
        return users.update_basic_fields(self.db, userid, patch)

    def change_password(self, userid: str, current_password: str, new_password: str) -> bool:
        return users.change_password(self.db, userid, current_password, new_password)

    # --- email verification ---
    def is_email_verified(self, userid: str) -> bool:
        return users.is_email_verified(self.db, userid)

    def check_email_token(self, userid: str, code: str) -> bool:
        return users.check_email_token(self.db, userid, code)

    def mark_email_verified(self, userid: str) -> None:
        users.mark_email_verified(self.db, userid)

    def regenerate_email_token(self, userid: str) -> Optional[str]:
        code, expires_at = self._fresh_code()
        if not users.regenerate_email_token(self.db, userid, code, expires_at):
            return None
        return code

    # --- email change ---
    def init_email_change(self, userid: str, new_email: str) -> str:
        code, expires_at = self._fresh_code()
        users.init_email_change(self.db, userid, new_email, code, expires_at)
        return code

    def verify_email_change(self, userid: str, code: str) -> Optional[str]:
        return users.verify_email_change(self.db, userid, code)

    # --- password reset ---
    def init_password_reset(self, email: str) -> Tuple[Dict, str]:
        code, expires_at = self._fresh_code()
        user = users.init_password_reset(self.db, email, code, expires_at)
        return user, code

    def verify_password_reset_code(self, email: str, code: str) -> bool:
        return users.verify_password_reset_code(self.db, email, code)

    def apply_password_reset(self, email: str, raw_password: str) -> bool:
        return users.apply_password_reset(self.db, email, raw_password)

    # --- availability ---
    def replace_availability(self, userid: str, slots: Iterable[Dict]) -> int:
        return users.replace_availability(self.db, userid, slots)

    def get_availability(self, userid: str) -> List[Dict]:
        return users.get_availability(self.db, userid)


__all__ = ["AccountStore"]
