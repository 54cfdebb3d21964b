"""
Password hashing and verification.
"""
from __future__ import annotations

from typing import Optional

import bcrypt

DEFAULT_COST = 10


def hash_password(raw_password: str, cost: int = DEFAULT_COST) -> Optional[str]:
    """Salted bcrypt hash, or None when bcrypt rejects the input."""
    try:
        return bcrypt.hashpw(raw_password.encode("utf-8"), bcrypt.gensalt(rounds=cost)).decode("utf-8")
    except ValueError:
        return None


def verify_password(raw_password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(raw_password.encode("utf-8"), password_hash.encode("utf-8"))
    except Exception:
        return False


__all__ = ["DEFAULT_COST", "hash_password", "verify_password"]
