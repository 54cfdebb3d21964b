"""
Signed access tokens (HS256 JWT).
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

import jwt

ALGO = "HS256"
CLAIMS = ("userid", "email", "name", "role")


class TokenInvalid(Exception):
    """Token is expired, tampered with, or not a JWT at all."""


class TokenCodec:
    def __init__(self, secret: str, ttl_seconds: int = 24 * 60 * 60):
        if not secret:
            raise ValueError("token secret must not be empty")
        self._secret = secret
        self.ttl_seconds = ttl_seconds

    def issue(self, user: Dict, now: Optional[datetime] = None) -> str:
        now = now or datetime.now(timezone.utc)
        payload = {key: user.get(key) for key in CLAIMS}
        payload["iat"] = int(now.timestamp())
        payload["exp"] = int((now + timedelta(seconds=self.ttl_seconds)).timestamp())
        return jwt.encode(payload, self._secret, algorithm=ALGO)

    def verify(self, token: str) -> Dict:
        try:
            return jwt.decode(token, self._secret, algorithms=[ALGO])
        except jwt.PyJWTError as exc:
            raise TokenInvalid("expired-or-invalid") from exc


__all__ = ["ALGO", "TokenCodec", "TokenInvalid"]
