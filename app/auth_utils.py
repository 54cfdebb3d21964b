"""
Helpers for the auth cookie and the current-user lookup.
"""
from __future__ import annotations

import math
from datetime import datetime
from typing import Dict

from fastapi import Depends, Request
from fastapi.responses import Response

from app.config import Settings
from app.deps import get_settings, get_store, get_tokens
from app.errors import AUTH_REQUIRED, TOKEN_EXPIRED, AccountError
from app.tokens import TokenCodec, TokenInvalid
from core.database import AccountStore
from core.db.users import ADMIN_ROLE

AUTH_COOKIE_NAME = "access_token"
AUTH_COOKIE_PATH = "/"
AUTH_COOKIE_SAMESITE = "strict"


def _cookie_flags(settings: Settings) -> Dict:
    # httponly/secure are relaxed only for local development over plain http
    strict = not settings.is_local
    return {
        "path": AUTH_COOKIE_PATH,
        "httponly": strict,
        "secure": strict,
        "samesite": AUTH_COOKIE_SAMESITE,
    }


def set_auth_cookie(response: Response, token: str, settings: Settings) -> None:
    response.set_cookie(
        key=AUTH_COOKIE_NAME,
        value=token,
        max_age=settings.auth_token_ttl_seconds,
        **_cookie_flags(settings),
    )


def clear_auth_cookie(response: Response, settings: Settings) -> None:
    response.delete_cookie(AUTH_COOKIE_NAME, **_cookie_flags(settings))


def issued_before_logout(iat: int, last_logout_at: datetime | None) -> bool:
    """True when a token issued at `iat` predates the user's logout cutoff."""
    if last_logout_at is None:
        return False
    return iat < math.floor(last_logout_at.timestamp())


def get_current_user(
    request: Request,
    store: AccountStore = Depends(get_store),
    tokens: TokenCodec = Depends(get_tokens),
) -> Dict:
    """
    Resolve the access_token cookie to the token payload, or fail with 401.
    Tokens issued before the user's last logout are treated as revoked.
    """
    token = request.cookies.get(AUTH_COOKIE_NAME)
    if not token:
        raise AccountError(401, AUTH_REQUIRED)

    try:
        payload = tokens.verify(token)
    except TokenInvalid:
        raise AccountError(401, TOKEN_EXPIRED)

    iat = payload.get("iat")
    user = store.get_user_by_id(payload.get("userid")) if payload.get("userid") else None
    if not user or iat is None:
        raise AccountError(401, AUTH_REQUIRED)

    if issued_before_logout(iat, user.get("last_logout_at")):
        raise AccountError(401, AUTH_REQUIRED)

    request.state.user = payload
    return payload


def is_admin(user: Dict) -> bool:
    return ADMIN_ROLE in (user.get("role") or [])


__all__ = [
    "AUTH_COOKIE_NAME",
    "set_auth_cookie",
    "clear_auth_cookie",
    "issued_before_logout",
    "get_current_user",
    "is_admin",
]
