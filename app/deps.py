"""
FastAPI dependencies exposing the collaborators handed to create_app().
"""
from __future__ import annotations

from typing import Optional

from fastapi import Request

from app.config import Settings
from app.email_utils import MailSender
from app.errors import RATE_LIMITED, AccountError, request_id_of
from app.security import client_key
from app.tokens import TokenCodec
from core.database import AccountStore


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> AccountStore:
    return request.app.state.store


def get_tokens(request: Request) -> TokenCodec:
    return request.app.state.tokens


def get_mailer(request: Request) -> Optional[MailSender]:
    return request.app.state.mailer


def get_request_id(request: Request) -> str:
    return request_id_of(request)


def auth_rate_limit(request: Request) -> None:
    """Tighter per-client limit for the unauthenticated credential routes."""
    settings = request.app.state.settings
    limiter = request.app.state.limiter
    key = f"auth:{request.url.path}:{client_key(request)}"
    if not limiter.allow_request(key, limit=settings.auth_rate_limit, window_seconds=60):
        raise AccountError(429, RATE_LIMITED)
