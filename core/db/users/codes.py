"""
Short-lived verification / reset codes.
"""
from __future__ import annotations

import secrets
import string
from datetime import datetime, timedelta, timezone

CODE_LENGTH = 6
CODE_ALPHABET = string.digits + string.ascii_uppercase
DEFAULT_VALID_MINUTES = 1.0


def new_code(length: int = CODE_LENGTH, alphabet: str = CODE_ALPHABET) -> str:
    return "".join(secrets.choice(alphabet) for _ in range(length))


def parse_expiry_minutes(raw) -> float:
    """Configured validity window in minutes; 1 when absent or not a number."""
    if raw is None or isinstance(raw, bool):
        return DEFAULT_VALID_MINUTES
    try:
        minutes = float(raw)
    except (TypeError, ValueError):
        return DEFAULT_VALID_MINUTES
    if minutes != minutes:  # NaN
        return DEFAULT_VALID_MINUTES
    return minutes


def expiry_timestamp(valid_minutes, now: datetime | None = None) -> datetime:
    now = now or datetime.now(timezone.utc)
    return now + timedelta(seconds=parse_expiry_minutes(valid_minutes) * 60)


__all__ = [
    "CODE_LENGTH",
    "CODE_ALPHABET",
    "DEFAULT_VALID_MINUTES",
    "new_code",
    "parse_expiry_minutes",
    "expiry_timestamp",
]
