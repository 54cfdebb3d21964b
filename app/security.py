"""
In-memory rate limiting and response security headers.
"""
from __future__ import annotations

import threading
import time
from typing import Dict, List, Tuple

from fastapi import Request

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Content-Security-Policy": "default-src 'none'; frame-ancestors 'none'",
    "Referrer-Policy": "no-referrer",
}


class SlidingWindowLimiter:
    """
    Sliding-window rate limit stored in memory, one window per key.
    Each process keeps its own counts. Keys idle for longer than the widest
    window seen are dropped every `sweep_every` seconds.
    """

    def __init__(self, sweep_every: float = 60):
        self._state: Dict[str, List[float]] = {}
        self._lock = threading.Lock()
        self.sweep_every = sweep_every
        self._max_window = 0.0
        self._last_sweep = time.time()

    def __len__(self) -> int:
        return len(self._state)

    def allow_request(self, key: str, limit: int = 5, window_seconds: int = 60) -> bool:
        allowed, _ = self.allow_request_with_remaining(key, limit=limit, window_seconds=window_seconds)
        return allowed

    def allow_request_with_remaining(self, key: str, limit: int = 5, window_seconds: int = 60) -> Tuple[bool, int]:
        """Returns (allowed, remaining_after)."""
        now = time.time()
        window_start = now - window_seconds
        with self._lock:
            self._max_window = max(self._max_window, window_seconds)
            if now - self._last_sweep >= self.sweep_every:
                self._sweep(now)
            history = [t for t in self._state.get(key, []) if t > window_start]
            if len(history) >= limit:
                self._state[key] = history
                return False, 0
            history.append(now)
            self._state[key] = history
            return True, max(0, limit - len(history))

    def _sweep(self, now: float) -> None:
        cutoff = now - self._max_window
        for key in [k for k, history in self._state.items() if not history or history[-1] <= cutoff]:
            del self._state[key]
        self._last_sweep = now

    def reset(self) -> None:
        with self._lock:
            self._state.clear()


def client_key(request: Request) -> str:
    return request.client.host if request and request.client else "unknown"


def apply_security_headers(response) -> None:
    for name, value in SECURITY_HEADERS.items():
        response.headers.setdefault(name, value)


__all__ = [
    "SECURITY_HEADERS",
    "SlidingWindowLimiter",
    "client_key",
    "apply_security_headers",
]
