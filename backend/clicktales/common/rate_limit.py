"""
Sliding-window rate limiting for the authentication endpoints.

State is per process; behind several workers each worker enforces its own window.
"""

from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional
import logging

from fastapi import Request

from clicktales.common.exceptions import RateLimitError

logger = logging.getLogger(__name__)


class RateLimiter:
    def __init__(self, max_attempts: int, window_seconds: int) -> None:
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds
        self._attempts: Dict[str, List[datetime]] = {}
        self._last_prune: Optional[datetime] = None

    def allow(self, key: str, now: Optional[datetime] = None) -> bool:
        moment = now or datetime.now(timezone.utc)
        items = self._attempts.get(key, [])
        cutoff = moment - timedelta(seconds=self.window_seconds)
        filtered = [ts for ts in items if ts >= cutoff]
        if len(filtered) >= self.max_attempts:
            self._attempts[key] = filtered
            return False
        filtered.append(moment)
        self._attempts[key] = filtered
        self._prune(cutoff)
        return True

    def _prune(self, cutoff: datetime) -> None:
        """Drop keys whose newest attempt has left the window; runs at most once per window."""
        if self._last_prune is not None and self._last_prune >= cutoff:
            return
        self._last_prune = cutoff + timedelta(seconds=self.window_seconds)
        stale = [key for key, items in self._attempts.items() if not items or items[-1] < cutoff]
        for key in stale:
            del self._attempts[key]

    def __len__(self) -> int:
        return len(self._attempts)

    def reset(self, key: Optional[str] = None) -> None:
        if key is None:
            self._attempts.clear()
        else:
            self._attempts.pop(key, None)


def client_key(request: Request) -> str:
    host = request.client.host if request.client else "unknown"
    return f"{host}:{request.url.path}"


def auth_rate_limit(key_func: Callable[[Request], str] = client_key):
    """
    Build a dependency that rejects a request once its key exceeds the
    limiter stored on ``app.state.auth_limiter``.
    """

    async def dependency(request: Request) -> None:
        limiter: RateLimiter = request.app.state.auth_limiter
        key = key_func(request)
        if not limiter.allow(key):
            logger.warning(f"Rate limit exceeded for {key}")
            raise RateLimitError(
                "Too many authentication attempts from this IP, please try again later."
            )

    return dependency
