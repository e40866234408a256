import logging
import threading
import time
from typing import Dict, Optional, Tuple

import redis
from fastapi import Request

from app.core.config import settings
from app.core.security import decode_token

logger = logging.getLogger(__name__)


class MemoryRateLimitStore:
    """Fixed-window counters kept in process memory."""

    def __init__(self):
        self._lock = threading.Lock()
        self._windows: Dict[str, Tuple[int, float]] = {}

    def hit(self, key: str, window_seconds: int) -> int:
        now = time.monotonic()
        with self._lock:
            count, reset_at = self._windows.get(key, (0, 0.0))
            if now >= reset_at:
                count, reset_at = 0, now + window_seconds
            count += 1
            self._windows[key] = (count, reset_at)
            if len(self._windows) > 10000:
                self._purge(now)
            return count

    def _purge(self, now: float):
        expired = [k for k, (_, reset_at) in self._windows.items() if now >= reset_at]
        for k in expired:
            del self._windows[k]

    def reset(self):
        with self._lock:
            self._windows.clear()


class RedisRateLimitStore:
    def __init__(self, url: str):
        self.client = redis.Redis.from_url(url)

    def hit(self, key: str, window_seconds: int) -> int:
        # the window TTL is set in the same MULTI as the increment
        pipe = self.client.pipeline(transaction=True)
        pipe.set(key, 0, ex=window_seconds, nx=True)
        pipe.incr(key)
        _, count = pipe.execute()
        return int(count)

    def reset(self):
        pass


class RateLimiter:
    def __init__(self, limit: int, window_seconds: int, store=None, prefix: str = "rl"):
        self.limit = limit
        self.window_seconds = window_seconds
        self.store = store or MemoryRateLimitStore()
        self.prefix = prefix

    def allow(self, key: str) -> Tuple[bool, int]:
        """Count one request for ``key``; return whether it is allowed and how many remain."""
        try:
            count = self.store.hit(f"{self.prefix}:{key}", self.window_seconds)
        except redis.RedisError as e:
            # fail open
            logger.error(f"Rate limit store unavailable: {e}")
            return True, self.limit
        return count <= self.limit, max(0, self.limit - count)

    def reset(self):
        self.store.reset()


def _build_store():
    if settings.RATE_LIMIT_BACKEND == "redis":
        return RedisRateLimitStore(settings.REDIS_URL)
    return MemoryRateLimitStore()


def client_key(request: Request) -> str:
    """User id for a valid bearer token, otherwise the client IP."""
    auth = request.headers.get("Authorization", "")
    if auth.lower().startswith("bearer "):
        payload = decode_token(auth[7:].strip())
        if payload:
            return f"user:{payload['sub']}"
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return f"ip:{forwarded.split(',')[0].strip()}"
    host: Optional[str] = request.client.host if request.client else None
    return f"ip:{host or 'unknown'}"


api_limiter = RateLimiter(settings.RATE_LIMIT_REQUESTS, settings.RATE_LIMIT_WINDOW_SECONDS, _build_store(), "rl:api")
auth_limiter = RateLimiter(settings.AUTH_RATE_LIMIT_REQUESTS, settings.RATE_LIMIT_WINDOW_SECONDS, _build_store(), "rl:auth")
