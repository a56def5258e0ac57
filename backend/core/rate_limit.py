"""Rate limiting middleware for API protection.

Per-IP sliding-window limits, configurable per endpoint group, with the
standard rate limit headers on every limited response.

Production note: the counter is per-process; a multi-instance deployment
needs a shared store.
"""

import time
import threading
from typing import Tuple

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from app.config import get_settings

# ─── Rate limit configuration ──────────────────────────────────────────────
# Format: { "group_name": (max_requests, window_seconds) }
RATE_LIMITS = {
    "auth": (10, 60),           # 10 req/min for login and register
    "checkout": (20, 60),       # 20 req/min for starting payments
    "write": (60, 60),          # 60 req/min for POST/PUT/DELETE
    "read": (200, 60),          # 200 req/min for GET
    "default": (120, 60),
}

AUTH_PATHS = ("/auth/login", "/auth/register")


def _classify_request(method: str, path: str) -> str:
    """Classify a request into a rate limit group."""
    if path.endswith(AUTH_PATHS):
        return "auth"
    if "/checkout" in path:
        return "checkout"
    if method in ("POST", "PUT", "PATCH", "DELETE"):
        return "write"
    if method == "GET":
        return "read"
    return "default"


class SlidingWindowCounter:
    """Thread-safe sliding window rate counter.

    Uses a two-bucket sliding window algorithm for accuracy
    without per-request storage overhead.
    """

    def __init__(self, max_keys: int = 50_000):
        self._lock = threading.Lock()
        # Key: (identifier, group) -> (current_count, prev_count, current_window_start)
        self._windows: dict[Tuple[str, str], Tuple[int, int, float]] = {}
        self._max_keys = max_keys

    def check_and_increment(
        self, key: str, group: str, max_requests: int, window_seconds: int
    ) -> Tuple[bool, int, int, float]:
        """Check if request is allowed and increment counter.

        Returns:
            (allowed, current_count, limit, retry_after_seconds)
        """
        now = time.monotonic()
        bucket_key = (key, group)

        with self._lock:
            entry = self._windows.get(bucket_key)

            if entry is None:
                # First request
                self._windows[bucket_key] = (1, 0, now)
                self._maybe_cleanup()
                return (True, 1, max_requests, 0)

            current_count, prev_count, window_start = entry
            elapsed = now - window_start

            if elapsed >= window_seconds:
                # New window
                if elapsed >= window_seconds * 2:
                    # Previous window expired too
                    self._windows[bucket_key] = (1, 0, now)
                else:
                    # Roll over: current becomes prev
                    self._windows[bucket_key] = (1, current_count, now)
                return (True, 1, max_requests, 0)

            # Weighted count: prev * remaining_fraction + current
            weight = 1 - (elapsed / window_seconds)
            estimated = prev_count * weight + current_count

            if estimated >= max_requests:
                retry_after = window_seconds - elapsed
                return (False, int(estimated), max_requests, retry_after)

            # Allowed, increment
            self._windows[bucket_key] = (current_count + 1, prev_count, window_start)
            return (True, int(estimated) + 1, max_requests, 0)

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()

    def _maybe_cleanup(self):
        """Evict oldest entries if memory bound exceeded."""
        if len(self._windows) > self._max_keys:
            # Remove oldest 20%
            to_remove = max(1, int(self._max_keys * 0.2))
            sorted_keys = sorted(
                self._windows.keys(),
                key=lambda k: self._windows[k][2],
            )
            for k in sorted_keys[:to_remove]:
                del self._windows[k]


# Singleton counter
_counter = SlidingWindowCounter()


class RateLimitMiddleware(BaseHTTPMiddleware):
    """FastAPI middleware for rate limiting.

    Adds on every limited response:
    - X-RateLimit-Limit
    - X-RateLimit-Remaining
    - X-RateLimit-Reset
    - Retry-After (on 429)

    Skips rate limiting for health checks and the payment provider's
    webhook, which retries on its own schedule.
    """

    SKIP_PATHS = {"/api/health", "/api/health/", "/api/health/ready"}
    SKIP_PREFIXES = ("/api/v1/webhooks/",)

    async def dispatch(self, request: Request, call_next):
        # Skip for non-rate-limited paths
        path = request.url.path
        if (
            not get_settings().RATE_LIMIT_ENABLED
            or path in self.SKIP_PATHS
            or path.startswith(self.SKIP_PREFIXES)
        ):
            return await call_next(request)

        # Identify caller by client IP
        identifier = self._get_identifier(request)
        group = _classify_request(request.method, path)
        max_req, window = RATE_LIMITS.get(group, RATE_LIMITS["default"])

        allowed, current, limit, retry_after = _counter.check_and_increment(
            identifier, group, max_req, window
        )

        if not allowed:
            return JSONResponse(
                status_code=429,
                content={
                    "detail": "Rate limit exceeded",
                    "retry_after": round(retry_after, 1),
                },
                headers={
                    "X-RateLimit-Limit": str(limit),
                    "X-RateLimit-Remaining": "0",
                    "X-RateLimit-Reset": str(int(retry_after)),
                    "Retry-After": str(max(1, int(retry_after))),
                },
            )

        response = await call_next(request)

        # Add rate limit headers
        response.headers["X-RateLimit-Limit"] = str(limit)
        response.headers["X-RateLimit-Remaining"] = str(max(0, limit - current))
        response.headers["X-RateLimit-Reset"] = str(window)

        return response

    def _get_identifier(self, request: Request) -> str:
        """Identify the caller by direct client IP.

        X-Forwarded-For is only consulted when no client address is
        available, since it is caller-controlled.
        """
        if request.client and request.client.host:
            return f"ip:{request.client.host}"

        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            return f"ip:{forwarded.split(',')[0].strip()}"

        return "ip:unknown"
