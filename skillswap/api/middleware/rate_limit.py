"""
Fixed-window rate limiting for the versioned API.

Callers are keyed by their identity provider id when a valid token is
present, else by client IP. Mutating requests draw from a smaller budget
than reads. Rejected requests get a 429 with Retry-After.
"""

import math
import time
from dataclasses import dataclass
from typing import Callable, Dict, Tuple

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from skillswap.config import get_settings
from skillswap.kernel.identity.jwt import extract_access_token, verify_identity_token
from skillswap.logging_config import get_logger

logger = get_logger(__name__)

WRITE_METHODS = frozenset({"POST", "PATCH", "PUT", "DELETE"})
WINDOW_SECONDS = 60
STALE_AFTER_SECONDS = 2 * 60 * 60


@dataclass(frozen=True)
class RateDecision:
    allowed: bool
    limit: int
    remaining: int
    retry_after: int = 0


class InMemoryRateLimitStore:
    """Counters per "scope:caller" key, each with the start of its window."""

    def __init__(self):
        self._windows: Dict[str, Tuple[int, float]] = {}

    def hit(self, scope: str, caller: str, limit: int, window_seconds: int) -> RateDecision:
        """Count one request unless the caller's window is already full."""
        key = f"{scope}:{caller}"
        now = time.monotonic()
        count, opened = self._windows.get(key, (0, now))

        if now - opened >= window_seconds:
            count, opened = 0, now

        if count >= limit:
            wait = math.ceil(window_seconds - (now - opened))
            return RateDecision(False, limit, 0, max(wait, 1))

        self._windows[key] = (count + 1, opened)
        return RateDecision(True, limit, limit - count - 1)

    def check_and_incr(self, scope: str, caller: str, limit: int, window_seconds: int) -> bool:
        return self.hit(scope, caller, limit, window_seconds).allowed

    def prune(self, max_age_seconds: int = STALE_AFTER_SECONDS) -> int:
        now = time.monotonic()
        stale = [key for key, (_, opened) in self._windows.items() if now - opened > max_age_seconds]
        for key in stale:
            del self._windows[key]
        return len(stale)

    def reset(self) -> None:
        self._windows.clear()


_store = InMemoryRateLimitStore()


def get_store() -> InMemoryRateLimitStore:
    return _store


def _caller_key(request: Request) -> str:
    token = extract_access_token(request.headers, request.cookies)
    claims = verify_identity_token(token) if token else None
    if claims:
        return f"user:{claims.sub}"

    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return f"ip:{forwarded.split(',')[0].strip()}"
    return f"ip:{request.client.host if request.client else 'unknown'}"


def _budget(method: str) -> Tuple[str, int]:
    settings = get_settings()
    if method in WRITE_METHODS:
        return "write", settings.rate_limit_write_per_minute
    return "read", settings.rate_limit_api_per_minute


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Apply the read/write budgets to requests under the API prefix."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        settings = get_settings()
        if not settings.rate_limit_enabled or not request.url.path.startswith(settings.api_v1_prefix):
            return await call_next(request)

        store = get_store()
        store.prune()

        scope, limit = _budget(request.method)
        caller = _caller_key(request)
        decision = store.hit(scope, caller, limit, WINDOW_SECONDS)

        if not decision.allowed:
            logger.warning(
                "Rate limit exceeded",
                extra={"scope": scope, "caller": caller, "path": request.url.path},
            )
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={"detail": "Too many requests. Please try again later."},
                headers={
                    "Retry-After": str(decision.retry_after),
                    "X-RateLimit-Limit": str(decision.limit),
                    "X-RateLimit-Remaining": "0",
                },
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(decision.limit)
        response.headers["X-RateLimit-Remaining"] = str(decision.remaining)
        return response
