"""
ASGI middleware.
"""

from skillswap.api.middleware.rate_limit import RateLimitMiddleware
from skillswap.api.middleware.request_id import RequestIdMiddleware

__all__ = [
    "RateLimitMiddleware",
    "RequestIdMiddleware",
]
