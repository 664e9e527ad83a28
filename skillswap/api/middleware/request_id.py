"""
Per-request correlation and access logging.

Every response carries an X-Request-ID. A well-formed id supplied by the
caller is reused so a client can follow one action through our logs; anything
else is replaced with a fresh UUID.
"""

import re
import time
import uuid
from typing import Callable, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from skillswap.logging_config import get_logger, request_id_var

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
SLOW_REQUEST_MS = 1000

# Client ids end up in log lines, so only plain tokens are accepted
_VALID_REQUEST_ID = re.compile(r"^[A-Za-z0-9._-]{8,64}$")


def resolve_request_id(incoming: Optional[str]) -> str:
    """Reuse a caller-supplied id when it looks sane, otherwise mint one."""
    if incoming and _VALID_REQUEST_ID.match(incoming):
        return incoming
    return str(uuid.uuid4())


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Tag the request with an id, echo it back and write one access line."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        request.state.request_id = request_id
        ctx_token = request_id_var.set(request_id)
        started = time.perf_counter()

        try:
            response = await call_next(request)
            elapsed_ms = round((time.perf_counter() - started) * 1000, 1)
            self._log_request(request, response, elapsed_ms)
        finally:
            request_id_var.reset(ctx_token)

        response.headers[REQUEST_ID_HEADER] = request_id
        return response

    @staticmethod
    def _log_request(request: Request, response: Response, elapsed_ms: float) -> None:
        # The auth dependency records the caller on request.state once the token checks out
        fields = {
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": elapsed_ms,
            "actor": getattr(request.state, "actor_id", None),
        }
        if elapsed_ms > SLOW_REQUEST_MS:
            logger.warning("Slow request %s %s", request.method, request.url.path, extra=fields)
        else:
            logger.debug("%s %s -> %s", request.method, request.url.path, response.status_code, extra=fields)
