"""
Logging setup for the SkillSwap API.

Development gets one readable line per record; production gets one JSON
object per line. Either way each record is tagged with the request it belongs
to and, once the token is verified, the identity provider id of the caller.

    from skillswap.logging_config import get_logger
    logger = get_logger(__name__)
    logger.info("Exchange accepted", extra={"exchange_id": str(exchange.id)})
"""

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
actor_id_var: ContextVar[Optional[str]] = ContextVar("actor_id", default=None)

# Record attribute -> context var it is read from
_CONTEXT_FIELDS: Dict[str, ContextVar] = {
    "request_id": request_id_var,
    "actor_id": actor_id_var,
}

# Whatever a bare LogRecord carries is not "extra" and stays out of JSON output
_STANDARD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
    "message",
    "asctime",
    "taskName",
    *_CONTEXT_FIELDS,
}

_DEV_FORMAT = "%(asctime)s %(levelname)-5s %(name)s [req=%(request_id)s actor=%(actor_id)s] %(message)s"

_NOISY_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "aiosqlite", "httpx")


class CorrelationFilter(logging.Filter):
    """Stamp request and actor ids onto records, "-" when outside a request."""

    def filter(self, record: logging.LogRecord) -> bool:
        for attr, var in _CONTEXT_FIELDS.items():
            setattr(record, attr, var.get() or "-")
        return True


class JsonFormatter(logging.Formatter):
    """Flat JSON: fixed keys first, then correlation ids, then any extra= fields."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        entry.update(
            (attr, getattr(record, attr))
            for attr in _CONTEXT_FIELDS
            if getattr(record, attr, "-") != "-"
        )
        entry.update(
            (key, _jsonable(value))
            for key, value in vars(record).items()
            if key not in _STANDARD_ATTRS and value is not None
        )
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry)


def _jsonable(value: Any) -> Any:
    try:
        json.dumps(value)
    except (TypeError, ValueError):
        return str(value)
    return value


def configure_logging(
    *,
    log_level: str = "INFO",
    environment: str = "development",
    debug: bool = False,
) -> None:
    """
    Install a single stderr handler on the root logger.

    Safe to call more than once; earlier handlers are replaced.
    """
    level = logging.DEBUG if debug else logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    handler = logging.StreamHandler(sys.stderr)
    handler.addFilter(CorrelationFilter())
    if environment == "production":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(_DEV_FORMAT, datefmt="%H:%M:%S"))

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
