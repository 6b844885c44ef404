"""
JSON line logging with a per-request correlation id.

Usage:
    from utils.logging_utils import setup_logging, correlation_id_ctx

    setup_logging()  # once, at app startup
    correlation_id_ctx.set("some-uuid")
"""
import json
import logging
import sys
import time
from contextvars import ContextVar
from typing import Any, Optional

from config.settings import settings

correlation_id_ctx: ContextVar[str] = ContextVar("correlation_id", default="")

# extra={...} keys that never reach the log output
REDACTED_KEYS = frozenset({
    "password",
    "password_hash",
    "token",
    "authorization",
    "cookie",
    "set-cookie",
    "ssn",
    "dob",
})

# Attributes every LogRecord has; anything else came in through extra=
_RESERVED_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}


class JsonFormatter(logging.Formatter):
    """Emit one JSON object per log record.

    Always present: timestamp, level, logger, message, service, env,
    correlation_id. Fields passed through ``extra`` are merged in unless
    their key is in REDACTED_KEYS. Records with exc_info get an ``exc``
    field (type and message only; no traceback).
    """

    def __init__(self, service: Optional[str] = None, env: Optional[str] = None) -> None:
        super().__init__()
        self.service = service or settings.service_name
        self.env = env or settings.env

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": self._utc_iso(record.created),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
            "service": self.service,
            "env": self.env,
            "correlation_id": correlation_id_ctx.get(""),
        }

        for key, value in record.__dict__.items():
            if key in _RESERVED_ATTRS or key.startswith("_"):
                continue
            if key.lower() in REDACTED_KEYS:
                continue
            payload[key] = value

        if record.exc_info:
            exc_type, exc_val, _ = record.exc_info
            payload["exc"] = {
                "type": exc_type.__name__ if exc_type else "Unknown",
                "detail": str(exc_val),
            }

        return json.dumps(payload, ensure_ascii=False, default=str)

    @staticmethod
    def _utc_iso(created: float) -> str:
        t = time.gmtime(created)
        ms = int((created % 1) * 1000)
        return (
            f"{t.tm_year:04d}-{t.tm_mon:02d}-{t.tm_mday:02d}"
            f"T{t.tm_hour:02d}:{t.tm_min:02d}:{t.tm_sec:02d}.{ms:03d}Z"
        )


def setup_logging(level: Optional[str] = None) -> None:
    """Configure the root logger with the JSON formatter.

    Safe to call more than once; the handler is only installed the first time.
    """
    root = logging.getLogger()
    root.setLevel((level or settings.log_level).upper())

    if any(isinstance(h.formatter, JsonFormatter) for h in root.handlers):
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())
    root.addHandler(handler)
