# backend/app/logging_config.py
from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from .config import settings
from .middleware.request_id import get_request_id

# extras that services pass via log.info(..., extra={...})
CONTEXT_FIELDS = ("user_id", "user_type", "case_id", "payment_id", "conversation_id", "task")

# chatty third-party loggers
QUIET_LOGGERS = {
    "sqlalchemy.engine": "WARNING",
    "stripe": "WARNING",
    "azure": "WARNING",
    "celery.app.trace": "INFO",
}


def _context(record: logging.LogRecord) -> dict[str, Any]:
    out: dict[str, Any] = {}
    rid = get_request_id()
    if rid:
        out["request_id"] = rid
    for k in CONTEXT_FIELDS:
        if hasattr(record, k):
            out[k] = getattr(record, k)
    return out


class JsonFormatter(logging.Formatter):
    """One JSON object per line, tagged with the service, env and request id."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "service": "utleieskade-api",
            "env": settings.app_env,
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_context(record),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


class PlainFormatter(logging.Formatter):
    def __init__(self) -> None:
        super().__init__("%(asctime)s %(levelname)-7s %(name)s: %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        ctx = _context(record)
        if ctx:
            line += " " + " ".join(f"{k}={v}" for k, v in ctx.items())
        return line


def configure_logging() -> None:
    level = (settings.log_level or "INFO").upper()

    root = logging.getLogger()
    root.setLevel(level)
    # uvicorn --reload calls create_app again
    for h in list(root.handlers):
        root.removeHandler(h)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(JsonFormatter() if settings.log_json else PlainFormatter())
    root.addHandler(handler)

    logging.getLogger("uvicorn.access").setLevel(level)
    for name, default in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(default)
