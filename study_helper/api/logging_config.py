"""Structured logging configuration.

Environment variables:
    LOG_FORMAT  – "json" for JSON lines, "text" for human-readable (default: "text")
    LOG_LEVEL   – root log level name (default: "INFO")

Every handler carries ``RequestIdFilter`` so both formats can tie a
security event to the request that caused it.
"""
from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Optional

from . import settings as _settings
from .request_context import RequestIdFilter

TEXT_FORMAT = "%(asctime)s %(levelname)-7s [%(name)s] [%(request_id)s] %(message)s"
_FORMATS = ("text", "json")


class _JsonFormatter(logging.Formatter):
    """Emit one JSON object per log record."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        rid = getattr(record, "request_id", None)
        if rid:
            payload["request_id"] = rid
        if record.exc_info and record.exc_info[1] is not None:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def configure_logging(*, fmt: Optional[str] = None, level: Optional[str] = None) -> None:
    """Install a single stderr handler on the root logger.

    Arguments override LOG_FORMAT / LOG_LEVEL. Calling it again replaces
    the handler instead of stacking another one.
    """
    fmt = (fmt or _settings.log_format()).strip().lower()
    level_name = (level or _settings.log_level()).strip().upper()
    root = logging.getLogger()
    root.setLevel(getattr(logging, level_name, logging.INFO))

    for h in root.handlers[:]:
        root.removeHandler(h)

    handler = logging.StreamHandler(sys.stderr)
    handler.addFilter(RequestIdFilter())
    handler.setFormatter(_JsonFormatter() if fmt == "json" else logging.Formatter(TEXT_FORMAT))
    root.addHandler(handler)

    if fmt not in _FORMATS:
        logging.getLogger(__name__).warning("unknown LOG_FORMAT %r, using text", fmt)
