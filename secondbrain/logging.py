from __future__ import annotations

"""Application-wide logging configuration.

Provides a JSON formatter with a minimal, consistent set of fields:
- timestamp (UTC ISO8601), level, logger, service, environment, message
- Supports structured extras via `logger.info(msg, extra={...})` which are
  merged into the JSON.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict

from secondbrain.core.settings import get_settings

# Attributes every LogRecord carries; anything else came in via `extra=`.
_RESERVED = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime", "taskName"}


class _JsonFormatter(logging.Formatter):
    """One-line JSON log formatter with stable keys and UTC timestamps."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        settings = get_settings()
        dt = datetime.fromtimestamp(record.created, tz=timezone.utc)
        base: Dict[str, Any] = {
            "timestamp": dt.strftime("%Y-%m-%dT%H:%M:%S.%fZ"),
            "level": record.levelname,
            "logger": record.name,
            "service": settings.service_name,
            "environment": settings.environment,
            "message": record.getMessage(),
        }
        for k, v in record.__dict__.items():
            if k in _RESERVED or k in base:
                continue
            base[k] = v
        if record.exc_info:
            etype = getattr(record.exc_info[0], "__name__", str(record.exc_info[0]))
            base["error"] = {
                "class": etype,
                "message": str(record.exc_info[1])[:500],
            }
        return json.dumps(base, ensure_ascii=False, default=repr)


def setup_logging() -> None:
    """Configure root logger to output one-line JSON logs."""

    settings = get_settings()
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    handler = logging.StreamHandler()
    handler.setFormatter(_JsonFormatter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)


__all__ = ["setup_logging"]
