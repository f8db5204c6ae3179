# backend/app/logging_config.py
from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any, Optional

from .middleware.request_id import get_request_id

# Copied from the record onto the JSON line when a caller passes them via `extra=`.
STRUCTURED_EXTRAS = (
    "user_id",
    "user_email",
    "inspection_id",
    "property_id",
    "recurring_inspection_id",
    "task_id",
    "method",
    "path",
    "status_code",
    "latency_ms",
)


class JsonFormatter(logging.Formatter):
    """One JSON object per line: ts, level, logger, message, request_id, extras, exc_info."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        rid = getattr(record, "request_id", None) or get_request_id()
        if rid:
            payload["request_id"] = rid

        for k in STRUCTURED_EXTRAS:
            v = getattr(record, k, None)
            if v is not None:
                payload[k] = v

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


def _level(env_name: str, default: str) -> str:
    return (os.getenv(env_name) or default).strip().upper()


def configure_logging(level: Optional[str] = None) -> None:
    level = (level or _level("LOG_LEVEL", "INFO")).upper()

    root = logging.getLogger()
    root.setLevel(level)

    # uvicorn --reload and repeated create_app() calls must not stack handlers
    for h in list(root.handlers):
        if getattr(h, "_facility_json", False):
            root.removeHandler(h)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(JsonFormatter())
    handler._facility_json = True  # type: ignore[attr-defined]
    root.addHandler(handler)

    logging.getLogger("uvicorn.access").setLevel(level)
    logging.getLogger("sqlalchemy.engine").setLevel(_level("SQL_LOG_LEVEL", "WARNING"))
    logging.getLogger("celery").setLevel(_level("CELERY_LOG_LEVEL", level))
