# backend/leaseflow/logging_config.py
from __future__ import annotations

import json
import logging
import os
import sys
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Iterator

# HTTP request id, or a generated run id for sweeps; stamped on log lines and notifications.
correlation_id_ctx: ContextVar[str | None] = ContextVar("correlation_id", default=None)


def get_correlation_id() -> str | None:
    return correlation_id_ctx.get()


@contextmanager
def correlation(cid: str | None = None, *, prefix: str = "req") -> Iterator[str]:
    cid = cid or f"{prefix}-{uuid.uuid4().hex[:16]}"
    token = correlation_id_ctx.set(cid)
    try:
        yield cid
    finally:
        correlation_id_ctx.reset(token)


# Structured extras promoted to top-level keys when present on a record.
EXTRA_KEYS = (
    "org_id",
    "user_id",
    "entity_type",
    "entity_id",
    "action",
    "event",
    "http_method",
    "path",
    "status_code",
    "latency_ms",
    "org_slug",
    "user_email",
    "task",
    "count",
)


class JsonFormatter(logging.Formatter):
    """
    Minimal JSON formatter.
    Includes the correlation id (if bound), level, message, logger, timestamp, exception.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        rid = get_correlation_id()
        if rid:
            payload["correlation_id"] = rid

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        for k in EXTRA_KEYS:
            if hasattr(record, k):
                payload[k] = getattr(record, k)

        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging() -> None:
    level = (os.getenv("LOG_LEVEL") or "INFO").upper()

    root = logging.getLogger()
    root.setLevel(level)

    # uvicorn --reload re-imports; avoid stacking handlers
    for h in list(root.handlers):
        root.removeHandler(h)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(JsonFormatter())
    root.addHandler(handler)

    logging.getLogger("uvicorn.access").setLevel(level)
    logging.getLogger("sqlalchemy.engine").setLevel((os.getenv("SQL_LOG_LEVEL") or "WARNING").upper())
