"""JSON logging for cube builds.

Every record is rendered as one JSON object. Build identifiers injected by
``ContextFilter`` come first so log lines of one build group together, then
the structured ``extra=`` fields the emitting module attached.
"""

from __future__ import annotations

import json
import logging
import logging.config
from datetime import datetime, timezone
from typing import Any, Dict, Optional

_STANDARD_ATTRIBUTES = frozenset(
    logging.LogRecord("statcube", logging.INFO, __file__, 0, "", (), None).__dict__
) | {"asctime", "message"}

_CONTEXT_FIELDS = ("build_id", "dataset_id", "revision_id")


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


class CustomJsonFormatter(logging.Formatter):
    """Render a record as JSON with build context, extras and trace ids."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for field in _CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                payload[field] = value

        for key, value in record.__dict__.items():
            if key in _STANDARD_ATTRIBUTES or key in payload or key in _CONTEXT_FIELDS:
                continue
            if key in ("otelTraceID", "otelSpanID"):
                payload["trace_id" if key == "otelTraceID" else "span_id"] = value
                continue
            payload[key] = value

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            payload["stack"] = self.formatStack(record.stack_info)

        return json.dumps(payload, default=str)


def setup_logging(level: Optional[str] = None) -> None:
    """Send JSON records to stdout through ``logging.config.dictConfig``.

    Args:
        level: Root log level. Defaults to ``processing.log_level`` from the
            settings.
    """
    if level is None:
        from statcube.settings import get_settings
        level = get_settings().processing.log_level
    level = level.upper()

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "statcube_json": {"()": "statcube.logging.logger.CustomJsonFormatter"},
        },
        "filters": {
            "statcube_context": {"()": "statcube.logging.filters.ContextFilter"},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": "statcube_json",
                "filters": ["statcube_context"],
                "stream": "ext://sys.stdout",
            },
        },
        "root": {"level": level, "handlers": ["console"]},
    })
