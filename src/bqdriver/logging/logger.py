"""Driver logging setup.

Log records are rendered as one JSON object per line. Structured ``extra``
payloads become top-level keys, generated SQL under ``db.statement`` is
capped, and every line carries the active OpenTelemetry trace and span ids
so driver logs join the spans emitted around BigQuery jobs.
"""

from __future__ import annotations

import json
import logging
import logging.config
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

from opentelemetry import trace

# Attributes every LogRecord carries; never copied into the payload.
_RECORD_ATTRIBUTES = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))
) | {"asctime", "message"}

MAX_STATEMENT_LENGTH = 2048

# Chatty HTTP/auth loggers underneath google-cloud-bigquery.
_LIBRARY_LOGGERS = ("google.auth", "google.api_core", "google.cloud.bigquery", "urllib3")


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def get_level_from_settings() -> str:
    """Log level configured through ``LOG_LEVEL``."""
    from bqdriver.settings import get_settings

    return get_settings().log_level


def _trace_ids(record: logging.LogRecord) -> Tuple[Optional[str], Optional[str]]:
    """Trace and span id from the logging instrumentation, else the current span."""
    trace_id = getattr(record, "otelTraceID", None)
    if trace_id:
        return trace_id, getattr(record, "otelSpanID", None)

    span_context = trace.get_current_span().get_span_context()
    if not span_context.is_valid:
        return None, None
    return format(span_context.trace_id, "032x"), format(span_context.span_id, "016x")


def _extra_fields(record: logging.LogRecord) -> Dict[str, Any]:
    fields: Dict[str, Any] = {}
    resource = getattr(record, "resource", None)
    if resource is not None:
        fields.update(resource.attributes)

    for key, value in vars(record).items():
        if key in _RECORD_ATTRIBUTES or key.startswith("otel") or value is None:
            continue
        fields.setdefault(key, value)

    statement = fields.get("db.statement")
    if isinstance(statement, str) and len(statement) > MAX_STATEMENT_LENGTH:
        fields["db.statement"] = statement[:MAX_STATEMENT_LENGTH] + "..."
    return fields


class CustomJsonFormatter(logging.Formatter):
    """Render records as JSON lines enriched with context and trace ids."""

    def format(self, record: logging.LogRecord) -> str:
        payload = _extra_fields(record)
        payload.update(
            timestamp=datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            level=record.levelname,
            logger=record.name,
            message=record.getMessage(),
        )

        trace_id, span_id = _trace_ids(record)
        if trace_id:
            payload["trace_id"] = trace_id
        if span_id:
            payload["span_id"] = span_id

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str)


def setup_logging(level: Optional[str] = None, library_level: str = "WARNING") -> None:
    """Install the JSON console handler on the root logger.

    Args:
        level: Driver log level, defaults to the configured ``log_level``
        library_level: Level of the google client and HTTP libraries
    """
    level = (level or get_level_from_settings()).upper()

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "bqdriver_json": {"()": CustomJsonFormatter},
        },
        "filters": {
            "bqdriver_context": {"()": "bqdriver.logging.filters.ContextFilter"},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": "bqdriver_json",
                "filters": ["bqdriver_context"],
                "stream": "ext://sys.stdout",
            }
        },
        "loggers": {
            name: {"level": library_level.upper()} for name in _LIBRARY_LOGGERS
        },
        "root": {"level": level, "handlers": ["console"]},
    })
