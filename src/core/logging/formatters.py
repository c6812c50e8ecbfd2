"""Log formatters: JSON lines for files and aggregation, colour text for terminals."""

import json
import logging
import re
import sys
from datetime import UTC, datetime
from typing import Any

from core.logging.context import get_log_context

# Query parameters whose values never reach a log line
_SECRET_QUERY = re.compile(
    r"([?&])(sig|token|key|secret|password|auth|access_token)=[^&#]*",
    re.IGNORECASE,
)


def redact_url(url: str) -> str:
    """Mask credential-bearing query values, e.g. ``?token=abc`` -> ``?token=[REDACTED]``."""
    return _SECRET_QUERY.sub(r"\1\2=[REDACTED]", url)


class JSONFormatter(logging.Formatter):
    """
    One JSON object per record.

    Known ``extra`` fields are copied onto the entry; numeric ones are coerced
    so aggregations don't see "503" and 503 as different values. Fields
    holding URLs are redacted. The current trace_id / resource_key /
    component come from the logging context.
    """

    # field -> coercion (None keeps the value as is)
    FIELDS: dict[str, type | None] = {
        "reference": None,
        "resource_key": None,
        "trace_id": None,
        "operation": None,
        "http_url": None,
        "http_status": int,
        "status_code": int,
        "content_type": None,
        "bytes_downloaded": int,
        "duration_ms": float,
        "error_type": None,
        "error_category": None,
        "error_message": None,
        "attempt": int,
        "max_attempts": int,
        "delay_seconds": float,
        "expires_at": None,
        "expiry_source": None,
        "gate_capacity": int,
        "gate_in_use": int,
        "gate_waiting": int,
        "cached_handles": int,
        "released_handles": int,
        "in_flight": int,
        "handle_uri": None,
    }

    URL_FIELDS = frozenset({"reference", "resource_key", "http_url"})
    CONTEXT_FIELDS = ("trace_id", "resource_key", "component")

    def _field_value(self, name: str, value: Any) -> Any:
        cast = self.FIELDS[name]
        if cast is not None:
            try:
                value = cast(value)
            except (TypeError, ValueError):
                return None
        if name in self.URL_FIELDS and isinstance(value, str):
            return redact_url(value)
        return value

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created, UTC)
        entry: dict[str, Any] = {
            "ts": timestamp.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        context = get_log_context()
        for name in self.CONTEXT_FIELDS:
            if context.get(name):
                entry[name] = context[name]

        if record.levelno >= logging.ERROR or record.levelno == logging.DEBUG:
            entry["file"] = f"{record.filename}:{record.lineno}"

        for name in self.FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                entry[name] = self._field_value(name, value)

        if record.exc_info:
            exc_type, exc_value, _ = record.exc_info
            entry["exception"] = {
                "type": exc_type.__name__ if exc_type else None,
                "message": str(exc_value) if exc_value else None,
                "stacktrace": self.formatException(record.exc_info),
            }

        return json.dumps(entry, default=str, ensure_ascii=False)


class ConsoleFormatter(logging.Formatter):
    """
    ``12:00:01 INFO  [proxy] [r-1a2b3c4d] message``

    Level names are coloured only when stdout is a terminal.
    """

    LEVEL_COLOURS = {
        logging.DEBUG: "36",
        logging.INFO: "32",
        logging.WARNING: "33",
        logging.ERROR: "31",
        logging.CRITICAL: "35",
    }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._use_colors = sys.stdout.isatty()

    def _level(self, record: logging.LogRecord) -> str:
        name = f"{record.levelname:<5}"
        colour = self.LEVEL_COLOURS.get(record.levelno)
        if self._use_colors and colour:
            return f"\033[{colour}m{name}\033[0m"
        return name

    def format(self, record: logging.LogRecord) -> str:
        context = get_log_context()
        parts = [datetime.fromtimestamp(record.created).strftime("%H:%M:%S"), self._level(record)]

        if context.get("component"):
            parts.append(f"[{context['component']}]")
        trace_id = getattr(record, "trace_id", None) or context.get("trace_id")
        if trace_id:
            parts.append(f"[{trace_id}]")

        message = record.getMessage()
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"
        parts.append(message)
        return " ".join(parts)


__all__ = ["JSONFormatter", "ConsoleFormatter", "redact_url"]
