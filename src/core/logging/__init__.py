"""
Structured logging module.

Provides JSON logging with correlation IDs and context propagation.
"""

from core.logging.context import (
    clear_log_context,
    get_log_context,
    set_log_context,
)
from core.logging.formatters import ConsoleFormatter, JSONFormatter, redact_url
from core.logging.setup import (
    generate_trace_id,
    get_logger,
    setup_logging,
)

__all__ = [
    # Setup
    "setup_logging",
    "get_logger",
    "generate_trace_id",
    # Formatters
    "JSONFormatter",
    "ConsoleFormatter",
    "redact_url",
    # Context
    "set_log_context",
    "get_log_context",
    "clear_log_context",
]
