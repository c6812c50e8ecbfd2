"""
Error classification and exception hierarchy.

Provides:
- ErrorCategory enum for classifying errors
- ResolutionError hierarchy for typed exceptions
- HTTP status classification for the resource endpoint
"""

from core.errors.exceptions import (
    AUTH_STATUS,
    TRANSIENT_STATUS,
    AuthorizationRejectedError,
    ConfigError,
    CredentialUnavailableError,
    # Enums
    ErrorCategory,
    # Base classes
    ResolutionError,
    TerminalFailureError,
    TransientFailureError,
    # Classification utilities
    classify_exception,
    classify_http_status,
    error_for_status,
    is_transient_error,
)

__all__ = [
    # Enums
    "ErrorCategory",
    # Base classes
    "ResolutionError",
    "CredentialUnavailableError",
    "AuthorizationRejectedError",
    "TransientFailureError",
    "TerminalFailureError",
    "ConfigError",
    # Constants
    "AUTH_STATUS",
    "TRANSIENT_STATUS",
    # Classification utilities
    "classify_http_status",
    "classify_exception",
    "error_for_status",
    "is_transient_error",
]
