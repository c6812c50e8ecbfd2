"""
Exception hierarchy for secure asset resolution.

Provides typed exceptions with retry classification so the fetcher can
decide between refreshing credentials, backing off, or failing fast.
"""

# Import ErrorCategory from canonical source to avoid duplicate enum issues
# (comparing enums from different classes always returns False)
from core.types import ErrorCategory

# The only resource-endpoint status treated as retryable.
TRANSIENT_STATUS = 503
AUTH_STATUS = 401


class ResolutionError(Exception):
    """
    Base exception for all resolution errors.

    Attributes:
        message: Human-readable error description
        category: Error classification for retry decisions
        cause: Original exception if wrapping
        context: Additional context dict for debugging
    """

    category: ErrorCategory = ErrorCategory.UNKNOWN

    def __init__(
        self,
        message: str,
        cause: Exception | None = None,
        context: dict | None = None,
    ):
        self.message = message
        self.cause = cause
        self.context = context or {}
        super().__init__(message)

    @property
    def is_retryable(self) -> bool:
        return self.category == ErrorCategory.TRANSIENT

    @property
    def status_code(self) -> int | None:
        return self.context.get("status_code")

    def __str__(self) -> str:
        parts = [self.message]
        if self.cause:
            parts.append(f"Caused by: {self.cause}")
        return " | ".join(parts)


# =============================================================================
# Credential Errors
# =============================================================================


class CredentialUnavailableError(ResolutionError):
    """Token endpoint unreachable or returned no usable token."""

    category = ErrorCategory.AUTH


class AuthorizationRejectedError(ResolutionError):
    """Resource endpoint rejected the bearer credential (401)."""

    category = ErrorCategory.AUTH


# =============================================================================
# Fetch Errors
# =============================================================================


class TransientFailureError(ResolutionError):
    """Resource endpoint signalled a retryable condition."""

    category = ErrorCategory.TRANSIENT


class TerminalFailureError(ResolutionError):
    """Any other fetch failure: client error, malformed response, unreachable host."""

    category = ErrorCategory.PERMANENT


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigError(ValueError):
    """Resolver configuration is invalid."""

    pass


# =============================================================================
# Classification Utilities
# =============================================================================


def classify_http_status(status_code: int) -> ErrorCategory:
    """Classify a resource-endpoint HTTP status into an error category."""
    if 200 <= status_code < 300:
        return ErrorCategory.UNKNOWN  # Not an error

    if status_code == AUTH_STATUS:
        return ErrorCategory.AUTH

    if status_code == TRANSIENT_STATUS:
        return ErrorCategory.TRANSIENT

    return ErrorCategory.PERMANENT


def error_for_status(status_code: int, url: str) -> ResolutionError:
    """Build the typed exception matching a non-2xx resource-endpoint status."""
    category = classify_http_status(status_code)
    context = {"status_code": status_code, "url": url}

    if category == ErrorCategory.AUTH:
        return AuthorizationRejectedError(
            f"Credential rejected ({status_code})", context=context
        )
    if category == ErrorCategory.TRANSIENT:
        return TransientFailureError(
            f"Resource temporarily unavailable ({status_code})", context=context
        )
    return TerminalFailureError(
        f"Failed to load secure asset ({status_code})", context=context
    )


def is_transient_error(exc: Exception) -> bool:
    """Check if exception is transient (retriable)."""
    return isinstance(exc, ResolutionError) and exc.is_retryable


def classify_exception(exc: Exception) -> ErrorCategory:
    """Classify an exception into error category."""
    if isinstance(exc, ResolutionError):
        return exc.category
    return ErrorCategory.UNKNOWN
