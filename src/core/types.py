"""
Core types and protocols used across modules.

This module provides base types, enums, and protocol definitions that are
shared across the core library to ensure consistency and type safety.
"""

from enum import Enum
from typing import Protocol


class ErrorCategory(Enum):
    """
    Classification of error types for handling decisions.

    Categories:
        TRANSIENT: Temporary failures that should retry with backoff
                   (the resource endpoint signalled 503)
        AUTH: Credential failures requiring a refresh
              (401 from the resource endpoint, token endpoint failures)
        PERMANENT: Non-retriable failures that won't succeed on retry
                   (other statuses, malformed responses, unreachable hosts)
        UNKNOWN: Unclassified errors
    """

    TRANSIENT = "transient"
    AUTH = "auth"
    PERMANENT = "permanent"
    UNKNOWN = "unknown"


class CredentialSource(Protocol):
    """
    Protocol for anything that hands out bearer credentials.

    Implemented by CredentialManager; consumers (the resource fetcher,
    the proxy) depend on this protocol so tests can substitute fakes.
    """

    async def get_valid_credential(self):
        """
        Return a credential that is not within its refresh buffer.

        Raises:
            CredentialUnavailableError: If no credential could be obtained
        """
        ...

    def invalidate(self) -> None:
        """Drop the cached credential so the next call forces a refresh."""
        ...


__all__ = [
    "ErrorCategory",
    "CredentialSource",
]
