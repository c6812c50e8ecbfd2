"""
Bearer credential management with expiry-aware caching and refresh.

Basic Usage:
    from core.auth import CredentialManager, TokenEndpointProvider

    manager = CredentialManager(
        TokenEndpointProvider("https://auth.example.com/token"),
        refresh_buffer_seconds=30,
        default_ttl_seconds=240,
    )

    # Get credential (cached, single-flight refresh when stale)
    credential = await manager.get_valid_credential()
    headers = {"Authorization": credential.authorization_header}

    # After a 401 from the resource server
    manager.invalidate()
"""

from core.auth.claims import decode_expiry
from core.auth.manager import (
    DEFAULT_REFRESH_BUFFER_SECONDS,
    DEFAULT_TOKEN_TTL_SECONDS,
    CredentialManager,
)
from core.auth.models import Credential
from core.auth.providers import BaseCredentialProvider, TokenEndpointProvider

__all__ = [
    # Manager
    "CredentialManager",
    "DEFAULT_REFRESH_BUFFER_SECONDS",
    "DEFAULT_TOKEN_TTL_SECONDS",
    # Providers
    "BaseCredentialProvider",
    "TokenEndpointProvider",
    # Models
    "Credential",
    "decode_expiry",
]
