"""Credential provider implementations."""

from core.auth.providers.base import BaseCredentialProvider
from core.auth.providers.token_endpoint import TokenEndpointProvider

__all__ = ["BaseCredentialProvider", "TokenEndpointProvider"]
