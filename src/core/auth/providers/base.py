"""Base credential provider interface."""

from abc import ABC, abstractmethod


class BaseCredentialProvider(ABC):
    """
    Abstract base class for bearer token sources.

    A provider performs exactly one network call per request_token();
    caching, expiry and single-flight coordination belong to
    CredentialManager.
    """

    def __init__(self, provider_name: str):
        self.provider_name = provider_name

    @abstractmethod
    async def request_token(self) -> str:
        """
        Obtain a fresh bearer token.

        Returns:
            The raw token string

        Raises:
            CredentialUnavailableError: If no usable token was returned
        """
        pass

    async def close(self) -> None:
        """Release any network resources held by the provider."""
        return None


__all__ = ["BaseCredentialProvider"]
