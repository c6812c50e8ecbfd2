"""Provider for token endpoints that hand out a bearer token on a bare GET."""

import logging

import aiohttp

from core.errors.exceptions import CredentialUnavailableError
from core.auth.providers.base import BaseCredentialProvider

logger = logging.getLogger(__name__)

# Response fields checked, in order, for the token
TOKEN_FIELDS = ("accessToken", "access_token")


class TokenEndpointProvider(BaseCredentialProvider):
    """
    Fetches a bearer token from an HTTP endpoint.

    The endpoint takes no request body and answers with a JSON object
    carrying the token under ``accessToken``.
    """

    def __init__(
        self,
        token_url: str,
        session: aiohttp.ClientSession | None = None,
        timeout_seconds: float = 30,
        provider_name: str = "token_endpoint",
    ):
        super().__init__(provider_name)

        if not token_url:
            raise ValueError("TokenEndpointProvider requires 'token_url'")

        self.token_url = token_url
        self.timeout_seconds = timeout_seconds
        self._session = session
        self._owns_session = session is None

        logger.debug(
            f"Initialized token endpoint provider '{provider_name}'",
            extra={"http_url": token_url},
        )

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP client session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def request_token(self) -> str:
        session = await self._ensure_session()

        try:
            async with session.get(
                self.token_url,
                timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
            ) as response:
                if not 200 <= response.status < 300:
                    logger.error(
                        f"Token request failed for '{self.provider_name}': HTTP {response.status}",
                        extra={"http_status": response.status, "http_url": self.token_url},
                    )
                    raise CredentialUnavailableError(
                        f"Failed to fetch access token ({response.status})",
                        context={"status_code": response.status},
                    )

                try:
                    payload = await response.json(content_type=None)
                except ValueError as e:
                    raise CredentialUnavailableError(
                        "Token endpoint returned a malformed response", cause=e
                    ) from e

        except aiohttp.ClientError as e:
            logger.error(f"HTTP error during token request for '{self.provider_name}': {e}")
            raise CredentialUnavailableError(f"Token endpoint unreachable: {e}", cause=e) from e
        except TimeoutError as e:
            raise CredentialUnavailableError(
                f"Token request timed out after {self.timeout_seconds}s", cause=e
            ) from e

        token = None
        if isinstance(payload, dict):
            for field in TOKEN_FIELDS:
                value = payload.get(field)
                if isinstance(value, str) and value:
                    token = value
                    break

        if not token:
            raise CredentialUnavailableError("Token endpoint returned an empty response")

        return token

    async def close(self) -> None:
        """Close the HTTP session if this provider created it."""
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()


__all__ = ["TokenEndpointProvider", "TOKEN_FIELDS"]
