"""
Authenticated retrieval of protected assets with the recovery policy.

One call to fetch() runs the whole policy for one logical resolution, under
whatever admission slot the caller holds:

- 401: invalidate the credential, obtain a fresh one, and try exactly once
  more. A second 401 is terminal.
- 503: retry up to max_attempts total with delay base_delay * attempt.
- Anything else (other statuses, empty body, network errors): fail at once.
"""

import logging
from dataclasses import dataclass

import aiohttp

from core.auth.models import Credential
from core.download.http_client import DownloadError, DownloadResponse, download_url
from core.errors.exceptions import (
    AuthorizationRejectedError,
    ResolutionError,
    TerminalFailureError,
    error_for_status,
)
from core.resilience.retry import RetryConfig, RetryStats, retry_async
from core.types import CredentialSource
from secure_assets.keys import rewrite_base_url
from secure_assets.metrics import record_fetch_attempt

logger = logging.getLogger(__name__)


@dataclass
class FetchResult:
    """Payload and metadata from a successful fetch."""

    content: bytes
    content_type: str | None
    content_length: int | None = None
    etag: str | None = None
    attempts: int = 1


def _error_from_download(error: DownloadError, url: str) -> ResolutionError:
    if error.status_code is not None and not 200 <= error.status_code < 300:
        return error_for_status(error.status_code, url)
    return TerminalFailureError(
        f"Failed to load secure asset: {error.error_message}",
        context={"status_code": error.status_code, "url": url},
    )


class ResourceFetcher:
    """
    Fetches protected payloads with credential refresh and transient retry.

    Retries reuse the caller's admission slot; the fetcher never touches the
    gate itself.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        credentials: CredentialSource,
        retry_config: RetryConfig | None = None,
        timeout_seconds: float = 30,
        assets_base_url: str | None = None,
        sleep=None,
    ):
        self.session = session
        self.credentials = credentials
        self.retry_config = retry_config or RetryConfig()
        self.timeout_seconds = timeout_seconds
        self.assets_base_url = assets_base_url
        self._sleep = sleep

    async def fetch_once(self, url: str, credential: Credential) -> DownloadResponse:
        """
        Perform one authenticated GET.

        Raises:
            AuthorizationRejectedError: 401
            TransientFailureError: 503
            TerminalFailureError: anything else that is not a non-empty 2xx
        """
        response, error = await download_url(
            url,
            self.session,
            headers={"Authorization": credential.authorization_header},
            timeout=self.timeout_seconds,
        )

        if error is not None:
            exc = _error_from_download(error, url)
            record_fetch_attempt(exc.category.value)
            logger.debug(
                f"Fetch attempt failed: {error.error_message}",
                extra={
                    "http_url": url,
                    "http_status": error.status_code,
                    "error_category": exc.category.value,
                },
            )
            raise exc

        record_fetch_attempt("success")
        return response

    async def fetch(self, reference: str) -> FetchResult:
        """
        Retrieve the payload for a protected reference.

        Raises:
            CredentialUnavailableError: No credential could be obtained
            AuthorizationRejectedError: Rejected again after one forced refresh
            TransientFailureError: Still unavailable after max attempts
            TerminalFailureError: Non-retryable failure
        """
        url = rewrite_base_url(reference, self.assets_base_url)
        total_attempts = 0

        for auth_attempt in (1, 2):
            credential = await self.credentials.get_valid_credential()
            stats = RetryStats()
            try:
                response = await retry_async(
                    lambda: self.fetch_once(url, credential),
                    config=self.retry_config,
                    operation_name="fetch_secure_asset",
                    stats=stats,
                    sleep=self._sleep,
                )
            except AuthorizationRejectedError:
                total_attempts += stats.attempts
                if auth_attempt == 2:
                    logger.warning(
                        "Credential rejected after forced refresh",
                        extra={"http_url": url, "attempt": total_attempts},
                    )
                    raise
                logger.info(
                    "Credential rejected, refreshing and retrying once",
                    extra={"http_url": url, "attempt": total_attempts},
                )
                self.credentials.invalidate()
                continue

            total_attempts += stats.attempts
            return FetchResult(
                content=response.content,
                content_type=response.content_type,
                content_length=response.content_length,
                etag=response.etag,
                attempts=total_attempts,
            )

        # Unreachable: the second auth attempt either returns or raises
        raise AuthorizationRejectedError("Credential rejected", context={"url": url})


__all__ = ["ResourceFetcher", "FetchResult"]
