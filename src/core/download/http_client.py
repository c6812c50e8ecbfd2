"""
Core HTTP download client using aiohttp.

Provides one authenticated GET without retry, returning either the payload
or a classified error. Retry, credential refresh and concurrency limits are
layered on top by the caller.
"""

from dataclasses import dataclass

import aiohttp

from core.errors.exceptions import (
    ErrorCategory,
    classify_http_status,
)


@dataclass
class DownloadResponse:
    """Response from HTTP download operation with content and metadata."""

    content: bytes
    status_code: int
    content_length: int | None = None
    content_type: str | None = None
    etag: str | None = None


@dataclass
class DownloadError:
    """Error result from failed HTTP download with retry classification."""

    status_code: int | None
    error_message: str
    error_category: ErrorCategory


async def download_url(
    url: str,
    session: aiohttp.ClientSession,
    headers: dict[str, str] | None = None,
    timeout: float = 30,
    allow_redirects: bool = True,
) -> tuple[DownloadResponse | None, DownloadError | None]:
    """
    Single HTTP GET without URL validation or retry.

    Args:
        url: URL to download
        session: aiohttp ClientSession (caller manages lifecycle)
        headers: Extra request headers (e.g. Authorization)
        timeout: Total timeout in seconds
        allow_redirects: Whether to follow redirects

    Returns:
        Tuple of (DownloadResponse, None) on success or (None, DownloadError).
        Network failures and timeouts are PERMANENT: an unreachable host is
        not worth retrying at this layer.
    """
    try:
        async with session.get(
            url,
            headers=headers,
            timeout=aiohttp.ClientTimeout(total=timeout),
            allow_redirects=allow_redirects,
        ) as response:
            if not 200 <= response.status < 300:
                return None, DownloadError(
                    status_code=response.status,
                    error_message=f"HTTP {response.status}",
                    error_category=classify_http_status(response.status),
                )

            content = await response.read()
            if not content:
                return None, DownloadError(
                    status_code=response.status,
                    error_message="Download produced zero bytes",
                    error_category=ErrorCategory.PERMANENT,
                )

            return (
                DownloadResponse(
                    content=content,
                    status_code=response.status,
                    content_length=response.content_length,
                    content_type=response.headers.get("Content-Type"),
                    etag=response.headers.get("ETag"),
                ),
                None,
            )

    except TimeoutError:
        return None, DownloadError(
            status_code=None,
            error_message=f"Download timeout after {timeout}s",
            error_category=ErrorCategory.PERMANENT,
        )
    except aiohttp.ClientError as e:
        return None, DownloadError(
            status_code=None,
            error_message=f"Connection error: {str(e)}",
            error_category=ErrorCategory.PERMANENT,
        )


def create_session(
    max_connections_per_host: int = 6,
    timeout_total: float = 30,
    timeout_connect: float = 10,
) -> aiohttp.ClientSession:
    """
    Session for talking to the token and resource endpoints.

    The per-host pool should match the admission gate capacity. The caller
    owns the session and must close it.
    """
    return aiohttp.ClientSession(
        connector=aiohttp.TCPConnector(
            limit_per_host=max_connections_per_host,
            ttl_dns_cache=300,
        ),
        timeout=aiohttp.ClientTimeout(total=timeout_total, connect=timeout_connect),
    )


__all__ = [
    "DownloadResponse",
    "DownloadError",
    "download_url",
    "create_session",
]
