"""
Async download module.

Provides:
    - download_url: one HTTP GET returning payload or classified error
    - create_session: pooled aiohttp ClientSession factory
"""

from core.download.http_client import DownloadError, DownloadResponse, create_session, download_url

__all__ = [
    "download_url",
    "create_session",
    "DownloadResponse",
    "DownloadError",
]
