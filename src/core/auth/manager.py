"""Credential manager with expiry-aware caching and single-flight refresh."""

import asyncio
import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from core.auth.claims import decode_expiry
from core.auth.models import Credential
from core.auth.providers.base import BaseCredentialProvider
from core.errors.exceptions import CredentialUnavailableError, ResolutionError

logger = logging.getLogger(__name__)

DEFAULT_REFRESH_BUFFER_SECONDS = 30
DEFAULT_TOKEN_TTL_SECONDS = 240


def _utc_now() -> datetime:
    return datetime.now(UTC)


class CredentialManager:
    """
    Owns the single cached bearer credential for a resolver.

    The cached credential is served until ``now >= expires_at - buffer``.
    Past that point the next caller starts a refresh; every caller arriving
    while that refresh is outstanding awaits the same task, so at most one
    token request is ever in flight. A failed refresh is delivered to all of
    its waiters and leaves nothing cached, so the following call starts over.

    Usage:
        manager = CredentialManager(TokenEndpointProvider(token_url))
        credential = await manager.get_valid_credential()
        headers = {"Authorization": credential.authorization_header}

        # After the resource server rejects the credential
        manager.invalidate()
    """

    def __init__(
        self,
        provider: BaseCredentialProvider,
        refresh_buffer_seconds: float = DEFAULT_REFRESH_BUFFER_SECONDS,
        default_ttl_seconds: float = DEFAULT_TOKEN_TTL_SECONDS,
        clock: Callable[[], datetime] = _utc_now,
        on_refresh: Callable[[str], None] | None = None,
    ):
        """
        Initialize credential manager.

        Args:
            provider: Source of fresh tokens
            refresh_buffer_seconds: Time before expiry to treat the credential as stale
            default_ttl_seconds: Lifetime applied when the token has no decodable expiry
            clock: Returns the current UTC time (injectable for tests)
            on_refresh: Called with "success" or "failure" after each refresh
        """
        self.provider = provider
        self.refresh_buffer_seconds = refresh_buffer_seconds
        self.default_ttl_seconds = default_ttl_seconds
        self._clock = clock
        self._on_refresh = on_refresh
        self._credential: Credential | None = None
        self._refresh_task: asyncio.Task | None = None
        self.refresh_count = 0

    @property
    def cached_credential(self) -> Credential | None:
        return self._credential

    @property
    def refresh_in_progress(self) -> bool:
        return self._refresh_task is not None and not self._refresh_task.done()

    async def get_valid_credential(self) -> Credential:
        """
        Return a credential outside its refresh buffer, refreshing if needed.

        Raises:
            CredentialUnavailableError: If the refresh failed
        """
        credential = self._credential
        if credential is not None and not credential.is_expired(
            self.refresh_buffer_seconds, now=self._clock()
        ):
            return credential

        if self._refresh_task is None or self._refresh_task.done():
            self._refresh_task = asyncio.ensure_future(self._refresh())
            self._refresh_task.add_done_callback(self._clear_refresh_task)

        # Shield so one caller's cancellation never aborts the shared refresh
        return await asyncio.shield(self._refresh_task)

    def _clear_refresh_task(self, task: asyncio.Task) -> None:
        if self._refresh_task is task:
            self._refresh_task = None
        if not task.cancelled():
            # Mark retrieved so orphaned failures don't warn at shutdown
            task.exception()

    async def _refresh(self) -> Credential:
        self._credential = None
        self.refresh_count += 1
        logger.debug(f"Requesting access token from '{self.provider.provider_name}'")

        try:
            token = await self.provider.request_token()
        except ResolutionError:
            self._notify("failure")
            raise
        except Exception as e:
            self._notify("failure")
            logger.error(f"Failed to get access token from '{self.provider.provider_name}': {e}")
            raise CredentialUnavailableError(f"Failed to get access token: {e}", cause=e) from e

        issued_at = self._clock()
        expires_at = decode_expiry(token)
        expiry_source = "claim"
        if expires_at is None:
            expires_at = issued_at + timedelta(seconds=self.default_ttl_seconds)
            expiry_source = "default"

        credential = Credential(
            value=token,
            expires_at=expires_at,
            issued_at=issued_at,
            expiry_source=expiry_source,
        )
        self._credential = credential
        self._notify("success")

        logger.info(
            f"Access token valid until {expires_at.isoformat()}",
            extra={"expires_at": expires_at.isoformat(), "expiry_source": expiry_source},
        )
        return credential

    def _notify(self, outcome: str) -> None:
        if self._on_refresh:
            self._on_refresh(outcome)

    def invalidate(self) -> None:
        """Drop the cached credential so the next call forces a refresh."""
        if self._credential is not None:
            logger.debug("Cached access token invalidated")
        self._credential = None

    def get_cached_credential_info(self) -> dict | None:
        """Information about the cached credential for diagnostics."""
        credential = self._credential
        if credential is None:
            return None

        now = self._clock()
        return {
            "provider_name": self.provider.provider_name,
            "issued_at": credential.issued_at.isoformat(),
            "expires_at": credential.expires_at.isoformat(),
            "expiry_source": credential.expiry_source,
            "remaining_seconds": credential.remaining_lifetime(now).total_seconds(),
            "is_expired": credential.is_expired(self.refresh_buffer_seconds, now=now),
        }

    async def close(self) -> None:
        """Cancel any outstanding refresh and close the provider."""
        task = self._refresh_task
        if task is not None and not task.done():
            task.cancel()
        self._credential = None
        await self.provider.close()


__all__ = [
    "CredentialManager",
    "DEFAULT_REFRESH_BUFFER_SECONDS",
    "DEFAULT_TOKEN_TTL_SECONDS",
]
