"""
Resolver façade used by the rendering layer.

Wires the credential manager, admission gate, fetcher, handle store and
resolution cache together. resolve() never raises for resolution failures:
unprotected references pass through unchanged and failed resolutions return
the fallback.
"""

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime

import aiohttp

from core.auth.manager import CredentialManager
from core.auth.providers import BaseCredentialProvider, TokenEndpointProvider
from core.download.http_client import create_session
from core.errors.exceptions import ConfigError, ResolutionError, classify_exception
from core.logging.context import clear_log_context, set_log_context
from core.logging.setup import generate_trace_id
from core.resilience.admission_gate import AdmissionGate
from core.resilience.retry import RetryConfig
from secure_assets.cache import ResolutionCache
from secure_assets.config import ResolverConfig
from secure_assets.fetcher import ResourceFetcher
from secure_assets.handles import HandleStore, LocalHandle
from secure_assets.keys import normalize_reference, reference_origin
from secure_assets.metrics import (
    observe_fetch_duration,
    record_credential_refresh,
    record_fallback,
    update_gate_in_use,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolutionFailure:
    """Diagnostic event emitted whenever a resolution falls back."""

    reference: str
    resource_key: str
    error_type: str
    error_category: str
    message: str
    status_code: int | None
    trace_id: str
    occurred_at: datetime


FailureListener = Callable[[ResolutionFailure], None]


class SecureAssetResolver:
    """
    Turns asset references into locally renderable URIs.

    Usage:
        async with SecureAssetResolver(load_config()) as resolver:
            uri = await resolver.resolve(image_url)

    Components can be injected for tests; anything not supplied is built
    from the config. A session created here is closed by close().
    """

    def __init__(
        self,
        config: ResolverConfig,
        session: aiohttp.ClientSession | None = None,
        provider: BaseCredentialProvider | None = None,
        handle_store: HandleStore | None = None,
        sleep=None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.config = config
        self._host_regex = config.host_regex
        self._owns_session = session is None
        self._session = session
        self._failure_listeners: list[FailureListener] = []

        if provider is None:
            if not config.token_endpoint:
                raise ConfigError("token_endpoint is required when no credential provider is given")
            provider = TokenEndpointProvider(
                config.token_endpoint,
                session=session,
                timeout_seconds=config.request_timeout_seconds,
            )

        manager_kwargs = {"clock": clock} if clock is not None else {}
        self.credentials = CredentialManager(
            provider,
            refresh_buffer_seconds=config.refresh_buffer_seconds,
            default_ttl_seconds=config.default_token_ttl_seconds,
            on_refresh=record_credential_refresh,
            **manager_kwargs,
        )
        self.gate = AdmissionGate(config.gate_capacity, name="secure_asset_fetch")
        self.retry_config = RetryConfig(
            max_attempts=config.max_retries,
            base_delay=config.retry_base_delay_seconds,
        )
        self._sleep = sleep
        self._fetcher: ResourceFetcher | None = None
        self.handle_store = handle_store or HandleStore(config.handle_dir)
        self.cache = ResolutionCache(self.handle_store, self.credentials)

    @property
    def session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = create_session(
                max_connections_per_host=self.config.gate_capacity,
                timeout_total=self.config.request_timeout_seconds,
            )
        return self._session

    @property
    def fetcher(self) -> ResourceFetcher:
        # Built lazily so an owned session is only created inside a running loop
        if self._fetcher is None:
            self._fetcher = ResourceFetcher(
                self.session,
                self.credentials,
                retry_config=self.retry_config,
                timeout_seconds=self.config.request_timeout_seconds,
                assets_base_url=self.config.assets_base_url,
                sleep=self._sleep,
            )
        return self._fetcher

    def should_protect(self, reference: str | None) -> bool:
        """
        True when the reference points at the protected resource server.

        The host pattern must match the whole ``scheme://host`` origin, so
        lookalike hosts that merely start with the protected name are rejected.
        """
        if not reference or not isinstance(reference, str):
            return False
        origin = reference_origin(reference)
        return origin is not None and self._host_regex.fullmatch(origin) is not None

    async def resolve(self, reference: str | None) -> str | None:
        """
        Resolve a reference to a renderable URI.

        Unprotected references (including None and "") are returned unchanged
        without any credential, gate or network activity. Protected ones are
        served from the cache, joined onto an in-flight resolution, or fetched.
        On failure the configured placeholder (or the reference itself) is
        returned and a ResolutionFailure is emitted.
        """
        if not self.should_protect(reference):
            return reference

        key = normalize_reference(reference)
        trace_id = generate_trace_id()
        set_log_context(trace_id=trace_id, resource_key=key)
        try:
            handle = await self.cache.resolve(key, lambda: self._produce(reference, key))
            return handle.uri
        except ResolutionError as e:
            return self._fallback(reference, key, trace_id, e)
        except Exception as e:
            logger.exception(f"Unexpected error resolving secure asset: {e}")
            return self._fallback(reference, key, trace_id, e)
        finally:
            clear_log_context()

    async def _produce(self, reference: str, key: str) -> LocalHandle:
        success = False
        try:
            async with self.gate.slot():
                update_gate_in_use(self.gate.in_use)
                start = time.perf_counter()
                try:
                    result = await self.fetcher.fetch(reference)
                    success = True
                finally:
                    observe_fetch_duration(time.perf_counter() - start, success)
        finally:
            update_gate_in_use(self.gate.in_use)

        handle = await self.handle_store.create(key, result.content, result.content_type)
        logger.info(
            "Resolved secure asset",
            extra={
                "resource_key": key,
                "attempt": result.attempts,
                "bytes_downloaded": len(result.content),
                "content_type": result.content_type,
                "duration_ms": round((time.perf_counter() - start) * 1000, 2),
            },
        )
        return handle

    def _fallback(self, reference: str, key: str, trace_id: str, error: Exception) -> str:
        category = classify_exception(error).value
        status_code = error.status_code if isinstance(error, ResolutionError) else None

        logger.warning(
            f"Secure asset resolution failed, using fallback: {error}",
            extra={
                "reference": reference,
                "error_type": type(error).__name__,
                "error_category": category,
                "http_status": status_code,
            },
        )
        record_fallback(type(error).__name__)

        event = ResolutionFailure(
            reference=reference,
            resource_key=key,
            error_type=type(error).__name__,
            error_category=category,
            message=str(error),
            status_code=status_code,
            trace_id=trace_id,
            occurred_at=datetime.now(UTC),
        )
        for listener in list(self._failure_listeners):
            try:
                listener(event)
            except Exception as e:
                logger.warning(f"Failure listener raised: {e}")

        return self.config.placeholder or reference

    def add_failure_listener(self, listener: FailureListener) -> None:
        self._failure_listeners.append(listener)

    def remove_failure_listener(self, listener: FailureListener) -> None:
        if listener in self._failure_listeners:
            self._failure_listeners.remove(listener)

    def invalidate_all(self) -> None:
        """Release every cached handle and force the next request to re-authenticate."""
        self.cache.invalidate_all()

    def get_stats(self) -> dict:
        return {
            "cached_handles": self.cache.cached_count,
            "in_flight": self.cache.in_flight_count,
            "gate": self.gate.get_stats(),
            "credential": self.credentials.get_cached_credential_info(),
        }

    async def close(self) -> None:
        """Cancel outstanding work, release all handles and close owned resources."""
        await self.cache.close()
        self.handle_store.close()
        await self.credentials.close()
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None
        update_gate_in_use(0)

    async def __aenter__(self) -> "SecureAssetResolver":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


__all__ = ["SecureAssetResolver", "ResolutionFailure", "FailureListener"]
