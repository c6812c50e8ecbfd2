"""
Resolution cache with in-flight deduplication.

Maps ResourceKey to the LocalHandle produced for it. While a key is being
resolved, later callers join the outstanding task instead of starting their
own, so the producer runs at most once per key at a time. Only successful
resolutions are stored; a failure is delivered to every joined caller and
leaves the key unresolved so the next request tries again.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from core.types import CredentialSource
from secure_assets.handles import HandleStore, LocalHandle
from secure_assets.metrics import record_cache_lookup

logger = logging.getLogger(__name__)

Producer = Callable[[], Awaitable[LocalHandle]]


@dataclass
class InFlightRequest:
    """An outstanding resolution and the number of callers awaiting it."""

    key: str
    task: asyncio.Task
    waiters: int = 0


class ResolutionCache:
    """
    Per-key memo of resolved handles.

    A key is never both cached and in flight: the settled handle is stored
    and the in-flight entry removed in the same step. A resolution that was
    already in flight when invalidate_all() ran still lands in the cache once
    it settles.
    """

    def __init__(self, handle_store: HandleStore, credentials: CredentialSource | None = None):
        self.handle_store = handle_store
        self.credentials = credentials
        self._handles: dict[str, LocalHandle] = {}
        self._in_flight: dict[str, InFlightRequest] = {}

    @property
    def cached_count(self) -> int:
        return len(self._handles)

    @property
    def in_flight_count(self) -> int:
        return len(self._in_flight)

    def get(self, key: str) -> LocalHandle | None:
        return self._handles.get(key)

    def is_in_flight(self, key: str) -> bool:
        return key in self._in_flight

    async def resolve(self, key: str, producer: Producer) -> LocalHandle:
        """
        Return the handle for key, running producer only if nothing is cached
        or in flight for it.

        Cancelling one caller does not cancel a resolution other callers are
        still waiting on. The underlying task is cancelled only when its last
        waiter goes away.
        """
        handle = self._handles.get(key)
        if handle is not None:
            record_cache_lookup("hit")
            return handle

        request = self._in_flight.get(key)
        if request is None:
            record_cache_lookup("miss")
            task = asyncio.ensure_future(self._run(key, producer))
            task.add_done_callback(_consume_result)
            request = InFlightRequest(key=key, task=task)
            self._in_flight[key] = request
        else:
            record_cache_lookup("joined")
            logger.debug("Joined in-flight resolution", extra={"resource_key": key})

        request.waiters += 1
        try:
            return await asyncio.shield(request.task)
        except asyncio.CancelledError:
            if request.waiters == 1 and not request.task.done():
                # Later callers must not join a task that is being cancelled
                if self._in_flight.get(key) is request:
                    del self._in_flight[key]
                request.task.cancel()
            raise
        finally:
            request.waiters -= 1

    async def _run(self, key: str, producer: Producer) -> LocalHandle:
        try:
            handle = await producer()
            self._handles[key] = handle
            return handle
        finally:
            request = self._in_flight.get(key)
            if request is not None and request.task is asyncio.current_task():
                del self._in_flight[key]

    def invalidate_all(self) -> int:
        """
        Release every cached handle, clear the cache and drop the credential.

        Returns:
            Number of handles released
        """
        handles = list(self._handles.values())
        self._handles.clear()
        for handle in handles:
            self.handle_store.release(handle)

        if self.credentials is not None:
            self.credentials.invalidate()

        logger.info(
            f"Resolution cache invalidated, released {len(handles)} handles",
            extra={"cached_handles": len(handles), "in_flight": len(self._in_flight)},
        )
        return len(handles)

    async def close(self) -> None:
        """Cancel outstanding resolutions and release cached handles."""
        tasks = [request.task for request in self._in_flight.values()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        for handle in list(self._handles.values()):
            self.handle_store.release(handle)
        self._handles.clear()


def _consume_result(task: asyncio.Task) -> None:
    # Failures are delivered to waiters; retrieve here so orphans don't warn
    if not task.cancelled():
        task.exception()


__all__ = ["ResolutionCache", "InFlightRequest", "Producer"]
