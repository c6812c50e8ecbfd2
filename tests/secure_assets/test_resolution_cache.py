"""Tests for ResolutionCache deduplication and invalidation."""

import asyncio
from unittest.mock import MagicMock

import pytest

from asset_fakes import wait_until
from core.errors.exceptions import TerminalFailureError
from secure_assets.cache import ResolutionCache
from secure_assets.handles import HandleStore


class Producer:
    """Counts invocations and optionally blocks until released."""

    def __init__(self, store: HandleStore, key: str = "key-a", fail: Exception | None = None):
        self.store = store
        self.key = key
        self.fail = fail
        self.calls = 0
        self.release = asyncio.Event()
        self.release.set()

    async def __call__(self):
        self.calls += 1
        await self.release.wait()
        if self.fail is not None:
            raise self.fail
        return await self.store.create(self.key, f"payload-{self.calls}".encode())


@pytest.fixture
def store(tmp_path):
    return HandleStore(tmp_path)


@pytest.fixture
def credentials():
    return MagicMock()


@pytest.fixture
def cache(store, credentials):
    return ResolutionCache(store, credentials)


class TestResolve:
    """Tests for resolve()."""

    @pytest.mark.asyncio
    async def test_miss_then_hit(self, cache, store):
        producer = Producer(store)

        first = await cache.resolve("key-a", producer)
        second = await cache.resolve("key-a", producer)

        assert first is second
        assert producer.calls == 1
        assert cache.cached_count == 1
        assert cache.get("key-a") is first

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_producer(self, cache, store):
        """Five concurrent resolutions of one key run the producer once."""
        producer = Producer(store)
        producer.release.clear()

        tasks = [asyncio.ensure_future(cache.resolve("key-a", producer)) for _ in range(5)]
        await wait_until(lambda: producer.calls == 1)

        assert cache.is_in_flight("key-a")
        assert cache.get("key-a") is None

        producer.release.set()
        handles = await asyncio.gather(*tasks)

        assert producer.calls == 1
        assert len({h.uri for h in handles}) == 1
        assert not cache.is_in_flight("key-a")
        assert cache.cached_count == 1

    @pytest.mark.asyncio
    async def test_distinct_keys_resolve_independently(self, cache, store):
        a = Producer(store, "key-a")
        b = Producer(store, "key-b")

        handle_a, handle_b = await asyncio.gather(
            cache.resolve("key-a", a), cache.resolve("key-b", b)
        )

        assert handle_a.uri != handle_b.uri
        assert a.calls == b.calls == 1

    @pytest.mark.asyncio
    async def test_failure_shared_and_not_cached(self, cache, store):
        producer = Producer(store, fail=TerminalFailureError("Failed to load secure asset (404)"))
        producer.release.clear()

        tasks = [asyncio.ensure_future(cache.resolve("key-a", producer)) for _ in range(3)]
        await wait_until(lambda: producer.calls == 1)
        producer.release.set()
        results = await asyncio.gather(*tasks, return_exceptions=True)

        assert all(isinstance(r, TerminalFailureError) for r in results)
        assert producer.calls == 1
        assert cache.cached_count == 0
        assert not cache.is_in_flight("key-a")

    @pytest.mark.asyncio
    async def test_retry_after_failure_runs_producer_again(self, cache, store):
        producer = Producer(store, fail=TerminalFailureError("boom"))
        with pytest.raises(TerminalFailureError):
            await cache.resolve("key-a", producer)

        producer.fail = None
        handle = await cache.resolve("key-a", producer)

        assert producer.calls == 2
        assert cache.get("key-a") is handle


class TestCancellation:
    """Tests for caller cancellation."""

    @pytest.mark.asyncio
    async def test_one_cancelled_caller_does_not_cancel_shared_work(self, cache, store):
        producer = Producer(store)
        producer.release.clear()

        first = asyncio.ensure_future(cache.resolve("key-a", producer))
        second = asyncio.ensure_future(cache.resolve("key-a", producer))
        await wait_until(lambda: producer.calls == 1)

        first.cancel()
        await asyncio.sleep(0)
        producer.release.set()
        handle = await second

        assert first.cancelled()
        assert cache.get("key-a") is handle

    @pytest.mark.asyncio
    async def test_last_cancelled_caller_cancels_work(self, cache, store):
        producer = Producer(store)
        producer.release.clear()

        only = asyncio.ensure_future(cache.resolve("key-a", producer))
        await wait_until(lambda: producer.calls == 1)

        only.cancel()
        await wait_until(lambda: not cache.is_in_flight("key-a"))

        assert cache.cached_count == 0
        assert store.live_count == 0

    @pytest.mark.asyncio
    async def test_caller_after_last_cancel_starts_fresh_resolution(self, cache, store):
        """A caller arriving while cancelled work unwinds gets its own result."""
        producer = Producer(store)
        producer.release.clear()

        only = asyncio.ensure_future(cache.resolve("key-a", producer))
        await wait_until(lambda: producer.calls == 1)

        only.cancel()
        await asyncio.sleep(0)
        assert not cache.is_in_flight("key-a")

        producer.release.set()
        handle = await cache.resolve("key-a", producer)

        assert only.cancelled()
        assert producer.calls == 2
        assert cache.get("key-a") is handle
        assert not cache.is_in_flight("key-a")


class TestInvalidateAll:
    """Tests for invalidate_all()."""

    @pytest.mark.asyncio
    async def test_releases_handles_and_invalidates_credential(self, cache, store, credentials):
        handle_a = await cache.resolve("key-a", Producer(store, "key-a"))
        handle_b = await cache.resolve("key-b", Producer(store, "key-b"))

        released = cache.invalidate_all()

        assert released == 2
        assert cache.cached_count == 0
        assert handle_a.released and handle_b.released
        assert not handle_a.path.exists()
        credentials.invalidate.assert_called_once()

    @pytest.mark.asyncio
    async def test_next_resolve_after_invalidate_runs_producer(self, cache, store):
        producer = Producer(store)
        first = await cache.resolve("key-a", producer)

        cache.invalidate_all()
        second = await cache.resolve("key-a", producer)

        assert producer.calls == 2
        assert second.uri != first.uri
        assert first.released
        assert not second.released

    @pytest.mark.asyncio
    async def test_in_flight_resolution_lands_after_invalidate(self, cache, store):
        producer = Producer(store)
        producer.release.clear()

        task = asyncio.ensure_future(cache.resolve("key-a", producer))
        await wait_until(lambda: producer.calls == 1)

        cache.invalidate_all()
        producer.release.set()
        handle = await task

        assert cache.get("key-a") is handle
        assert not handle.released

    @pytest.mark.asyncio
    async def test_close_cancels_in_flight_and_releases(self, cache, store):
        cached = await cache.resolve("key-a", Producer(store, "key-a"))
        blocked = Producer(store, "key-b")
        blocked.release.clear()
        task = asyncio.ensure_future(cache.resolve("key-b", blocked))
        await wait_until(lambda: blocked.calls == 1)

        await cache.close()

        assert cached.released
        assert cache.in_flight_count == 0
        with pytest.raises(asyncio.CancelledError):
            await task
