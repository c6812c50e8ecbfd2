"""Tests for the FIFO admission gate."""

import asyncio

import pytest

from core.resilience.admission_gate import AdmissionGate


async def settle():
    for _ in range(5):
        await asyncio.sleep(0)


class TestAdmissionGate:
    """Tests for AdmissionGate."""

    def test_rejects_zero_capacity(self):
        with pytest.raises(ValueError):
            AdmissionGate(0)

    @pytest.mark.asyncio
    async def test_acquire_up_to_capacity_without_waiting(self):
        gate = AdmissionGate(2)

        await gate.acquire()
        await gate.acquire()

        assert gate.in_use == 2
        assert gate.waiting == 0

    @pytest.mark.asyncio
    async def test_excess_callers_wait(self):
        gate = AdmissionGate(1)
        await gate.acquire()

        waiter = asyncio.ensure_future(gate.acquire())
        await settle()

        assert not waiter.done()
        assert gate.waiting == 1

        gate.release()
        await settle()

        assert waiter.done()
        assert gate.in_use == 1
        assert gate.waiting == 0

    @pytest.mark.asyncio
    async def test_fifo_handoff(self):
        """Slots are granted in arrival order."""
        gate = AdmissionGate(1)
        await gate.acquire()
        order = []

        async def worker(name):
            await gate.acquire()
            order.append(name)

        tasks = [asyncio.ensure_future(worker(n)) for n in ("a", "b", "c")]
        await settle()

        for _ in range(3):
            gate.release()
            await settle()

        assert order == ["a", "b", "c"]
        await asyncio.gather(*tasks)

    @pytest.mark.asyncio
    async def test_newcomer_cannot_overtake_queue(self):
        gate = AdmissionGate(1)
        await gate.acquire()
        order = []

        async def worker(name):
            await gate.acquire()
            order.append(name)
            gate.release()

        queued = asyncio.ensure_future(worker("queued"))
        await settle()

        # Slot goes straight to the queued waiter, not to a new arrival
        gate.release()
        newcomer = asyncio.ensure_future(worker("newcomer"))
        await asyncio.gather(queued, newcomer)

        assert order == ["queued", "newcomer"]
        assert gate.in_use == 0

    @pytest.mark.asyncio
    async def test_release_over_acquire_raises(self):
        gate = AdmissionGate(1)
        with pytest.raises(RuntimeError):
            gate.release()

    @pytest.mark.asyncio
    async def test_slot_released_on_exception(self):
        gate = AdmissionGate(1)

        with pytest.raises(ValueError):
            async with gate.slot():
                assert gate.in_use == 1
                raise ValueError("fetch failed")

        assert gate.in_use == 0

    @pytest.mark.asyncio
    async def test_cancelled_waiter_leaves_queue(self):
        gate = AdmissionGate(1)
        await gate.acquire()

        waiter = asyncio.ensure_future(gate.acquire())
        await settle()
        waiter.cancel()
        await settle()

        assert gate.waiting == 0
        gate.release()
        assert gate.in_use == 0

    @pytest.mark.asyncio
    async def test_cancel_after_handoff_passes_slot_on(self):
        """A slot handed to a waiter that is then cancelled goes to the next waiter."""
        gate = AdmissionGate(1)
        await gate.acquire()

        first = asyncio.ensure_future(gate.acquire())
        second = asyncio.ensure_future(gate.acquire())
        await settle()

        gate.release()
        first.cancel()
        await settle()

        assert first.cancelled()
        assert second.done()
        assert gate.in_use == 1

    @pytest.mark.asyncio
    async def test_peak_and_stats(self):
        gate = AdmissionGate(3, name="fetch")
        async with gate.slot():
            async with gate.slot():
                stats = gate.get_stats()

        assert stats["in_use"] == 2
        assert stats["capacity"] == 3
        assert gate.peak_in_use == 2
        assert gate.in_use == 0
