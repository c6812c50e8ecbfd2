"""
FIFO admission gate for bounding concurrent outbound requests.

Unlike a rate limiter (which bounds throughput), the gate limits how many
operations are outstanding at once. Callers beyond capacity queue in strict
arrival order; a released slot is handed directly to the oldest waiter so a
newcomer can never overtake the queue.

Usage:
    gate = AdmissionGate(capacity=6)

    async with gate.slot():
        result = await make_request()

    # Or manually (release must run on every exit path)
    await gate.acquire()
    try:
        result = await make_request()
    finally:
        gate.release()
"""

import asyncio
import logging
from collections import deque
from contextlib import asynccontextmanager
from typing import AsyncIterator

logger = logging.getLogger(__name__)


class AdmissionGate:
    """
    Bounded-concurrency gate with FIFO hand-off.

    Attributes:
        capacity: Maximum slots outstanding at any time
        name: Name for logging
    """

    def __init__(self, capacity: int, name: str = "admission_gate"):
        if capacity < 1:
            raise ValueError(f"Gate capacity must be at least 1, got {capacity}")

        self.capacity = capacity
        self.name = name
        self._in_use = 0
        self._peak_in_use = 0
        self._waiters: deque[asyncio.Future] = deque()

        logger.debug(
            f"Admission gate '{name}' initialized",
            extra={"gate_capacity": capacity},
        )

    @property
    def in_use(self) -> int:
        return self._in_use

    @property
    def waiting(self) -> int:
        return sum(1 for fut in self._waiters if not fut.done())

    @property
    def peak_in_use(self) -> int:
        return self._peak_in_use

    def _grant(self) -> None:
        self._in_use += 1
        self._peak_in_use = max(self._peak_in_use, self._in_use)

    async def acquire(self) -> None:
        """Suspend until a slot is free, then take it."""
        if self._in_use < self.capacity and not self._waiters:
            self._grant()
            return

        fut = asyncio.get_running_loop().create_future()
        self._waiters.append(fut)
        logger.debug(
            f"Admission gate '{self.name}' full, queueing",
            extra={
                "gate_capacity": self.capacity,
                "gate_in_use": self._in_use,
                "gate_waiting": len(self._waiters),
            },
        )

        try:
            await fut
        except asyncio.CancelledError:
            if fut.cancelled():
                if fut in self._waiters:
                    self._waiters.remove(fut)
            else:
                # Slot was handed over just before cancellation; pass it on
                self.release()
            raise

    def release(self) -> None:
        """Return a slot, handing it to the oldest live waiter if any."""
        if self._in_use <= 0:
            raise RuntimeError(f"Admission gate '{self.name}' released more than acquired")

        while self._waiters:
            fut = self._waiters.popleft()
            if not fut.done():
                # Ownership transfers; in_use is unchanged
                fut.set_result(None)
                return

        self._in_use -= 1

    @asynccontextmanager
    async def slot(self) -> AsyncIterator[None]:
        """Scoped acquisition: the slot is released on every exit path."""
        await self.acquire()
        try:
            yield
        finally:
            self.release()

    def get_stats(self) -> dict:
        """Current gate occupancy for diagnostics."""
        return {
            "name": self.name,
            "capacity": self.capacity,
            "in_use": self._in_use,
            "waiting": self.waiting,
            "peak_in_use": self._peak_in_use,
        }


__all__ = ["AdmissionGate"]
