"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: runtime/limiter.py.
"""

from __future__ import annotations

import asyncio
from collections import deque
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager


class LimiterSlot:
    """Release handle for one acquired limiter slot."""

    __slots__ = ("_limiter", "_released")

    def __init__(self, limiter: ConcurrencyLimiter) -> None:
        self._limiter = limiter
        self._released = False

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> None:
        if self._released:
            return
        self._released = True
        self._limiter._release()


class ConcurrencyLimiter:
    """
    Bounds how many units of work run at once; excess callers wait in FIFO order.

    A freed slot is handed directly to the oldest waiter, so ``in_use`` never
    exceeds ``capacity`` and later arrivals cannot overtake queued ones.
    """

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError("ConcurrencyLimiter capacity must be >= 1")
        self._capacity = capacity
        self._in_use = 0
        self._waiters: deque[asyncio.Future[None]] = deque()

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def in_use(self) -> int:
        return self._in_use

    @property
    def waiting(self) -> int:
        return sum(1 for waiter in self._waiters if not waiter.done())

    async def acquire(self) -> LimiterSlot:
        if self._in_use < self._capacity and not self.waiting:
            self._in_use += 1
            return LimiterSlot(self)

        waiter: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        try:
            await waiter
        except asyncio.CancelledError:
            if waiter.done() and not waiter.cancelled():
                # Slot was handed over just before cancellation; pass it on.
                self._release()
            else:
                try:
                    self._waiters.remove(waiter)
                except ValueError:
                    pass
            raise
        return LimiterSlot(self)

    def _release(self) -> None:
        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                waiter.set_result(None)
                return
        self._in_use -= 1

    @asynccontextmanager
    async def slot(self) -> AsyncIterator[LimiterSlot]:
        """Hold one slot for the duration of the block."""
        handle = await self.acquire()
        try:
            yield handle
        finally:
            handle.release()
