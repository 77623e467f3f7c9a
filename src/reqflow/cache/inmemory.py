"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: cache/inmemory.py.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from collections import OrderedDict
from collections.abc import Callable
from typing import Any

from ..types import Response
from .base import CacheEntry, snapshot_response

logger = logging.getLogger("reqflow.cache.inmemory")


class InMemoryCache:
    """
    Process-local bounded cache with FIFO eviction.

    Insertion order is eviction order: reads never promote an entry. Expired
    entries are dropped lazily on read and by ``sweep()``.
    """

    backend_id = "memory"

    def __init__(
        self,
        max_size: int = 100,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_size < 1:
            raise ValueError("max_size must be >= 1")
        self._max_size = max_size
        self._clock = clock
        self._rows: OrderedDict[str, CacheEntry] = OrderedDict()
        self._sweeper: asyncio.Task[None] | None = None

    @property
    def max_size(self) -> int:
        return self._max_size

    def _live(self, key: str) -> CacheEntry | None:
        row = self._rows.get(key)
        if row is None:
            return None
        if row.is_expired(self._clock()):
            del self._rows[key]
            return None
        return row

    def _touch(self, key: str) -> None:
        """Hook for recency-ordered subclasses."""

    def _make_room(self, key: str) -> None:
        if key in self._rows:
            return
        while len(self._rows) >= self._max_size:
            evicted, _ = self._rows.popitem(last=False)
            logger.debug("Evicted cache entry %s", evicted)

    async def get(self, key: str) -> CacheEntry | None:
        row = self._live(key)
        if row is not None:
            self._touch(key)
        return row

    async def set(self, key: str, value: Response[Any], *, ttl_s: float | None = None) -> None:
        self._make_room(key)
        self._rows[key] = CacheEntry(
            key=key,
            response=snapshot_response(value),
            created_at_s=self._clock(),
            ttl_s=ttl_s,
        )

    async def delete(self, key: str) -> bool:
        return self._rows.pop(key, None) is not None

    async def clear(self) -> None:
        self._rows.clear()

    async def has(self, key: str) -> bool:
        return self._live(key) is not None

    async def size(self) -> int:
        return len(self._rows)

    async def keys(self) -> list[str]:
        return list(self._rows.keys())

    async def sweep(self) -> int:
        """Delete every expired entry and return how many were removed."""
        now = self._clock()
        expired = [key for key, row in self._rows.items() if row.is_expired(now)]
        for key in expired:
            del self._rows[key]
        return len(expired)

    def start_sweeper(self, interval_s: float = 60.0) -> None:
        """Run ``sweep()`` every ``interval_s`` on the current event loop."""
        if interval_s <= 0:
            raise ValueError("interval_s must be > 0")
        if self._sweeper is not None and not self._sweeper.done():
            return

        async def _loop() -> None:
            while True:
                await asyncio.sleep(interval_s)
                removed = await self.sweep()
                if removed:
                    logger.debug("Swept %d expired cache entries", removed)

        self._sweeper = asyncio.get_running_loop().create_task(_loop())

    async def aclose(self) -> None:
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._sweeper
        self._sweeper = None


class LRUCache(InMemoryCache):
    """Same contract as ``InMemoryCache`` but reads promote the entry."""

    backend_id = "lru"

    def _touch(self, key: str) -> None:
        self._rows.move_to_end(key)

    def _make_room(self, key: str) -> None:
        if key in self._rows:
            # Re-inserting moves the key to the most recent position.
            del self._rows[key]
        super()._make_room(key)
