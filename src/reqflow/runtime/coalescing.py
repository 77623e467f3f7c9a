"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: runtime/coalescing.py.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

T = TypeVar("T")

logger = logging.getLogger("reqflow.runtime.coalescing")


@dataclass(slots=True)
class _Pending(Generic[T]):
    task: asyncio.Task[T]
    waiters: int = 0


class PendingRequestRegistry:
    """
    Deduplicate identical in-flight requests.

    The first caller for a key starts the shared task; later callers await the
    same task. The entry is dropped by a done-callback on the task, so it
    disappears once the execution settles however it ends. Check-and-insert
    has no suspension point, which keeps it atomic on the event loop.
    """

    def __init__(self) -> None:
        self._pending: dict[str, _Pending[Any]] = {}

    def __contains__(self, key: str) -> bool:
        return key in self._pending

    def __len__(self) -> int:
        return len(self._pending)

    def keys(self) -> list[str]:
        return list(self._pending.keys())

    async def run(self, key: str, factory: Callable[[], Awaitable[T]]) -> T:
        entry = self._pending.get(key)
        if entry is None:
            task: asyncio.Task[T] = asyncio.ensure_future(factory())
            entry = _Pending(task=task)
            self._pending[key] = entry
            task.add_done_callback(lambda done, key=key: self._settle(key, done))
        else:
            logger.debug("Joining in-flight request %s", key)

        entry.waiters += 1
        try:
            return await asyncio.shield(entry.task)
        except asyncio.CancelledError:
            if not entry.task.done() and entry.waiters <= 1:
                entry.task.cancel()
            raise
        finally:
            entry.waiters -= 1

    def _settle(self, key: str, task: asyncio.Task[Any]) -> None:
        current = self._pending.get(key)
        if current is not None and current.task is task:
            del self._pending[key]
        if not task.cancelled():
            # Mark the outcome retrieved; callers re-raise it via shield.
            task.exception()
