"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: cache/base.py.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, replace
from typing import Any, Protocol

from ..types import Response


@dataclass(frozen=True, slots=True)
class CacheEntry:
    """One cached response snapshot with expiration metadata."""

    key: str
    response: Response[Any]
    created_at_s: float
    ttl_s: float | None = None

    def is_expired(self, now_s: float) -> bool:
        if self.ttl_s is None:
            return False
        return now_s - self.created_at_s >= self.ttl_s


def snapshot_response(response: Response[Any]) -> Response[Any]:
    """Detached copy so later mutation by callers never leaks into the cache."""
    return replace(
        response,
        data=copy.deepcopy(response.data),
        headers=dict(response.headers),
    )


class CacheBackend(Protocol):
    """Protocol implemented by cache backends used by the orchestrator."""

    backend_id: str

    async def get(self, key: str) -> CacheEntry | None: ...

    async def set(
        self, key: str, value: Response[Any], *, ttl_s: float | None = None
    ) -> None: ...

    async def delete(self, key: str) -> bool: ...

    async def clear(self) -> None: ...

    async def has(self, key: str) -> bool: ...

    async def size(self) -> int: ...

    async def keys(self) -> list[str]: ...
