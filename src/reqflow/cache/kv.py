"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Cache backend over a persistent string key/value surface.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable, MutableMapping
from typing import Any, Protocol

from ..types import Response
from .base import CacheEntry

logger = logging.getLogger("reqflow.cache.kv")


class KeyValueStore(Protocol):
    """Minimal persistent store surface: string keys, string values."""

    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str) -> None: ...

    async def remove(self, key: str) -> None: ...


class MappingKeyValueStore:
    """Adapter exposing any ``MutableMapping[str, str]`` (e.g. ``shelve``) as a store."""

    def __init__(self, mapping: MutableMapping[str, str] | None = None) -> None:
        self._mapping: MutableMapping[str, str] = {} if mapping is None else mapping

    async def get(self, key: str) -> str | None:
        return self._mapping.get(key)

    async def set(self, key: str, value: str) -> None:
        self._mapping[key] = value

    async def remove(self, key: str) -> None:
        self._mapping.pop(key, None)


def _encode_entry(entry: CacheEntry) -> str:
    response = entry.response
    return json.dumps(
        {
            "key": entry.key,
            "created_at_s": entry.created_at_s,
            "ttl_s": entry.ttl_s,
            "response": {
                "data": response.data,
                "status": response.status,
                "status_text": response.status_text,
                "headers": dict(response.headers),
                "request_id": response.request_id,
            },
        },
        ensure_ascii=True,
    )


def _decode_entry(blob: str) -> CacheEntry:
    row = json.loads(blob)
    response_row = row["response"]
    return CacheEntry(
        key=row["key"],
        created_at_s=float(row["created_at_s"]),
        ttl_s=row.get("ttl_s"),
        response=Response(
            data=response_row.get("data"),
            status=int(response_row["status"]),
            status_text=response_row.get("status_text", ""),
            headers=dict(response_row.get("headers") or {}),
            request_id=response_row.get("request_id"),
        ),
    )


class KeyValueCache:
    """
    Best-effort persistent cache with FIFO eviction.

    Entries are JSON documents stored under ``prefix + key``; insertion order is
    kept in an index document under ``prefix + "__index__"``. Write failures
    (for example a full store) are logged and swallowed so caching never fails
    a request.
    """

    backend_id = "kv"

    def __init__(
        self,
        store: KeyValueStore,
        *,
        prefix: str = "reqflow:cache:",
        max_size: int = 50,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if max_size < 1:
            raise ValueError("max_size must be >= 1")
        self._store = store
        self._prefix = prefix
        self._max_size = max_size
        self._clock = clock

    @property
    def _index_key(self) -> str:
        return f"{self._prefix}__index__"

    def _entry_key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    async def _read_index(self) -> list[str]:
        try:
            blob = await self._store.get(self._index_key)
        except Exception as exc:
            logger.warning("Cache index read failed: %s", exc)
            return []
        if not blob:
            return []
        try:
            keys = json.loads(blob)
        except ValueError:
            return []
        return [key for key in keys if isinstance(key, str)] if isinstance(keys, list) else []

    async def _write_index(self, keys: list[str]) -> None:
        await self._store.set(self._index_key, json.dumps(keys, ensure_ascii=True))

    async def _forget(self, key: str) -> None:
        try:
            await self._store.remove(self._entry_key(key))
            keys = await self._read_index()
            if key in keys:
                keys.remove(key)
                await self._write_index(keys)
        except Exception as exc:
            logger.warning("Cache delete failed for %s: %s", key, exc)

    async def get(self, key: str) -> CacheEntry | None:
        try:
            blob = await self._store.get(self._entry_key(key))
        except Exception as exc:
            logger.warning("Cache read failed for %s: %s", key, exc)
            return None
        if blob is None:
            return None
        try:
            entry = _decode_entry(blob)
        except (ValueError, KeyError, TypeError):
            await self._forget(key)
            return None
        if entry.is_expired(self._clock()):
            await self._forget(key)
            return None
        return entry

    async def set(self, key: str, value: Response[Any], *, ttl_s: float | None = None) -> None:
        entry = CacheEntry(
            key=key,
            response=value,
            created_at_s=self._clock(),
            ttl_s=ttl_s,
        )
        try:
            blob = _encode_entry(entry)
            keys = await self._read_index()
            await self._store.set(self._entry_key(key), blob)
        except Exception as exc:
            logger.warning("Cache write failed for %s: %s", key, exc)
            return

        if key in keys:
            keys.remove(key)
        evicted = keys[: max(0, len(keys) + 1 - self._max_size)]
        keys = keys[len(evicted):]
        keys.append(key)
        try:
            await self._write_index(keys)
        except Exception as exc:
            # An entry missing from the index could never be cleared or evicted.
            logger.warning("Cache write failed for %s: %s", key, exc)
            await self._discard(key)
            return

        for oldest in evicted:
            await self._discard(oldest)

    async def _discard(self, key: str) -> None:
        try:
            await self._store.remove(self._entry_key(key))
        except Exception as exc:
            logger.warning("Cache delete failed for %s: %s", key, exc)

    async def delete(self, key: str) -> bool:
        present = key in await self._read_index()
        await self._forget(key)
        return present

    async def clear(self) -> None:
        for key in await self._read_index():
            await self._discard(key)
        try:
            await self._store.remove(self._index_key)
        except Exception as exc:
            logger.warning("Cache index delete failed: %s", exc)

    async def has(self, key: str) -> bool:
        return await self.get(key) is not None

    async def size(self) -> int:
        return len(await self._read_index())

    async def keys(self) -> list[str]:
        return await self._read_index()
