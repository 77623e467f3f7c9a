"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: cache/redis.py.
"""

from __future__ import annotations

from typing import Any


class RedisKeyValueStore:
    """``KeyValueStore`` over a ``redis.asyncio`` client for multi-process deployments."""

    def __init__(self, redis_client: Any, *, expire_s: int | None = None) -> None:
        self._redis = redis_client
        self._expire_s = expire_s

    @classmethod
    def from_url(cls, url: str, **kwargs: Any) -> "RedisKeyValueStore":
        try:
            import redis.asyncio as redis
        except ModuleNotFoundError as exc:  # pragma: no cover
            raise RuntimeError(
                "RedisKeyValueStore requires `redis` to be installed."
            ) from exc
        return cls(redis.from_url(url, decode_responses=True), **kwargs)

    async def get(self, key: str) -> str | None:
        blob = await self._redis.get(key)
        if blob is None:
            return None
        if isinstance(blob, bytes):
            return blob.decode("utf-8")
        return blob

    async def set(self, key: str, value: str) -> None:
        if self._expire_s is not None:
            await self._redis.setex(key, int(max(1, self._expire_s)), value)
        else:
            await self._redis.set(key, value)

    async def remove(self, key: str) -> None:
        await self._redis.delete(key)

    async def aclose(self) -> None:
        await self._redis.aclose()
