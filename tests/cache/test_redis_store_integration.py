from __future__ import annotations

import os
import uuid

import pytest

from reqflow import Response
from reqflow.cache import KeyValueCache, RedisKeyValueStore


def _redis_url() -> str | None:
    return os.getenv("REQFLOW_TEST_REDIS_URL")


@pytest.mark.skipif(_redis_url() is None, reason="REQFLOW_TEST_REDIS_URL is not set")
@pytest.mark.asyncio
async def test_kv_cache_over_real_redis():
    pytest.importorskip("redis.asyncio")
    store = RedisKeyValueStore.from_url(_redis_url(), expire_s=60)
    prefix = f"itest:cache:{uuid.uuid4().hex}:"
    cache = KeyValueCache(store, prefix=prefix, max_size=2)

    try:
        await cache.set("a", Response(data={"n": 1}, status=200), ttl_s=30)
        await cache.set("b", Response(data={"n": 2}, status=200), ttl_s=30)
        await cache.set("c", Response(data={"n": 3}, status=200), ttl_s=30)

        assert await cache.keys() == ["b", "c"]
        entry = await cache.get("c")
        assert entry is not None
        assert entry.response.data == {"n": 3}
    finally:
        await cache.clear()
        await store.aclose()
