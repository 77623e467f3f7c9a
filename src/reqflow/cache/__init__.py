"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: cache/__init__.py.
"""

from .base import CacheBackend, CacheEntry, snapshot_response
from .inmemory import InMemoryCache, LRUCache
from .kv import KeyValueCache, KeyValueStore, MappingKeyValueStore
from .redis import RedisKeyValueStore
from .registry import (
    CacheBackendError,
    create_cache,
    list_cache_backends,
    register_cache_backend,
)

__all__ = [
    "CacheBackend",
    "CacheEntry",
    "snapshot_response",
    "InMemoryCache",
    "LRUCache",
    "KeyValueCache",
    "KeyValueStore",
    "MappingKeyValueStore",
    "RedisKeyValueStore",
    "CacheBackendError",
    "register_cache_backend",
    "create_cache",
    "list_cache_backends",
]
