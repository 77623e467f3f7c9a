"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: cache/registry.py.
"""

from __future__ import annotations

from collections.abc import Callable
from threading import Lock

from .base import CacheBackend
from .inmemory import InMemoryCache, LRUCache

CacheFactory = Callable[[int], CacheBackend]

_REGISTRY: dict[str, CacheFactory] = {
    "memory": lambda max_size: InMemoryCache(max_size=max_size),
    "lru": lambda max_size: LRUCache(max_size=max_size),
}
_LOCK = Lock()


class CacheBackendError(RuntimeError):
    """Raised when cache backend resolution fails."""


def register_cache_backend(
    backend_id: str,
    factory: CacheFactory,
    *,
    overwrite: bool = False,
) -> None:
    """Register one cache backend factory by id.

    Factories receive the configured maximum size and must return a fresh
    backend; clients never share cache state through the registry.
    """
    key = backend_id.strip().lower()
    if not key:
        raise CacheBackendError("Cache backend id must be non-empty")

    with _LOCK:
        if key in _REGISTRY and not overwrite:
            raise CacheBackendError(f"Cache backend already registered: {key}")
        _REGISTRY[key] = factory


def create_cache(
    backend: str | CacheBackend | None = None,
    *,
    max_size: int = 100,
) -> CacheBackend:
    """Resolve a cache backend instance from id/instance/default."""
    if backend is None:
        backend = "memory"
    if not isinstance(backend, str):
        return backend

    key = backend.strip().lower()
    with _LOCK:
        factory = _REGISTRY.get(key)
    if factory is None:
        raise CacheBackendError(f"Unknown cache backend '{backend}'")
    return factory(max_size)


def list_cache_backends() -> list[str]:
    """List registered cache backend ids."""
    with _LOCK:
        return sorted(_REGISTRY.keys())
