"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Deterministic identities for cache lookups and in-flight deduplication.
"""

from __future__ import annotations

import hashlib
import json
from urllib.parse import parse_qsl, urlsplit, urlunsplit

from ..types import IDEMPOTENT_METHODS, RequestDescription
from ..utils import body_digest


def _canonical_url(url: str) -> tuple[str, list[tuple[str, str]]]:
    """Split ``url`` into its query-less form and sorted query pairs."""
    parts = urlsplit(url)
    query = sorted(parse_qsl(parts.query, keep_blank_values=True))
    bare = urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))
    return bare, query


def _digest(payload: dict[str, object]) -> str:
    normalized = json.dumps(payload, ensure_ascii=True, sort_keys=True, default=str)
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()


def cache_key(request: RequestDescription) -> str:
    """
    Build the cache key for ``request``.

    Headers never participate, and query params are sorted so the insertion
    order of either cannot change the key. The body participates only for
    non-idempotent methods.
    """
    if request.cache is not None and request.cache.key:
        return request.cache.key
    url, query = _canonical_url(request.url)
    payload: dict[str, object] = {
        "method": request.method,
        "url": url,
        "query": query,
    }
    if request.method not in IDEMPOTENT_METHODS:
        payload["body"] = body_digest(request.body)
    return _digest(payload)


def dedupe_key(request: RequestDescription, *, include_body: bool = True) -> str:
    """Build the in-flight identity for ``request``."""
    url, query = _canonical_url(request.url)
    payload: dict[str, object] = {
        "method": request.method,
        "url": url,
        "query": query,
    }
    if include_body and request.body is not None:
        payload["body"] = body_digest(request.body)
    return f"{request.method}:{url}:{_digest(payload)[:16]}"
