"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

URL, parameter, header and body helpers used while describing a request.
"""

from __future__ import annotations

import hashlib
import json
import random
import re
import string
import time
from collections.abc import Iterable, Mapping
from typing import Any
from urllib.parse import urlencode

_ABSOLUTE_URL = re.compile(r"^[a-zA-Z][a-zA-Z\d+\-.]*://")
_ID_ALPHABET = string.ascii_lowercase + string.digits


def new_request_id() -> str:
    """Return a unique request id such as ``req_1718000000000_k2j9x0a1b``."""
    suffix = "".join(random.choices(_ID_ALPHABET, k=9))
    return f"req_{int(time.time() * 1000)}_{suffix}"


def is_absolute_url(url: str) -> bool:
    return bool(_ABSOLUTE_URL.match(url))


def combine_urls(base_url: str | None, url: str | None) -> str:
    """Join ``url`` to ``base_url`` with exactly one separating slash."""
    if not url:
        return base_url or ""
    if is_absolute_url(url) or not base_url:
        return url
    return base_url.rstrip("/") + "/" + url.lstrip("/")


def _param_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _omitted(value: Any) -> bool:
    return value is None or value == ""


def param_pairs(params: Mapping[str, Any] | None) -> list[tuple[str, str]]:
    """Flatten params into ``(key, value)`` pairs.

    Sequences become repeated pairs; ``None`` and empty strings are dropped.
    """
    pairs: list[tuple[str, str]] = []
    for key, value in (params or {}).items():
        if _omitted(value):
            continue
        if isinstance(value, (list, tuple, set, frozenset)):
            items: Iterable[Any] = sorted(value, key=str) if isinstance(value, (set, frozenset)) else value
            for item in items:
                if not _omitted(item):
                    pairs.append((str(key), _param_text(item)))
        else:
            pairs.append((str(key), _param_text(value)))
    return pairs


def serialize_params(params: Mapping[str, Any] | None, *, sort: bool = False) -> str:
    """Encode params as a query string."""
    pairs = param_pairs(params)
    if sort:
        pairs.sort()
    return urlencode(pairs)


def build_url(
    base_url: str | None,
    url: str | None,
    params: Mapping[str, Any] | None = None,
) -> str:
    """Resolve the full target URL including serialized query params."""
    full = combine_urls(base_url, url)
    query = serialize_params(params)
    if not query:
        return full
    hash_index = full.find("#")
    if hash_index != -1:
        full = full[:hash_index]
    separator = "&" if "?" in full else "?"
    return f"{full}{separator}{query}"


def normalize_headers(headers: Mapping[str, Any] | None) -> dict[str, str]:
    """Lower-case header names, drop ``None`` values, stringify the rest."""
    normalized: dict[str, str] = {}
    for key, value in (headers or {}).items():
        if value is None:
            continue
        normalized[str(key).lower()] = str(value)
    return normalized


def merge_headers(*sources: Mapping[str, Any] | None) -> dict[str, str]:
    """Case-insensitive merge; later sources win on key collision."""
    merged: dict[str, str] = {}
    for source in sources:
        merged.update(normalize_headers(source))
    return merged


def encode_body(data: Any, headers: dict[str, str]) -> bytes | None:
    """
    Encode a request payload to bytes.

    Mappings and lists default to JSON and set ``content-type`` when the
    caller did not; form-encoded content types encode mappings as a query
    string. ``headers`` is updated in place.
    """
    if data is None:
        return None
    if isinstance(data, (bytes, bytearray, memoryview)):
        return bytes(data)
    content_type = headers.get("content-type", "")
    if isinstance(data, (Mapping, list, tuple)):
        if "application/x-www-form-urlencoded" in content_type and isinstance(data, Mapping):
            return urlencode(param_pairs(data)).encode("utf-8")
        headers.setdefault("content-type", "application/json")
        return json.dumps(data, ensure_ascii=False, default=str).encode("utf-8")
    if isinstance(data, str):
        return data.encode("utf-8")
    return str(data).encode("utf-8")


def body_digest(body: bytes | None) -> str | None:
    if body is None:
        return None
    return hashlib.sha256(body).hexdigest()
