"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Pure builders that layer request configs and resolve them into an immutable
``RequestDescription``.
"""

from __future__ import annotations

from dataclasses import fields, replace
from types import MappingProxyType
from typing import Any, Mapping

from .types import (
    DEFAULT_CACHE_TTL_S,
    HTTP_METHODS,
    CacheOptions,
    RequestConfig,
    RequestDescription,
    default_validate_status,
)
from .utils import build_url, encode_body, merge_headers

_KEYWISE_FIELDS = ("params", "metadata")


def _merge_mapping(
    base: Mapping[str, Any] | None,
    override: Mapping[str, Any] | None,
) -> dict[str, Any] | None:
    if base is None and override is None:
        return None
    merged = dict(base or {})
    merged.update(override or {})
    return merged


def merge_config(base: RequestConfig, override: RequestConfig | None) -> RequestConfig:
    """
    Return a new config with ``override`` layered over ``base``.

    Scalar fields take the override when it is not ``None``. Headers merge
    case-insensitively with the override winning; params and metadata merge
    key-wise. Neither input is modified.
    """
    if override is None:
        return base

    changes: dict[str, Any] = {}
    for item in fields(RequestConfig):
        name = item.name
        base_value = getattr(base, name)
        override_value = getattr(override, name)
        if name == "headers":
            if base_value is None and override_value is None:
                continue
            changes[name] = merge_headers(base_value, override_value)
        elif name in _KEYWISE_FIELDS:
            changes[name] = _merge_mapping(base_value, override_value)
        elif override_value is not None:
            changes[name] = override_value
    return replace(base, **changes)


def resolve_cache_options(
    cache: bool | CacheOptions | None,
    *,
    default_ttl_s: float | None = DEFAULT_CACHE_TTL_S,
) -> CacheOptions | None:
    if cache is None or cache is False:
        return None
    if cache is True:
        return CacheOptions(ttl_s=default_ttl_s)
    return cache


def describe_request(
    config: RequestConfig,
    *,
    default_cache_ttl_s: float | None = DEFAULT_CACHE_TTL_S,
) -> RequestDescription:
    """Resolve a merged config into the description used for dispatch."""
    method = (config.method or "GET").upper()
    if method not in HTTP_METHODS:
        raise ValueError(f"Unsupported HTTP method '{config.method}'")
    if not config.url and not config.base_url:
        raise ValueError("Request requires a url or a base_url")

    headers = merge_headers(config.headers)
    body = None if method in ("GET", "HEAD") else encode_body(config.data, headers)
    return RequestDescription(
        method=method,
        url=build_url(config.base_url, config.url, config.params),
        headers=MappingProxyType(headers),
        params=MappingProxyType(dict(config.params or {})),
        data=config.data,
        body=body,
        timeout_s=config.timeout_s,
        retry_count=config.retry_count,
        retry_delay_s=config.retry_delay_s,
        retry_delay_strategy=config.retry_delay_strategy,
        cache=resolve_cache_options(config.cache, default_ttl_s=default_cache_ttl_s),
        cancel_token=config.cancel_token,
        validate_status=config.validate_status or default_validate_status,
        response_type=config.response_type or "json",
        dedupe=True if config.dedupe is None else config.dedupe,
        metadata=MappingProxyType(dict(config.metadata or {})),
    )


def with_headers(
    description: RequestDescription,
    headers: Mapping[str, str | None],
) -> RequestDescription:
    """Return a copy of ``description`` with ``headers`` merged in."""
    return replace(
        description,
        headers=MappingProxyType(merge_headers(description.headers, headers)),
    )
