"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: __init__.py.
"""

from __future__ import annotations

from .cache import (
    CacheBackend,
    InMemoryCache,
    KeyValueCache,
    LRUCache,
    create_cache,
    register_cache_backend,
)
from .config import describe_request, merge_config
from .errors import (
    AuthenticationError,
    AuthorizationError,
    CancelError,
    ClientHttpError,
    HttpClientError,
    HttpStatusError,
    NetworkError,
    NotFoundError,
    ParseError,
    RateLimitError,
    RequestTimeoutError,
    ServerHttpError,
)
from .interceptors import (
    InterceptorManager,
    InterceptorStack,
    LoggingInterceptor,
    Replay,
    api_key_auth,
    basic_auth,
    bearer_auth,
    refresh_on_unauthorized,
)
from .runtime import (
    CancelToken,
    ConcurrencyLimiter,
    DedupePolicy,
    HttpClient,
    RetryPolicy,
)
from .settings import ClientSettings
from .transports import HttpxTransport, Transport, TransportRequest, TransportResponse
from .types import CacheOptions, RequestConfig, RequestDescription, Response

__all__ = [
    "HttpClient",
    "ClientSettings",
    "RequestConfig",
    "RequestDescription",
    "CacheOptions",
    "Response",
    "merge_config",
    "describe_request",
    "RetryPolicy",
    "DedupePolicy",
    "CancelToken",
    "ConcurrencyLimiter",
    "CacheBackend",
    "InMemoryCache",
    "LRUCache",
    "KeyValueCache",
    "create_cache",
    "register_cache_backend",
    "InterceptorManager",
    "InterceptorStack",
    "Replay",
    "LoggingInterceptor",
    "bearer_auth",
    "basic_auth",
    "api_key_auth",
    "refresh_on_unauthorized",
    "Transport",
    "TransportRequest",
    "TransportResponse",
    "HttpxTransport",
    "HttpClientError",
    "NetworkError",
    "RequestTimeoutError",
    "CancelError",
    "HttpStatusError",
    "ClientHttpError",
    "ServerHttpError",
    "AuthenticationError",
    "AuthorizationError",
    "NotFoundError",
    "RateLimitError",
    "ParseError",
]
