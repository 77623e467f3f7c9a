"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

This module defines the request/response types shared by the orchestrator,
its cache backends and its interceptors.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import (
    TYPE_CHECKING,
    Any,
    Generic,
    Literal,
    TypeAlias,
    TypeVar,
)

from .utils import new_request_id

if TYPE_CHECKING:
    from .cache.base import CacheBackend
    from .errors import HttpClientError
    from .runtime.cancellation import CancelToken


T = TypeVar("T")

HttpMethod = Literal["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]
ResponseType = Literal["json", "text", "bytes"]
DelayStrategy = Literal["exponential", "linear", "fixed"]
StatusValidator: TypeAlias = Callable[[int], bool]

HTTP_METHODS: frozenset[str] = frozenset(
    {"GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"}
)
IDEMPOTENT_METHODS: frozenset[str] = frozenset({"GET", "HEAD", "OPTIONS", "PUT", "DELETE"})

DEFAULT_CACHE_TTL_S = 300.0


def default_validate_status(status: int) -> bool:
    """Treat 2xx as success."""
    return 200 <= status < 300


@dataclass(frozen=True, slots=True)
class CacheOptions:
    """Per-request cache controls."""

    ttl_s: float | None = DEFAULT_CACHE_TTL_S
    key: str | None = None
    storage: CacheBackend | None = None
    methods: tuple[str, ...] = ("GET", "HEAD")


@dataclass(frozen=True, slots=True)
class RequestConfig:
    """
    Logical request description as supplied by callers.

    Every field is optional so the same type serves as client defaults and as
    per-request overrides; ``merge_config`` layers them field by field.
    """

    url: str | None = None
    method: str | None = None
    base_url: str | None = None
    headers: Mapping[str, str | None] | None = None
    params: Mapping[str, Any] | None = None
    data: Any = None
    timeout_s: float | None = None
    retry_count: int | None = None
    retry_delay_s: float | None = None
    retry_delay_strategy: DelayStrategy | None = None
    cache: bool | CacheOptions | None = None
    cancel_token: CancelToken | None = None
    validate_status: StatusValidator | None = None
    response_type: ResponseType | None = None
    dedupe: bool | None = None
    metadata: Mapping[str, Any] | None = None


@dataclass(frozen=True, slots=True)
class RequestDescription:
    """Fully resolved request, immutable for the duration of one attempt."""

    method: str
    url: str
    headers: Mapping[str, str] = field(default_factory=dict)
    params: Mapping[str, Any] = field(default_factory=dict)
    data: Any = None
    body: bytes | None = None
    timeout_s: float | None = None
    retry_count: int | None = None
    retry_delay_s: float | None = None
    retry_delay_strategy: DelayStrategy | None = None
    cache: CacheOptions | None = None
    cancel_token: CancelToken | None = None
    validate_status: StatusValidator = default_validate_status
    response_type: ResponseType = "json"
    dedupe: bool = True
    metadata: Mapping[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class AttemptState:
    """Mutable per-execution bookkeeping shared across retries."""

    request_id: str = field(default_factory=new_request_id)
    started_at_s: float = field(default_factory=time.monotonic)
    attempt: int = 0
    last_error: HttpClientError | None = None
    replayed: bool = False

    def elapsed_s(self) -> float:
        return time.monotonic() - self.started_at_s


@dataclass(slots=True)
class Response(Generic[T]):
    """Response returned to callers of ``HttpClient.execute``."""

    data: T
    status: int
    status_text: str = ""
    headers: dict[str, str] = field(default_factory=dict)
    config: RequestDescription | None = None
    duration_s: float = 0.0
    from_cache: bool = False
    request_id: str | None = None
    retry_count: int = 0

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300
