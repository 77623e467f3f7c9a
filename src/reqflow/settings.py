"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Client-level settings and explicit environment loading.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Mapping

from .types import DEFAULT_CACHE_TTL_S, DelayStrategy, RequestConfig

if TYPE_CHECKING:
    from .runtime.contracts import RetryPolicy

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _default_headers() -> Mapping[str, str]:
    return MappingProxyType({})


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUE_VALUES


@dataclass(frozen=True, slots=True)
class ClientSettings:
    """Defaults applied to every request issued by one ``HttpClient``."""

    base_url: str | None = None
    timeout_s: float | None = 10.0
    headers: Mapping[str, str] = field(default_factory=_default_headers)
    retry_count: int = 3
    retry_delay_s: float = 1.0
    retry_delay_strategy: DelayStrategy = "exponential"
    max_retry_delay_s: float = 30.0
    retry_jitter: bool = True
    concurrency_limit: int = 10
    cache_max_size: int = 100
    cache_ttl_s: float | None = DEFAULT_CACHE_TTL_S

    def __post_init__(self) -> None:
        if self.retry_count < 0:
            raise ValueError("retry_count must be >= 0")
        if self.retry_delay_s < 0:
            raise ValueError("retry_delay_s must be >= 0")
        if self.max_retry_delay_s < 0:
            raise ValueError("max_retry_delay_s must be >= 0")
        if self.timeout_s is not None and self.timeout_s <= 0:
            raise ValueError("timeout_s must be > 0 when provided")
        if self.concurrency_limit < 1:
            raise ValueError("concurrency_limit must be >= 1")
        if self.cache_max_size < 1:
            raise ValueError("cache_max_size must be >= 1")
        if self.retry_delay_strategy not in ("exponential", "linear", "fixed"):
            raise ValueError(
                f"Unknown retry_delay_strategy '{self.retry_delay_strategy}'"
            )

        # Freeze copied headers to avoid post-init mutation side effects.
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))

    @staticmethod
    def from_env() -> "ClientSettings":
        """Load settings from ``REQFLOW_*`` environment variables."""
        timeout_raw = os.getenv("REQFLOW_TIMEOUT_S", "10")
        cache_ttl_raw = os.getenv("REQFLOW_CACHE_TTL_S", str(DEFAULT_CACHE_TTL_S))
        return ClientSettings(
            base_url=os.getenv("REQFLOW_BASE_URL") or None,
            timeout_s=float(timeout_raw) if timeout_raw.strip() else None,
            retry_count=int(os.getenv("REQFLOW_RETRY_COUNT", "3")),
            retry_delay_s=float(os.getenv("REQFLOW_RETRY_DELAY_S", "1.0")),
            retry_delay_strategy=os.getenv(  # type: ignore[arg-type]
                "REQFLOW_RETRY_DELAY_STRATEGY", "exponential"
            ),
            max_retry_delay_s=float(os.getenv("REQFLOW_MAX_RETRY_DELAY_S", "30")),
            retry_jitter=_env_bool("REQFLOW_RETRY_JITTER", True),
            concurrency_limit=int(os.getenv("REQFLOW_CONCURRENCY_LIMIT", "10")),
            cache_max_size=int(os.getenv("REQFLOW_CACHE_MAX_SIZE", "100")),
            cache_ttl_s=float(cache_ttl_raw) if cache_ttl_raw.strip() else None,
        )

    def to_request_config(self) -> RequestConfig:
        """
        Adapt settings into client-level request defaults.

        Retry fields stay unset here: they reach requests through
        ``to_retry_policy()``, so a request config only overrides the client
        policy when the caller sets them explicitly.
        """
        return RequestConfig(
            base_url=self.base_url,
            headers=dict(self.headers),
            timeout_s=self.timeout_s,
        )

    def to_retry_policy(self) -> RetryPolicy:
        from .runtime.contracts import RetryPolicy

        return RetryPolicy(
            max_retries=self.retry_count,
            base_delay_s=self.retry_delay_s,
            strategy=self.retry_delay_strategy,
            max_delay_s=self.max_retry_delay_s,
            jitter=self.retry_jitter,
        )
