"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Typed runtime policies for request orchestration.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any

from ..types import DelayStrategy

if TYPE_CHECKING:
    from ..errors import HttpClientError
    from ..types import RequestDescription


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Retry semantics for one request path."""

    max_retries: int = 3
    base_delay_s: float = 1.0
    strategy: DelayStrategy = "exponential"
    max_delay_s: float = 30.0
    jitter: bool = True
    idempotent_only: bool = True
    retry_on_4xx: bool = False
    retry_status_codes: tuple[int, ...] = (408, 429, 500, 502, 503, 504)
    no_retry_status_codes: tuple[int, ...] = ()
    should_retry: Callable[[HttpClientError, int, RequestDescription], bool] | None = None
    on_retry: Callable[[HttpClientError, int, RequestDescription], Any] | None = None

    def with_overrides(
        self,
        *,
        max_retries: int | None = None,
        base_delay_s: float | None = None,
        strategy: DelayStrategy | None = None,
    ) -> "RetryPolicy":
        """Return a copy with the non-``None`` per-request overrides applied."""
        changes: dict[str, Any] = {}
        if max_retries is not None:
            changes["max_retries"] = max_retries
        if base_delay_s is not None:
            changes["base_delay_s"] = base_delay_s
        if strategy is not None:
            changes["strategy"] = strategy
        return replace(self, **changes) if changes else self


@dataclass(frozen=True, slots=True)
class DedupePolicy:
    """In-flight request deduplication controls."""

    enabled: bool = True
    include_body: bool = True
