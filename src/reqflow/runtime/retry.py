"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: runtime/retry.py.
"""

from __future__ import annotations

import asyncio
import errno
import random
import socket

from ..errors import (
    CancelError,
    HttpClientError,
    NetworkError,
    RequestTimeoutError,
)
from ..transports.base import TransportError, TransportTimeoutError
from ..types import IDEMPOTENT_METHODS, DelayStrategy, RequestDescription
from .contracts import RetryPolicy


def classify_error(
    error: BaseException,
    *,
    request: RequestDescription | None = None,
) -> HttpClientError:
    """Classify exceptions raised around a transport call."""
    if isinstance(error, HttpClientError):
        if error.request is None:
            error.request = request
        return error
    if isinstance(
        error,
        (TransportTimeoutError, asyncio.TimeoutError, TimeoutError, socket.timeout),
    ):
        timeout_s = request.timeout_s if request is not None else None
        message = (
            f"timeout of {timeout_s:g}s exceeded" if timeout_s else "Request timeout"
        )
        return RequestTimeoutError(message, request=request)
    if isinstance(error, TransportError):
        return NetworkError(str(error) or "Network Error", code=error.code, request=request)
    if isinstance(error, (ConnectionError, OSError)):
        code = errno.errorcode.get(error.errno) if error.errno is not None else None
        return NetworkError(str(error) or "Network Error", code=code, request=request)
    return HttpClientError(str(error) or type(error).__name__, request=request)


def should_retry(
    policy: RetryPolicy,
    error: HttpClientError,
    attempt: int,
    request: RequestDescription,
) -> bool:
    """Decide whether ``error`` raised on ``attempt`` (0-based) is retried."""
    if attempt >= policy.max_retries:
        return False
    if policy.idempotent_only and request.method.upper() not in IDEMPOTENT_METHODS:
        return False
    if isinstance(error, CancelError):
        return False
    if policy.should_retry is not None and policy.should_retry(error, attempt, request):
        return True

    status = error.status
    if status is not None:
        if status in policy.retry_status_codes:
            return True
        if status in policy.no_retry_status_codes:
            return False
        if 400 <= status < 500:
            return policy.retry_on_4xx
        return 500 <= status < 600

    return isinstance(error, (NetworkError, RequestTimeoutError))


def compute_delay(
    attempt: int,
    base_delay_s: float,
    strategy: DelayStrategy,
    max_delay_s: float,
    jitter: bool,
) -> float:
    """Backoff delay in seconds before retry number ``attempt + 1``."""
    if strategy == "exponential":
        delay = base_delay_s * (2**attempt)
    elif strategy == "linear":
        delay = base_delay_s * (attempt + 1)
    elif strategy == "fixed":
        delay = base_delay_s
    else:
        raise ValueError(f"Unknown retry delay strategy '{strategy}'")

    if jitter:
        # Only ever compresses the delay, never stretches it.
        delay *= random.uniform(0.5, 1.0)
    return min(delay, max_delay_s)


def policy_delay(policy: RetryPolicy, attempt: int) -> float:
    return compute_delay(
        attempt,
        policy.base_delay_s,
        policy.strategy,
        policy.max_delay_s,
        policy.jitter,
    )
