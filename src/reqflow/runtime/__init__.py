"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: runtime/__init__.py.
"""

from .cancellation import CancelToken
from .client import HttpClient
from .coalescing import PendingRequestRegistry
from .contracts import DedupePolicy, RetryPolicy
from .limiter import ConcurrencyLimiter, LimiterSlot
from .retry import classify_error, compute_delay, should_retry

__all__ = [
    "HttpClient",
    "RetryPolicy",
    "DedupePolicy",
    "CancelToken",
    "ConcurrencyLimiter",
    "LimiterSlot",
    "PendingRequestRegistry",
    "classify_error",
    "compute_delay",
    "should_retry",
]
