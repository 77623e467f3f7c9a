"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: interceptors/__init__.py.
"""

from .auth import (
    AuthInterceptorError,
    api_key_auth,
    basic_auth,
    bearer_auth,
    refresh_on_unauthorized,
)
from .logging import LoggingInterceptor, redact_headers
from .manager import (
    FailureOutcome,
    InterceptorEntry,
    InterceptorManager,
    InterceptorStack,
    Replay,
)

__all__ = [
    "InterceptorManager",
    "InterceptorStack",
    "InterceptorEntry",
    "FailureOutcome",
    "Replay",
    "AuthInterceptorError",
    "bearer_auth",
    "basic_auth",
    "api_key_auth",
    "refresh_on_unauthorized",
    "LoggingInterceptor",
    "redact_headers",
]
