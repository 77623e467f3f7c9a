"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Transport contract consumed by the request orchestrator.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from ..runtime.cancellation import CancelToken


class TransportError(Exception):
    """Raised by transports when no HTTP response could be obtained."""

    def __init__(self, message: str, *, code: str | None = None) -> None:
        super().__init__(message)
        self.code = code


class TransportTimeoutError(TransportError):
    """Raised by transports that enforce their own deadline."""

    def __init__(self, message: str = "Request timeout") -> None:
        super().__init__(message, code="ECONNABORTED")


@dataclass(frozen=True, slots=True)
class TransportRequest:
    """One wire-level call handed to the transport."""

    method: str
    url: str
    headers: Mapping[str, str] = field(default_factory=dict)
    body: bytes | None = None
    timeout_s: float | None = None
    cancel_token: CancelToken | None = None


@dataclass(frozen=True, slots=True)
class TransportResponse:
    """Raw response returned by the transport with the body fully read."""

    status: int
    status_text: str = ""
    headers: Mapping[str, str] = field(default_factory=dict)
    body: bytes = b""


class Transport(Protocol):
    """Async HTTP call primitive."""

    async def send(self, request: TransportRequest) -> TransportResponse: ...

    async def aclose(self) -> None: ...
