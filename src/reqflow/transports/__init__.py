"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: transports/__init__.py.
"""

from .base import (
    Transport,
    TransportError,
    TransportRequest,
    TransportResponse,
    TransportTimeoutError,
)
from .httpx_transport import HttpxTransport

__all__ = [
    "Transport",
    "TransportError",
    "TransportTimeoutError",
    "TransportRequest",
    "TransportResponse",
    "HttpxTransport",
]
