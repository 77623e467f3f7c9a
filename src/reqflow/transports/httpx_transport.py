"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: transports/httpx_transport.py.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from .base import TransportError, TransportRequest, TransportResponse, TransportTimeoutError

logger = logging.getLogger("reqflow.transports.httpx")


class HttpxTransport:
    """Transport backed by ``httpx.AsyncClient``.

    Deadlines and retries are owned by the orchestrator, so the client is
    created without its own timeout unless one is passed explicitly.
    """

    def __init__(self, client: httpx.AsyncClient | None = None, **client_kwargs: Any) -> None:
        self._owns_client = client is None
        if client is None:
            client_kwargs.setdefault("timeout", None)
            client = httpx.AsyncClient(**client_kwargs)
        self._client = client

    async def send(self, request: TransportRequest) -> TransportResponse:
        try:
            response = await self._client.request(
                request.method,
                request.url,
                headers=dict(request.headers),
                content=request.body,
            )
        except httpx.TimeoutException as exc:
            raise TransportTimeoutError(str(exc) or "Request timeout") from exc
        except httpx.ConnectError as exc:
            raise TransportError(str(exc) or "Connection failed", code="ECONNREFUSED") from exc
        except httpx.TransportError as exc:
            raise TransportError(str(exc) or "Network Error", code="ECONNRESET") from exc

        logger.debug(
            "%s %s -> %d (%d bytes)",
            request.method,
            request.url,
            response.status_code,
            len(response.content),
        )
        return TransportResponse(
            status=response.status_code,
            status_text=response.reason_phrase,
            headers={key.lower(): value for key, value in response.headers.items()},
            body=response.content,
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
