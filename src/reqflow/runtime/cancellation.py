"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: runtime/cancellation.py.
"""

from __future__ import annotations

import asyncio

from ..errors import CancelError


class CancelToken:
    """Caller-owned cancellation signal for one or more requests.

    Triggering the token aborts the in-flight transport call (or the backoff
    sleep between retries) of every request carrying it.

    Examples:
        >>> token = CancelToken()
        >>> task = asyncio.create_task(client.get("/slow", cancel_token=token))
        >>> token.cancel("user navigated away")
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason: str | None = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = "Request canceled") -> None:
        """Signal cancellation. Later calls keep the first reason."""
        if self._event.is_set():
            return
        self.reason = reason
        self._event.set()

    async def wait(self) -> None:
        """Block until the token is cancelled."""
        await self._event.wait()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise CancelError(self.reason or "Request canceled")
