"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: runtime/timeouts.py.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

from ..errors import CancelError
from .cancellation import CancelToken

T = TypeVar("T")


async def await_with_timeout(
    awaitable: Awaitable[T],
    timeout_s: float | None,
    *,
    cancel_token: CancelToken | None = None,
) -> T:
    """Await value with optional deadline and cancellation token.

    Raises ``asyncio.TimeoutError`` when the deadline elapses and
    ``CancelError`` when the token fires first. The wrapped awaitable is
    cancelled in both cases.
    """
    if cancel_token is None:
        if timeout_s is None:
            return await awaitable
        return await asyncio.wait_for(awaitable, timeout=timeout_s)

    if cancel_token.cancelled:
        if asyncio.iscoroutine(awaitable):
            awaitable.close()
        cancel_token.raise_if_cancelled()

    call = asyncio.ensure_future(awaitable)
    watcher = asyncio.ensure_future(cancel_token.wait())
    try:
        done, _ = await asyncio.wait(
            {call, watcher},
            timeout=timeout_s,
            return_when=asyncio.FIRST_COMPLETED,
        )
    finally:
        watcher.cancel()
        if not call.done():
            call.cancel()

    if call in done:
        return call.result()
    if watcher in done:
        raise CancelError(cancel_token.reason or "Request canceled")
    raise asyncio.TimeoutError()


async def sleep_with_cancel(delay_s: float, cancel_token: CancelToken | None) -> None:
    """Sleep for ``delay_s`` unless the token fires first."""
    if delay_s <= 0:
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()
        return
    await await_with_timeout(asyncio.sleep(delay_s), None, cancel_token=cancel_token)
