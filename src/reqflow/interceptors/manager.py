"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module defining interceptor contracts and the ordered per-phase pipeline.
"""

from __future__ import annotations

import inspect
import itertools
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar, Union

from ..types import RequestDescription, Response

V = TypeVar("V")

SuccessHandler = Callable[[V], Union[V, None, Awaitable[Union[V, None]]]]
FailureHandler = Callable[[BaseException], Any]


@dataclass(frozen=True, slots=True)
class Replay:
    """
    Returned by a response-phase failure handler to ask for one more dispatch.

    ``headers`` are merged over the failed request, typically fresh auth
    headers. A request is replayed at most once.
    """

    headers: Mapping[str, str | None] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class InterceptorEntry(Generic[V]):
    """One registered interceptor."""

    id: int
    on_success: SuccessHandler[V] | None = None
    on_failure: FailureHandler | None = None


@dataclass(frozen=True, slots=True)
class FailureOutcome:
    """Result of running the failure handlers of a phase."""

    recovered: Any = None
    replay: Replay | None = None
    error: BaseException | None = None


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


class InterceptorManager(Generic[V]):
    """
    Ordered interceptor list for one phase.

    Ids are handed out from a monotonic counter and never reused, so ejecting
    one entry never changes the identity of another.
    """

    def __init__(self) -> None:
        self._entries: list[InterceptorEntry[V]] = []
        self._ids = itertools.count()

    def __len__(self) -> int:
        return len(self._entries)

    def entries(self) -> list[InterceptorEntry[V]]:
        return list(self._entries)

    def use(
        self,
        on_success: SuccessHandler[V] | None = None,
        on_failure: FailureHandler | None = None,
    ) -> int:
        entry = InterceptorEntry(id=next(self._ids), on_success=on_success, on_failure=on_failure)
        self._entries.append(entry)
        return entry.id

    def eject(self, interceptor_id: int) -> bool:
        for index, entry in enumerate(self._entries):
            if entry.id == interceptor_id:
                del self._entries[index]
                return True
        return False

    def clear(self) -> None:
        self._entries.clear()

    async def run(self, value: V) -> V:
        """
        Thread ``value`` through every ``on_success`` in registration order.

        A handler returning ``None`` keeps the current value. When a handler
        raises, its own ``on_failure`` may return a replacement value and the
        chain continues; otherwise the error propagates and later entries are
        skipped.
        """
        current = value
        for entry in list(self._entries):
            if entry.on_success is None:
                continue
            try:
                result = await _maybe_await(entry.on_success(current))
            except Exception as error:
                if entry.on_failure is None:
                    raise
                recovered = await _maybe_await(entry.on_failure(error))
                if recovered is None:
                    raise
                result = recovered
            if result is not None:
                current = result
        return current

    async def handle_failure(self, error: BaseException) -> FailureOutcome:
        """
        Offer ``error`` to every ``on_failure`` in registration order.

        A handler may return ``None`` to pass, a value to recover, a ``Replay``
        to request one more dispatch, or raise to replace the error for the
        handlers that follow.
        """
        current = error
        for entry in list(self._entries):
            if entry.on_failure is None:
                continue
            try:
                result = await _maybe_await(entry.on_failure(current))
            except Exception as replaced:
                current = replaced
                continue
            if isinstance(result, Replay):
                return FailureOutcome(replay=result, error=current)
            if result is not None:
                return FailureOutcome(recovered=result)
        return FailureOutcome(error=current)


@dataclass
class InterceptorStack:
    """Container for the request-phase and response-phase pipelines."""

    request: InterceptorManager[RequestDescription]
    response: InterceptorManager[Response[Any]]

    def __init__(
        self,
        request: InterceptorManager[RequestDescription] | None = None,
        response: InterceptorManager[Response[Any]] | None = None,
    ) -> None:
        self.request = request if request is not None else InterceptorManager()
        self.response = response if response is not None else InterceptorManager()
