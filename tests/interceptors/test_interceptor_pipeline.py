from __future__ import annotations

import asyncio
from dataclasses import replace

import pytest

from reqflow import RequestConfig, describe_request
from reqflow.errors import HttpClientError
from reqflow.interceptors import InterceptorManager, InterceptorStack, Replay


def run_async(coro):
    return asyncio.run(coro)


def test_handlers_run_in_registration_order_with_sync_and_async_mix():
    async def scenario() -> None:
        manager: InterceptorManager[list[str]] = InterceptorManager()

        def first(value):
            return value + ["first"]

        async def second(value):
            await asyncio.sleep(0)
            return value + ["second"]

        def observe(value):
            value.append("observed")

        manager.use(first)
        manager.use(second)
        manager.use(observe)

        assert await manager.run([]) == ["first", "second", "observed"]

    run_async(scenario())


def test_eject_keeps_other_ids_stable():
    async def scenario() -> None:
        manager: InterceptorManager[int] = InterceptorManager()
        add_one = manager.use(lambda value: value + 1)
        double = manager.use(lambda value: value * 2)
        add_ten = manager.use(lambda value: value + 10)

        assert manager.eject(double) is True
        assert manager.eject(double) is False
        assert [entry.id for entry in manager.entries()] == [add_one, add_ten]

        fresh = manager.use(lambda value: value - 1)
        assert fresh not in (add_one, double, add_ten)
        assert await manager.run(1) == 11
        assert len(manager) == 3

        manager.clear()
        assert await manager.run(1) == 1

    run_async(scenario())


def test_failing_handler_skips_remaining_entries():
    async def scenario() -> None:
        manager: InterceptorManager[int] = InterceptorManager()
        seen: list[int] = []

        def explode(value):
            raise KeyError("missing")

        manager.use(explode)
        manager.use(lambda value: seen.append(value))

        with pytest.raises(KeyError):
            await manager.run(1)
        assert seen == []

    run_async(scenario())


def test_own_failure_handler_can_recover_and_continue():
    async def scenario() -> None:
        manager: InterceptorManager[int] = InterceptorManager()

        def explode(value):
            raise ValueError("bad")

        manager.use(explode, lambda error: 100)
        manager.use(lambda value: value + 1)
        assert await manager.run(1) == 101

        declining: InterceptorManager[int] = InterceptorManager()
        declining.use(explode, lambda error: None)
        with pytest.raises(ValueError):
            await declining.run(1)

    run_async(scenario())


def test_handle_failure_passes_recovers_replays_or_replaces():
    async def scenario() -> None:
        original = HttpClientError("boom")

        passing: InterceptorManager[int] = InterceptorManager()
        passing.use(None, lambda error: None)
        outcome = await passing.handle_failure(original)
        assert outcome.error is original
        assert outcome.recovered is None

        recovering: InterceptorManager[int] = InterceptorManager()
        recovering.use(None, lambda error: None)
        recovering.use(None, lambda error: 42)
        recovering.use(None, lambda error: pytest.fail("must not run"))
        assert (await recovering.handle_failure(original)).recovered == 42

        replaying: InterceptorManager[int] = InterceptorManager()

        async def ask_replay(error):
            return Replay(headers={"authorization": "Bearer new"})

        replaying.use(None, ask_replay)
        outcome = await replaying.handle_failure(original)
        assert outcome.replay == Replay(headers={"authorization": "Bearer new"})

        replacing: InterceptorManager[int] = InterceptorManager()
        replacement = RuntimeError("translated")
        seen: list[BaseException] = []

        def translate(error):
            raise replacement

        replacing.use(None, translate)
        replacing.use(None, lambda error: seen.append(error))
        outcome = await replacing.handle_failure(original)
        assert outcome.error is replacement
        assert seen == [replacement]

    run_async(scenario())


def test_stack_phases_are_independent():
    async def scenario() -> None:
        stack = InterceptorStack()
        request = describe_request(RequestConfig(url="https://api.test/a"))

        stack.request.use(lambda value: replace(value, metadata={"tagged": True}))
        tagged = await stack.request.run(request)
        assert tagged.metadata == {"tagged": True}
        assert request.metadata == {}
        assert len(stack.response) == 0

        shared = InterceptorManager()
        assert InterceptorStack(request=shared).request is shared

    run_async(scenario())
