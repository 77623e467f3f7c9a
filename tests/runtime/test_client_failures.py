from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

import pytest

from reqflow import (
    ClientSettings,
    HttpClient,
    Response,
    RetryPolicy,
    TransportRequest,
    TransportResponse,
    bearer_auth,
    refresh_on_unauthorized,
)
from reqflow.errors import (
    AuthenticationError,
    CancelError,
    NetworkError,
    RequestTimeoutError,
    ServerHttpError,
)
from reqflow.runtime import CancelToken
from reqflow.transports import TransportError


def run_async(coro):
    return asyncio.run(coro)


def _json(status: int, payload: Any = None) -> TransportResponse:
    return TransportResponse(
        status=status,
        headers={"content-type": "application/json"},
        body=json.dumps(payload).encode("utf-8") if payload is not None else b"",
    )


class _ScriptedTransport:
    """Replays a script of outcomes; the last entry repeats."""

    def __init__(self, *outcomes: Any, delay_s: float = 0.0) -> None:
        self.outcomes = list(outcomes) or [_json(200, {"ok": True})]
        self.delay_s = delay_s
        self.calls: list[TransportRequest] = []

    async def send(self, request: TransportRequest) -> TransportResponse:
        self.calls.append(request)
        if self.delay_s:
            await asyncio.sleep(self.delay_s)
        index = min(len(self.calls) - 1, len(self.outcomes) - 1)
        outcome = self.outcomes[index]
        if callable(outcome):
            outcome = outcome(request)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    async def aclose(self) -> None:
        return None


def _client(transport: Any, **settings: Any) -> HttpClient:
    values: dict[str, Any] = {
        "base_url": "https://api.test",
        "retry_delay_s": 0.001,
        "retry_jitter": False,
    }
    values.update(settings)
    return HttpClient(settings=ClientSettings(**values), transport=transport)


def test_transient_status_is_retried_until_success(caplog):
    caplog.set_level(logging.WARNING, logger="reqflow.runtime.client")

    async def scenario() -> Response[Any]:
        transport = _ScriptedTransport(_json(503), _json(503), _json(200, {"ok": True}))
        client = _client(transport, retry_count=3)
        response = await client.get("/orders")
        assert len(transport.calls) == 3
        return response

    response = run_async(scenario())
    assert response.status == 200
    assert response.retry_count == 2
    assert sum("Retrying GET" in record.getMessage() for record in caplog.records) == 2


def test_exhausted_retries_raise_last_error_with_retry_count():
    async def scenario() -> None:
        transport = _ScriptedTransport(_json(500, {"n": 1}), _json(500, {"n": 2}), _json(502, {"n": 3}))
        client = _client(transport, retry_count=2)

        with pytest.raises(ServerHttpError) as exc_info:
            await client.get("/orders")
        assert exc_info.value.status == 502
        assert exc_info.value.retry_count == 2
        assert len(transport.calls) == 3
        assert client.limiter.in_use == 0
        assert client.pending_count == 0

    run_async(scenario())


def test_non_idempotent_and_client_errors_are_not_retried():
    async def scenario() -> None:
        transport = _ScriptedTransport(_json(503))
        client = _client(transport)
        with pytest.raises(ServerHttpError):
            await client.post("/orders", {"sku": "a"})
        assert len(transport.calls) == 1

        bad_request = _ScriptedTransport(_json(400))
        client = _client(bad_request)
        with pytest.raises(Exception) as exc_info:
            await client.get("/orders")
        assert exc_info.value.code == "ERR_BAD_REQUEST"
        assert len(bad_request.calls) == 1

    run_async(scenario())


def test_network_errors_are_classified_and_retried():
    async def scenario() -> None:
        transport = _ScriptedTransport(
            TransportError("connection reset", code="ECONNRESET"),
            ConnectionResetError(104, "reset by peer"),
            _json(200, {"ok": True}),
        )
        client = _client(transport)
        response = await client.get("/health")
        assert response.retry_count == 2

        failing = _ScriptedTransport(TransportError("refused", code="ECONNREFUSED"))
        client = _client(failing, retry_count=1)
        with pytest.raises(NetworkError) as exc_info:
            await client.get("/health")
        assert exc_info.value.code == "ECONNREFUSED"
        assert isinstance(exc_info.value.__cause__, TransportError)
        assert exc_info.value.retry_count == 1

    run_async(scenario())


def test_per_request_retry_count_overrides_policy():
    async def scenario() -> None:
        transport = _ScriptedTransport(_json(503))
        client = _client(transport, retry_count=5)
        with pytest.raises(ServerHttpError):
            await client.get("/orders", retry_count=0)
        assert len(transport.calls) == 1

    run_async(scenario())


def test_retry_policy_hook_is_called_per_retry():
    async def scenario() -> None:
        seen: list[tuple[int, int | None]] = []
        policy = RetryPolicy(
            max_retries=2,
            base_delay_s=0.001,
            jitter=False,
            on_retry=lambda error, attempt, request: seen.append((attempt, error.status)),
        )
        transport = _ScriptedTransport(_json(503), _json(429), _json(200, {}))
        client = HttpClient(
            settings=ClientSettings(base_url="https://api.test", retry_count=2, retry_delay_s=0.001),
            transport=transport,
            retry_policy=policy,
        )
        await client.get("/orders")
        assert seen == [(0, 503), (1, 429)]

    run_async(scenario())


def test_explicit_retry_policy_wins_over_settings_defaults():
    async def scenario() -> None:
        loop = asyncio.get_running_loop()
        settings = ClientSettings(base_url="https://api.test", retry_count=3, retry_delay_s=5.0)

        no_retries = _ScriptedTransport(_json(503))
        client = HttpClient(
            settings=settings,
            transport=no_retries,
            retry_policy=RetryPolicy(max_retries=0),
        )
        with pytest.raises(ServerHttpError) as exc_info:
            await client.get("/orders")
        assert len(no_retries.calls) == 1
        assert exc_info.value.retry_count == 0

        one_retry = _ScriptedTransport(_json(503))
        client = HttpClient(
            settings=settings,
            transport=one_retry,
            retry_policy=RetryPolicy(max_retries=1, base_delay_s=0.0, strategy="fixed", jitter=False),
        )
        started = loop.time()
        with pytest.raises(ServerHttpError):
            await client.get("/orders")
        assert len(one_retry.calls) == 2
        assert loop.time() - started < 1.0

        # A per-request value still overrides the explicit policy.
        overridden = _ScriptedTransport(_json(503))
        client = HttpClient(
            settings=settings,
            transport=overridden,
            retry_policy=RetryPolicy(max_retries=0, base_delay_s=0.0, jitter=False),
        )
        with pytest.raises(ServerHttpError):
            await client.get("/orders", retry_count=2)
        assert len(overridden.calls) == 3

    run_async(scenario())


def test_timeout_rejects_and_releases_resources():
    async def scenario() -> None:
        transport = _ScriptedTransport(_json(200, {}), delay_s=1.0)
        client = _client(transport, retry_count=0)

        with pytest.raises(RequestTimeoutError) as exc_info:
            await client.get("/slow", timeout_s=0.02)
        assert exc_info.value.code == "ECONNABORTED"
        assert exc_info.value.message == "timeout of 0.02s exceeded"
        assert client.limiter.in_use == 0
        assert client.pending_count == 0

    run_async(scenario())


def test_timeout_applies_even_with_cancel_token():
    async def scenario() -> None:
        transport = _ScriptedTransport(_json(200, {}), delay_s=1.0)
        client = _client(transport, retry_count=0)
        with pytest.raises(RequestTimeoutError):
            await client.get("/slow", timeout_s=0.02, cancel_token=CancelToken())

    run_async(scenario())


def test_cancel_token_aborts_transport_call():
    async def scenario() -> None:
        transport = _ScriptedTransport(_json(200, {}), delay_s=1.0)
        client = _client(transport)
        token = CancelToken()
        asyncio.get_running_loop().call_later(0.02, token.cancel, "user left")

        with pytest.raises(CancelError) as exc_info:
            await client.get("/slow", cancel_token=token)
        assert exc_info.value.code == "ERR_CANCELED"
        assert exc_info.value.message == "user left"
        assert len(transport.calls) == 1
        assert client.limiter.in_use == 0
        assert client.pending_count == 0

    run_async(scenario())


def test_cancel_token_interrupts_backoff_sleep():
    async def scenario() -> None:
        transport = _ScriptedTransport(_json(503))
        client = _client(transport, retry_delay_s=10.0)
        token = CancelToken()
        asyncio.get_running_loop().call_later(0.05, token.cancel)

        with pytest.raises(CancelError):
            await client.get("/orders", cancel_token=token)
        assert len(transport.calls) == 1
        assert client.limiter.in_use == 0

    run_async(scenario())


def test_cancel_token_releases_queued_caller():
    async def scenario() -> None:
        transport = _ScriptedTransport(_json(200, {}), delay_s=0.2)
        client = _client(transport, concurrency_limit=1)
        token = CancelToken()

        running = asyncio.create_task(client.get("/first"))
        await asyncio.sleep(0.01)
        queued = asyncio.create_task(client.get("/second", cancel_token=token))
        await asyncio.sleep(0.01)
        assert client.limiter.waiting == 1

        token.cancel()
        with pytest.raises(CancelError):
            await queued
        assert client.limiter.waiting == 0
        await running
        assert [call.url for call in transport.calls] == ["https://api.test/first"]
        assert client.limiter.in_use == 0

    run_async(scenario())


def test_request_interceptor_error_surfaces_unmodified():
    async def scenario() -> None:
        transport = _ScriptedTransport()
        client = _client(transport)
        boom = LookupError("no tenant configured")

        def require_tenant(request):
            raise boom

        client.add_request_interceptor(require_tenant)
        with pytest.raises(LookupError) as exc_info:
            await client.get("/orders")
        assert exc_info.value is boom
        assert transport.calls == []
        assert client.limiter.in_use == 0
        assert client.pending_count == 0

    run_async(scenario())


def test_request_interceptors_run_once_across_retries():
    async def scenario() -> None:
        transport = _ScriptedTransport(_json(503), _json(200, {}))
        client = _client(transport)
        runs = 0

        def count(request):
            nonlocal runs
            runs += 1

        client.add_request_interceptor(count)
        await client.get("/orders")
        assert runs == 1
        assert len(transport.calls) == 2

    run_async(scenario())


def test_response_failure_handler_can_recover():
    async def scenario() -> None:
        client = _client(_ScriptedTransport(_json(404)))

        def fallback(error):
            return Response(data={"fallback": True}, status=200)

        client.add_response_interceptor(None, fallback)
        response = await client.get("/missing")
        assert response.data == {"fallback": True}

    run_async(scenario())


def test_bearer_refresh_replays_exactly_once():
    async def scenario() -> None:
        def guarded(request: TransportRequest) -> TransportResponse:
            if request.headers.get("authorization") == "Bearer fresh":
                return _json(200, {"me": "ada"})
            return _json(401, {"error": "expired"})

        transport = _ScriptedTransport(guarded)
        client = _client(transport)
        refreshes = 0

        def refresher() -> str:
            nonlocal refreshes
            refreshes += 1
            return "fresh"

        client.add_request_interceptor(bearer_auth(lambda: "stale"))
        client.add_response_interceptor(None, refresh_on_unauthorized(refresher))

        response = await client.get("/me")
        assert response.data == {"me": "ada"}
        assert refreshes == 1
        assert [call.headers["authorization"] for call in transport.calls] == [
            "Bearer stale",
            "Bearer fresh",
        ]

    run_async(scenario())


def test_bearer_refresh_gives_up_after_one_replay():
    async def scenario() -> None:
        transport = _ScriptedTransport(_json(401))
        client = _client(transport)
        client.add_request_interceptor(bearer_auth(lambda: "stale"))
        client.add_response_interceptor(None, refresh_on_unauthorized(lambda: "still-bad"))

        with pytest.raises(AuthenticationError):
            await client.get("/me")
        assert len(transport.calls) == 2

    run_async(scenario())


def test_joiners_share_failure_and_registry_is_cleared():
    async def scenario() -> None:
        transport = _ScriptedTransport(_json(500), _json(200, {"ok": True}), delay_s=0.01)
        client = _client(transport, retry_count=0)

        outcomes = await asyncio.gather(
            client.get("/orders"),
            client.get("/orders"),
            return_exceptions=True,
        )
        assert all(isinstance(outcome, ServerHttpError) for outcome in outcomes)
        assert len(transport.calls) == 1
        assert client.pending_count == 0

        response = await client.get("/orders")
        assert response.data == {"ok": True}

    run_async(scenario())


def test_unexpected_transport_exception_becomes_base_error():
    async def scenario() -> None:
        transport = _ScriptedTransport(ValueError("bad frame"))
        client = _client(transport)
        with pytest.raises(Exception) as exc_info:
            await client.get("/orders")
        assert exc_info.value.code == "ERR_UNKNOWN"
        assert isinstance(exc_info.value.__cause__, ValueError)
        assert len(transport.calls) == 1

    run_async(scenario())


def test_settings_defaults_feed_policy(monkeypatch):
    monkeypatch.setenv("REQFLOW_RETRY_COUNT", "1")
    monkeypatch.setenv("REQFLOW_RETRY_DELAY_S", "0.001")
    monkeypatch.setenv("REQFLOW_RETRY_JITTER", "false")

    async def scenario() -> None:
        transport = _ScriptedTransport(_json(503))
        client = HttpClient(settings=ClientSettings.from_env(), transport=transport)
        with pytest.raises(ServerHttpError) as exc_info:
            await client.get("https://api.test/orders")
        assert exc_info.value.retry_count == 1
        assert len(transport.calls) == 2

    run_async(scenario())

