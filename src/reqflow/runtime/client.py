"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: runtime/client.py.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, replace
from typing import Any

from pydantic import TypeAdapter, ValidationError

from ..cache.base import CacheBackend, snapshot_response
from ..cache.registry import create_cache
from ..config import describe_request, merge_config, with_headers
from ..errors import CancelError, HttpClientError, ParseError, error_from_status
from ..interceptors.manager import (
    FailureHandler,
    InterceptorStack,
    SuccessHandler,
)
from ..settings import ClientSettings
from ..transports.base import Transport, TransportRequest, TransportResponse
from ..transports.httpx_transport import HttpxTransport
from ..types import AttemptState, RequestConfig, RequestDescription, Response
from .coalescing import PendingRequestRegistry
from .contracts import DedupePolicy, RetryPolicy
from .keys import cache_key, dedupe_key
from .limiter import ConcurrencyLimiter, LimiterSlot
from .retry import classify_error, policy_delay, should_retry
from .timeouts import await_with_timeout, sleep_with_cancel

logger = logging.getLogger("reqflow.runtime.client")


@dataclass(frozen=True, slots=True)
class _CacheTarget:
    backend: CacheBackend
    key: str
    ttl_s: float | None


class HttpClient:
    """
    Request orchestrator owning its cache, pending registry and limiter.

    ``execute`` serves fresh cache hits without touching the network, joins
    identical in-flight requests, admits the rest through a FIFO concurrency
    limiter, runs the interceptor pipeline around the transport call and
    retries transient failures with backoff.
    """

    def __init__(
        self,
        *,
        settings: ClientSettings | None = None,
        defaults: RequestConfig | None = None,
        transport: Transport | None = None,
        cache_backend: str | CacheBackend | None = None,
        retry_policy: RetryPolicy | None = None,
        dedupe_policy: DedupePolicy | None = None,
        interceptors: InterceptorStack | None = None,
    ) -> None:
        self.settings = settings or ClientSettings()
        self.defaults = merge_config(self.settings.to_request_config(), defaults)
        self.interceptors = interceptors if interceptors is not None else InterceptorStack()

        self._transport = transport
        self._owns_transport = transport is None
        self._cache = create_cache(cache_backend, max_size=self.settings.cache_max_size)
        self._cache_backends: list[CacheBackend] = [self._cache]
        self._retry_policy = retry_policy or self.settings.to_retry_policy()
        self._dedupe_policy = dedupe_policy or DedupePolicy()

        self._limiter = ConcurrencyLimiter(self.settings.concurrency_limit)
        self._pending = PendingRequestRegistry()

    @property
    def cache(self) -> CacheBackend:
        """Default cache backend of this client."""
        return self._cache

    @property
    def limiter(self) -> ConcurrencyLimiter:
        return self._limiter

    @property
    def pending(self) -> PendingRequestRegistry:
        return self._pending

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def retry_policy(self) -> RetryPolicy:
        return self._retry_policy

    def _get_transport(self) -> Transport:
        if self._transport is None:
            self._transport = HttpxTransport()
        return self._transport

    def _cache_target(self, request: RequestDescription) -> _CacheTarget | None:
        options = request.cache
        if options is None or request.method not in options.methods:
            return None
        backend = options.storage if options.storage is not None else self._cache
        if all(backend is not known for known in self._cache_backends):
            self._cache_backends.append(backend)
        return _CacheTarget(backend=backend, key=cache_key(request), ttl_s=options.ttl_s)

    async def execute(
        self,
        config: RequestConfig,
        *,
        response_model: Any = None,
    ) -> Response[Any]:
        """
        Execute one logical request.

        ``response_model`` is any type pydantic can validate; the parsed body is
        validated against it per caller and a mismatch raises ``ParseError``.
        """
        state = AttemptState()
        request = describe_request(
            merge_config(self.defaults, config),
            default_cache_ttl_s=self.settings.cache_ttl_s,
        )
        target = self._cache_target(request)

        if target is not None:
            entry = await target.backend.get(target.key)
            if entry is not None:
                logger.debug("Cache hit for %s %s", request.method, request.url)
                cached = replace(
                    snapshot_response(entry.response),
                    config=request,
                    from_cache=True,
                    duration_s=state.elapsed_s(),
                    request_id=state.request_id,
                    retry_count=0,
                )
                return self._apply_model(cached, response_model)

        if request.dedupe and self._dedupe_policy.enabled:
            key = dedupe_key(request, include_body=self._dedupe_policy.include_body)
            response = await self._pending.run(
                key, lambda: self._perform(request, state, target)
            )
        else:
            response = await self._perform(request, state, target)
        return self._apply_model(response, response_model)

    async def _acquire_slot(self, request: RequestDescription) -> LimiterSlot:
        if request.cancel_token is None:
            return await self._limiter.acquire()
        try:
            return await await_with_timeout(
                self._limiter.acquire(),
                None,
                cancel_token=request.cancel_token,
            )
        except CancelError as error:
            error.request = request
            raise

    async def _perform(
        self,
        request: RequestDescription,
        state: AttemptState,
        target: _CacheTarget | None,
    ) -> Response[Any]:
        slot = await self._acquire_slot(request)
        try:
            try:
                prepared = await self.interceptors.request.run(request)
            except Exception as error:
                return await self._recover(error, request, state, target)

            try:
                response = await self._dispatch_with_retry(prepared, state)
            except HttpClientError as error:
                return await self._recover(error, prepared, state, target)

            return await self._finish(response, target)
        finally:
            slot.release()

    async def _finish(
        self,
        response: Response[Any],
        target: _CacheTarget | None,
    ) -> Response[Any]:
        # Cache first: a failing response interceptor does not undo the write.
        if target is not None and target.ttl_s is not None:
            await target.backend.set(target.key, response, ttl_s=target.ttl_s)
        return await self.interceptors.response.run(response)

    async def _recover(
        self,
        error: Exception,
        request: RequestDescription,
        state: AttemptState,
        target: _CacheTarget | None,
    ) -> Response[Any]:
        outcome = await self.interceptors.response.handle_failure(error)
        if outcome.replay is not None and not state.replayed:
            state.replayed = True
            replayed = with_headers(request, outcome.replay.headers)
            logger.info("Replaying %s %s after %s", request.method, request.url, type(error).__name__)
            try:
                response = await self._dispatch_once(replayed, state)
            except HttpClientError as replay_error:
                replay_error.retry_count = state.attempt
                raise
            return await self._finish(response, target)
        if outcome.recovered is not None:
            return outcome.recovered
        if outcome.error is error:
            raise error
        raise outcome.error from error

    async def _dispatch_with_retry(
        self,
        request: RequestDescription,
        state: AttemptState,
    ) -> Response[Any]:
        policy = self._retry_policy.with_overrides(
            max_retries=request.retry_count,
            base_delay_s=request.retry_delay_s,
            strategy=request.retry_delay_strategy,
        )
        while True:
            try:
                return await self._dispatch_once(request, state)
            except HttpClientError as error:
                state.last_error = error
                if not should_retry(policy, error, state.attempt, request):
                    error.retry_count = state.attempt
                    raise

                delay_s = policy_delay(policy, state.attempt)
                logger.warning(
                    "Retrying %s %s after %s (attempt %d/%d) in %.3fs",
                    request.method,
                    request.url,
                    error.code,
                    state.attempt + 1,
                    policy.max_retries,
                    delay_s,
                )
                if policy.on_retry is not None:
                    policy.on_retry(error, state.attempt, request)
                try:
                    await sleep_with_cancel(delay_s, request.cancel_token)
                except CancelError as cancel:
                    cancel.request = request
                    cancel.retry_count = state.attempt
                    raise
                state.attempt += 1

    async def _dispatch_once(
        self,
        request: RequestDescription,
        state: AttemptState,
    ) -> Response[Any]:
        transport_request = TransportRequest(
            method=request.method,
            url=request.url,
            headers=dict(request.headers),
            body=request.body,
            timeout_s=request.timeout_s,
            cancel_token=request.cancel_token,
        )
        logger.debug(
            "Dispatching %s %s (request_id=%s, attempt=%d)",
            request.method,
            request.url,
            state.request_id,
            state.attempt,
        )
        try:
            raw = await await_with_timeout(
                self._get_transport().send(transport_request),
                request.timeout_s,
                cancel_token=request.cancel_token,
            )
        except HttpClientError as error:
            error.request = request
            error.retry_count = state.attempt
            raise
        except Exception as error:
            classified = classify_error(error, request=request)
            classified.retry_count = state.attempt
            raise classified from error

        response = Response(
            data=self._parse_body(raw, request),
            status=raw.status,
            status_text=raw.status_text,
            headers=dict(raw.headers),
            config=request,
            duration_s=state.elapsed_s(),
            request_id=state.request_id,
            retry_count=state.attempt,
        )
        if not request.validate_status(raw.status):
            raise error_from_status(response, request=request)
        return response

    @staticmethod
    def _parse_body(raw: TransportResponse, request: RequestDescription) -> Any:
        if request.response_type == "bytes":
            return raw.body
        if request.method == "HEAD" or not raw.body:
            return "" if request.response_type == "text" else None

        charset = "utf-8"
        content_type = {key.lower(): value for key, value in raw.headers.items()}.get(
            "content-type", ""
        )
        for part in content_type.split(";")[1:]:
            name, _, value = part.strip().partition("=")
            if name.lower() == "charset" and value:
                charset = value.strip('"')
        try:
            text = raw.body.decode(charset, errors="replace")
        except LookupError:
            text = raw.body.decode("utf-8", errors="replace")

        if request.response_type == "text":
            return text
        try:
            return json.loads(text)
        except ValueError:
            return text

    @staticmethod
    def _apply_model(response: Response[Any], response_model: Any) -> Response[Any]:
        if response_model is None:
            return response
        try:
            data = TypeAdapter(response_model).validate_python(response.data)
        except ValidationError as exc:
            name = getattr(response_model, "__name__", repr(response_model))
            raise ParseError(
                f"Response body does not match {name}: {exc.error_count()} validation error(s)",
                request=response.config,
                response=response,
                retry_count=response.retry_count,
            ) from exc
        return replace(response, data=data)

    async def clear_cache(self) -> None:
        """Clear every cache backend this client has written to."""
        for backend in self._cache_backends:
            await backend.clear()

    def add_request_interceptor(
        self,
        on_success: SuccessHandler[RequestDescription] | None = None,
        on_failure: FailureHandler | None = None,
    ) -> int:
        return self.interceptors.request.use(on_success, on_failure)

    def add_response_interceptor(
        self,
        on_success: SuccessHandler[Response[Any]] | None = None,
        on_failure: FailureHandler | None = None,
    ) -> int:
        return self.interceptors.response.use(on_success, on_failure)

    def remove_request_interceptor(self, interceptor_id: int) -> bool:
        return self.interceptors.request.eject(interceptor_id)

    def remove_response_interceptor(self, interceptor_id: int) -> bool:
        return self.interceptors.response.eject(interceptor_id)

    async def get(self, url: str, *, response_model: Any = None, **overrides: Any) -> Response[Any]:
        return await self.execute(
            RequestConfig(url=url, method="GET", **overrides),
            response_model=response_model,
        )

    async def head(self, url: str, *, response_model: Any = None, **overrides: Any) -> Response[Any]:
        return await self.execute(
            RequestConfig(url=url, method="HEAD", **overrides),
            response_model=response_model,
        )

    async def options(self, url: str, *, response_model: Any = None, **overrides: Any) -> Response[Any]:
        return await self.execute(
            RequestConfig(url=url, method="OPTIONS", **overrides),
            response_model=response_model,
        )

    async def delete(self, url: str, *, response_model: Any = None, **overrides: Any) -> Response[Any]:
        return await self.execute(
            RequestConfig(url=url, method="DELETE", **overrides),
            response_model=response_model,
        )

    async def post(
        self, url: str, data: Any = None, *, response_model: Any = None, **overrides: Any
    ) -> Response[Any]:
        return await self.execute(
            RequestConfig(url=url, method="POST", data=data, **overrides),
            response_model=response_model,
        )

    async def put(
        self, url: str, data: Any = None, *, response_model: Any = None, **overrides: Any
    ) -> Response[Any]:
        return await self.execute(
            RequestConfig(url=url, method="PUT", data=data, **overrides),
            response_model=response_model,
        )

    async def patch(
        self, url: str, data: Any = None, *, response_model: Any = None, **overrides: Any
    ) -> Response[Any]:
        return await self.execute(
            RequestConfig(url=url, method="PATCH", data=data, **overrides),
            response_model=response_model,
        )

    async def aclose(self) -> None:
        """Close the owned transport and stop cache sweepers."""
        for backend in self._cache_backends:
            closer = getattr(backend, "aclose", None)
            if closer is not None:
                await closer()
        if self._owns_transport and self._transport is not None:
            await self._transport.aclose()
            self._transport = None

    async def __aenter__(self) -> "HttpClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()
