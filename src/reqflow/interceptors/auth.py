"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Authentication interceptors: request-phase header injection and a
response-phase failure handler that refreshes a bearer token on 401.
"""

from __future__ import annotations

import base64
import logging
import re
from collections.abc import Awaitable, Callable, Sequence
from typing import Union

from ..config import with_headers
from ..errors import HttpClientError
from ..types import RequestDescription
from .manager import Replay, _maybe_await

logger = logging.getLogger("reqflow.interceptors.auth")

TokenProvider = Callable[[], Union[str, Awaitable[str]]]
UrlPattern = Union[str, "re.Pattern[str]"]


class AuthInterceptorError(PermissionError):
    """Raised when credentials cannot be attached to a request."""


def _compile(patterns: Sequence[UrlPattern] | None) -> tuple[re.Pattern[str], ...]:
    return tuple(re.compile(pattern) for pattern in patterns or ())


def _matches(url: str, patterns: tuple[re.Pattern[str], ...]) -> bool:
    if not patterns:
        return True
    return any(pattern.search(url) for pattern in patterns)


def _has_header(request: RequestDescription, name: str) -> bool:
    lowered = name.lower()
    return any(key.lower() == lowered for key in request.headers)


def bearer_auth(
    token_provider: TokenProvider,
    *,
    url_patterns: Sequence[UrlPattern] | None = None,
) -> Callable[[RequestDescription], Awaitable[RequestDescription]]:
    """Attach ``Authorization: Bearer <token>`` to matching requests.

    ``token_provider`` may be sync or async and is called once per request.
    Requests that already carry an ``authorization`` header are left alone.
    """
    patterns = _compile(url_patterns)

    async def add_bearer(request: RequestDescription) -> RequestDescription:
        if not _matches(request.url, patterns) or _has_header(request, "authorization"):
            return request
        token = await _maybe_await(token_provider())
        if not token:
            raise AuthInterceptorError("Authentication failed: no token provided")
        return with_headers(request, {"authorization": f"Bearer {token}"})

    return add_bearer


def basic_auth(
    username: str,
    password: str,
    *,
    url_patterns: Sequence[UrlPattern] | None = None,
) -> Callable[[RequestDescription], RequestDescription]:
    """Attach HTTP Basic credentials to matching requests."""
    if not username or not password:
        raise ValueError("username and password are required for basic auth")
    patterns = _compile(url_patterns)
    credentials = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")

    def add_basic(request: RequestDescription) -> RequestDescription:
        if not _matches(request.url, patterns) or _has_header(request, "authorization"):
            return request
        return with_headers(request, {"authorization": f"Basic {credentials}"})

    return add_basic


def api_key_auth(
    api_key: str,
    *,
    header: str = "X-API-Key",
    url_patterns: Sequence[UrlPattern] | None = None,
) -> Callable[[RequestDescription], RequestDescription]:
    """Attach a static API key header to matching requests."""
    if not api_key:
        raise ValueError("api_key is required for api key auth")
    patterns = _compile(url_patterns)

    def add_api_key(request: RequestDescription) -> RequestDescription:
        if not _matches(request.url, patterns) or _has_header(request, header):
            return request
        return with_headers(request, {header: api_key})

    return add_api_key


def refresh_on_unauthorized(
    token_refresher: TokenProvider,
    *,
    on_refresh: Callable[[], object] | None = None,
) -> Callable[[BaseException], Awaitable[Replay | None]]:
    """
    Build a response-phase failure handler that refreshes a bearer token.

    On a 401 the handler obtains a new token and returns a ``Replay`` carrying
    the fresh ``authorization`` header. The client replays a request at most
    once, so a second 401 surfaces to the caller. Other errors pass through.
    """

    async def refresh(error: BaseException) -> Replay | None:
        if not isinstance(error, HttpClientError) or error.status != 401:
            return None
        if on_refresh is not None:
            on_refresh()
        token = await _maybe_await(token_refresher())
        if not token:
            return None
        logger.info("Refreshed bearer token after 401 from %s", _request_url(error))
        return Replay(headers={"authorization": f"Bearer {token}"})

    return refresh


def _request_url(error: HttpClientError) -> str:
    return error.request.url if error.request is not None else "<unknown>"
