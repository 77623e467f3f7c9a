"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: interceptors/logging.py.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Iterable, Mapping, Sequence
from typing import TYPE_CHECKING, Any

from ..errors import HttpClientError
from ..types import RequestDescription, Response

if TYPE_CHECKING:
    from ..runtime.client import HttpClient

REDACTED = "[REDACTED]"
DEFAULT_REDACTED_HEADERS: frozenset[str] = frozenset(
    {"authorization", "proxy-authorization", "cookie", "set-cookie", "x-api-key"}
)


def redact_headers(
    headers: Mapping[str, str],
    sensitive: Iterable[str] = DEFAULT_REDACTED_HEADERS,
) -> dict[str, str]:
    """Return a copy of ``headers`` with sensitive values masked."""
    lowered = {name.lower() for name in sensitive}
    return {
        key: REDACTED if key.lower() in lowered else value
        for key, value in headers.items()
    }


class LoggingInterceptor:
    """
    Log requests, responses and failures through stdlib ``logging``.

    Handlers never change the value flowing through the pipeline: the request
    and response handlers return ``None`` and the failure handler passes.
    """

    def __init__(
        self,
        *,
        logger: logging.Logger | None = None,
        level: int = logging.INFO,
        log_headers: bool = False,
        log_body: bool = False,
        max_body_length: int = 1000,
        redacted_headers: Iterable[str] = DEFAULT_REDACTED_HEADERS,
        url_patterns: Sequence[str] | None = None,
        exclude_url_patterns: Sequence[str] | None = None,
    ) -> None:
        self.logger = logger or logging.getLogger("reqflow.http")
        self.level = level
        self.log_headers = log_headers
        self.log_body = log_body
        self.max_body_length = max_body_length
        self.redacted_headers = frozenset(name.lower() for name in redacted_headers)
        self._include = tuple(re.compile(p) for p in url_patterns or ())
        self._exclude = tuple(re.compile(p) for p in exclude_url_patterns or ())

    def should_log(self, url: str) -> bool:
        if any(pattern.search(url) for pattern in self._exclude):
            return False
        if self._include:
            return any(pattern.search(url) for pattern in self._include)
        return True

    def format_body(self, body: Any) -> str:
        if body is None or body == b"" or body == "":
            return ""
        if isinstance(body, bytes):
            text = body.decode("utf-8", errors="replace")
        elif isinstance(body, str):
            text = body
        else:
            text = json.dumps(body, default=str, ensure_ascii=False)
        if len(text) > self.max_body_length:
            text = text[: self.max_body_length] + "..."
        return text

    def _details(self, headers: Mapping[str, str], body: Any) -> str:
        parts: list[str] = []
        if self.log_headers:
            parts.append(f"headers={redact_headers(headers, self.redacted_headers)}")
        if self.log_body:
            formatted = self.format_body(body)
            if formatted:
                parts.append(f"body={formatted}")
        return (" " + " ".join(parts)) if parts else ""

    def on_request(self, request: RequestDescription) -> None:
        if not self.should_log(request.url):
            return None
        self.logger.log(
            self.level,
            "-> %s %s%s",
            request.method,
            request.url,
            self._details(request.headers, request.body),
        )
        return None

    def on_response(self, response: Response[Any]) -> None:
        request = response.config
        if request is None or not self.should_log(request.url):
            return None
        self.logger.log(
            self.level,
            "<- %s %s %d in %.1fms (request_id=%s)%s",
            request.method,
            request.url,
            response.status,
            response.duration_s * 1000,
            response.request_id,
            self._details(response.headers, response.data),
        )
        return None

    def on_error(self, error: BaseException) -> None:
        if isinstance(error, HttpClientError):
            request = error.request
            if request is not None and not self.should_log(request.url):
                return None
            self.logger.warning(
                "x- %s %s failed: %s (retries=%d)",
                request.method if request is not None else "?",
                request.url if request is not None else "?",
                error.describe(),
                error.retry_count,
            )
        else:
            self.logger.warning("x- request failed: %s: %s", type(error).__name__, error)
        return None

    def attach(self, client: HttpClient) -> tuple[int, int]:
        """Register on ``client``; returns the (request, response) interceptor ids."""
        request_id = client.add_request_interceptor(self.on_request)
        response_id = client.add_response_interceptor(self.on_response, self.on_error)
        return request_id, response_id
