"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Error taxonomy raised by the request orchestrator.

Every error carries a stable ``code`` so callers can branch on the class or on
the code without inspecting transport-specific exceptions.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .types import RequestDescription, Response


class HttpClientError(Exception):
    """Base class for every error surfaced by ``HttpClient``."""

    default_code = "ERR_UNKNOWN"

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        request: RequestDescription | None = None,
        response: Response[Any] | None = None,
        retry_count: int = 0,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.request = request
        self.response = response
        self.retry_count = retry_count

    @property
    def status(self) -> int | None:
        return self.response.status if self.response is not None else None

    @property
    def status_text(self) -> str | None:
        return self.response.status_text if self.response is not None else None

    def is_client_error(self) -> bool:
        return self.status is not None and 400 <= self.status < 500

    def is_server_error(self) -> bool:
        return self.status is not None and 500 <= self.status < 600

    def is_retryable(self) -> bool:
        """Return True for failure kinds that are usually transient."""
        if isinstance(self, (NetworkError, RequestTimeoutError)):
            return True
        if self.is_server_error():
            return True
        return self.status in (408, 429)

    def describe(self) -> str:
        """Human-readable summary including status and code."""
        text = self.message
        if self.status is not None:
            text += f" (status: {self.status}"
            if self.status_text:
                text += f" {self.status_text}"
            text += ")"
        return f"{text} [code: {self.code}]"

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": type(self).__name__,
            "message": self.message,
            "code": self.code,
            "status": self.status,
            "status_text": self.status_text,
            "method": self.request.method if self.request is not None else None,
            "url": self.request.url if self.request is not None else None,
            "retry_count": self.retry_count,
        }

    def __str__(self) -> str:
        return self.message


class NetworkError(HttpClientError):
    """No response was obtained (DNS failure, refused or reset connection)."""

    default_code = "ERR_NETWORK"


class RequestTimeoutError(HttpClientError):
    """The request deadline elapsed before the transport answered."""

    default_code = "ECONNABORTED"


class CancelError(HttpClientError):
    """The caller cancelled the request."""

    default_code = "ERR_CANCELED"

    def __init__(self, message: str = "Request canceled", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)


class HttpStatusError(HttpClientError):
    """A response was obtained but failed the success predicate."""

    default_code = "ERR_BAD_STATUS"


class ClientHttpError(HttpStatusError):
    """Status in the 4xx range."""

    default_code = "ERR_BAD_REQUEST"


class AuthenticationError(ClientHttpError):
    """401 Unauthorized."""


class AuthorizationError(ClientHttpError):
    """403 Forbidden."""


class NotFoundError(ClientHttpError):
    """404 Not Found."""


class RateLimitError(ClientHttpError):
    """429 Too Many Requests."""


class ServerHttpError(HttpStatusError):
    """Status in the 5xx range."""

    default_code = "ERR_BAD_RESPONSE"


class ParseError(HttpClientError):
    """The response body could not be interpreted as the requested shape."""

    default_code = "ERR_PARSE"


_STATUS_ERRORS: dict[int, type[HttpStatusError]] = {
    401: AuthenticationError,
    403: AuthorizationError,
    404: NotFoundError,
    429: RateLimitError,
}


def error_from_status(
    response: Response[Any],
    *,
    request: RequestDescription | None = None,
) -> HttpStatusError:
    """Build the status error subclass matching ``response.status``."""
    status = response.status
    message = f"Request failed with status code {status}"
    cls = _STATUS_ERRORS.get(status)
    if cls is None:
        if 400 <= status < 500:
            cls = ClientHttpError
        elif 500 <= status < 600:
            cls = ServerHttpError
        else:
            cls = HttpStatusError
    return cls(message, request=request, response=response)
