r"""Define the exceptions raised by the declarative HTTP client.

Every error derives from ``HttpRequestError`` and carries the
``FailureKind`` it represents, so callers can tell "never connected"
from "connected but the server was too slow" from "connected, got a
bad response".
"""

from __future__ import annotations

__all__ = [
    "ApplicationError",
    "BindingError",
    "ConnectTimeoutError",
    "ConnectionAcquireTimeoutError",
    "ConnectionLostError",
    "DecodeError",
    "HttpRequestError",
    "NetworkIOError",
    "NonRetryableRequestError",
    "ResponseTimeoutError",
    "error_class_for",
]

from typing import TYPE_CHECKING, Any

from aresbind.outcome import FailureKind

if TYPE_CHECKING:
    import httpx


class HttpRequestError(RuntimeError):
    r"""Base class of all the errors raised by ``aresbind``.

    Args:
        message: A descriptive error message.
        method: The HTTP method of the request, if known.
        url: The URL (or path template) of the request, if known.
        status_code: The HTTP status code of the response, if any.
        response: The HTTP response, if any.
        cause: The underlying exception, if any.

    Example:
        ```pycon
        >>> from aresbind.exceptions import HttpRequestError
        >>> error = HttpRequestError(
        ...     "GET request to https://api.example.com failed",
        ...     method="GET",
        ...     url="https://api.example.com",
        ... )
        >>> error.method
        'GET'
        >>> error.status_code is None
        True

        ```
    """

    kind: FailureKind | None = None

    def __init__(
        self,
        message: str,
        *,
        method: str | None = None,
        url: str | None = None,
        status_code: int | None = None,
        response: httpx.Response | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.method = method
        self.url = url
        self.status_code = status_code
        self.response = response
        self.cause = cause

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__qualname__}(message={self.message!r}, method={self.method!r}, "
            f"url={self.url!r}, status_code={self.status_code!r})"
        )


class BindingError(HttpRequestError):
    r"""Raised when an endpoint description cannot be turned into a
    request, e.g. a path placeholder has no matching argument.

    A binding error is raised before any network activity and is never
    retried.
    """


class ConnectTimeoutError(HttpRequestError):
    r"""Raised when the transport connection could not be established in
    time."""

    kind = FailureKind.CONNECT_TIMEOUT


class ConnectionAcquireTimeoutError(HttpRequestError):
    r"""Raised when no pooled connection became available in time."""

    kind = FailureKind.CONNECTION_ACQUIRE_TIMEOUT


class ResponseTimeoutError(HttpRequestError):
    r"""Raised when the request was sent but the response did not arrive
    in time."""

    kind = FailureKind.RESPONSE_TIMEOUT


class ConnectionLostError(HttpRequestError):
    r"""Raised when the peer reset or closed the connection."""

    kind = FailureKind.CONNECTION_RESET


class NetworkIOError(HttpRequestError):
    r"""Raised for other network level failures (refused connection,
    unreachable host, ...)."""

    kind = FailureKind.OTHER_IO


class NonRetryableRequestError(HttpRequestError):
    r"""Raised for transport failures that retrying cannot fix (malformed
    request, unsupported scheme, ...)."""

    kind = FailureKind.NON_RETRYABLE


class ApplicationError(HttpRequestError):
    r"""Raised when the server answered with a non-2xx status code.

    Args:
        message: A descriptive error message.
        body: The decoded response body, or ``None`` if the body was empty
            or could not be decoded.
        **kwargs: See ``HttpRequestError``.
    """

    def __init__(self, message: str, *, body: Any = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.body = body


class DecodeError(HttpRequestError):
    r"""Raised when a response body does not match the declared response
    type."""


_ERRORS_BY_KIND: dict[FailureKind, type[HttpRequestError]] = {
    FailureKind.CONNECT_TIMEOUT: ConnectTimeoutError,
    FailureKind.CONNECTION_ACQUIRE_TIMEOUT: ConnectionAcquireTimeoutError,
    FailureKind.RESPONSE_TIMEOUT: ResponseTimeoutError,
    FailureKind.CONNECTION_RESET: ConnectionLostError,
    FailureKind.OTHER_IO: NetworkIOError,
    FailureKind.NON_RETRYABLE: NonRetryableRequestError,
}


def error_class_for(kind: FailureKind) -> type[HttpRequestError]:
    r"""Return the exception class raised for a terminal failure kind.

    Args:
        kind: The failure kind.

    Returns:
        The exception class.

    Example:
        ```pycon
        >>> from aresbind.exceptions import error_class_for
        >>> from aresbind.outcome import FailureKind
        >>> error_class_for(FailureKind.RESPONSE_TIMEOUT).__name__
        'ResponseTimeoutError'

        ```
    """
    return _ERRORS_BY_KIND[kind]
