r"""Define the outcome of a single request attempt and the
classification of transport failures."""

from __future__ import annotations

__all__ = [
    "TRANSPORT_ERRORS",
    "AttemptOutcome",
    "Failure",
    "FailureKind",
    "Success",
    "classify_exception",
]

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Union

import httpcore

if TYPE_CHECKING:
    import httpx


class FailureKind(Enum):
    r"""Kinds of failed attempts.

    Attributes:
        CONNECT_TIMEOUT: The transport connection was not established in time.
        CONNECTION_ACQUIRE_TIMEOUT: No pooled connection became available in time.
        RESPONSE_TIMEOUT: The response did not arrive in time after the request
            was sent.
        CONNECTION_RESET: The peer reset or closed the connection.
        OTHER_IO: Any other network failure.
        NON_RETRYABLE: A failure that retrying cannot fix.
    """

    CONNECT_TIMEOUT = "connect-timeout"
    CONNECTION_ACQUIRE_TIMEOUT = "connection-acquire-timeout"
    RESPONSE_TIMEOUT = "response-timeout"
    CONNECTION_RESET = "connection-reset"
    OTHER_IO = "other-io"
    NON_RETRYABLE = "non-retryable"


@dataclass(frozen=True)
class Success:
    r"""A completed exchange, whatever its HTTP status code.

    Attributes:
        response: The fully read HTTP response.
    """

    response: httpx.Response

    @property
    def status_code(self) -> int:
        return self.response.status_code


@dataclass(frozen=True)
class Failure:
    r"""A failed attempt.

    Attributes:
        kind: The failure classification.
        cause: The exception raised by the transport or the pool.
    """

    kind: FailureKind
    cause: BaseException


AttemptOutcome = Union[Success, Failure]  # noqa: UP007

# Exceptions an attempt turns into a ``Failure``; anything else propagates.
TRANSPORT_ERRORS: tuple[type[BaseException], ...] = (
    httpcore.TimeoutException,
    httpcore.NetworkError,
    httpcore.ProtocolError,
    httpcore.UnsupportedProtocol,
    httpcore.ConnectionNotAvailable,
    OSError,
)


def classify_exception(exc: BaseException) -> FailureKind:
    r"""Map a transport exception to its failure kind.

    Args:
        exc: The exception raised while acquiring a connection or
            exchanging data over it.

    Returns:
        The failure kind.

    Example:
        ```pycon
        >>> import httpcore
        >>> from aresbind.outcome import classify_exception
        >>> classify_exception(httpcore.ConnectTimeout("timed out"))
        <FailureKind.CONNECT_TIMEOUT: 'connect-timeout'>
        >>> classify_exception(httpcore.ReadTimeout("timed out"))
        <FailureKind.RESPONSE_TIMEOUT: 'response-timeout'>
        >>> classify_exception(httpcore.RemoteProtocolError("Server disconnected"))
        <FailureKind.CONNECTION_RESET: 'connection-reset'>

        ```
    """
    # PoolTimeout is a TimeoutException, so it must be checked first.
    if isinstance(exc, httpcore.PoolTimeout):
        return FailureKind.CONNECTION_ACQUIRE_TIMEOUT
    if isinstance(exc, httpcore.ConnectTimeout):
        return FailureKind.CONNECT_TIMEOUT
    if isinstance(exc, (httpcore.ReadTimeout, httpcore.WriteTimeout)):
        return FailureKind.RESPONSE_TIMEOUT
    if isinstance(
        exc,
        (
            httpcore.ReadError,
            httpcore.WriteError,
            httpcore.RemoteProtocolError,
            httpcore.ConnectionNotAvailable,
            ConnectionResetError,
        ),
    ):
        return FailureKind.CONNECTION_RESET
    if isinstance(exc, (httpcore.NetworkError, OSError)):
        return FailureKind.OTHER_IO
    return FailureKind.NON_RETRYABLE
