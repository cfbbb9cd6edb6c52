r"""Timeout policy applied to every request attempt."""

from __future__ import annotations

__all__ = ["TimeoutPolicy", "remaining_time"]

import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

from aresbind.core.config import (
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_CONNECTION_ACQUIRE_TIMEOUT,
    DEFAULT_RESPONSE_TIMEOUT,
)
from aresbind.core.validation import validate_timeout

if TYPE_CHECKING:
    from aresbind.core.config import ClientConfig


def remaining_time(deadline: float | None) -> float | None:
    r"""Return the seconds left before a monotonic deadline.

    Args:
        deadline: An absolute ``time.monotonic()`` value, or ``None``
            for no deadline.

    Returns:
        The remaining seconds (never negative), or ``None`` if there is
        no deadline.
    """
    if deadline is None:
        return None
    return max(deadline - time.monotonic(), 0.0)


def _clip(value: float, remaining: float | None) -> float:
    if remaining is None:
        return value
    return min(value, remaining)


@dataclass(frozen=True)
class TimeoutPolicy:
    r"""Three independent timeouts applied to each attempt.

    The policy never retries on its own: exceeding a bound produces the
    matching failure and the retry policy decides what happens next.

    Args:
        connect_timeout: Seconds allowed to establish the transport
            connection.
        connection_acquire_timeout: Seconds allowed to obtain a pooled
            connection when the pool is saturated.
        response_timeout: Seconds allowed from sending the request until
            the full response, headers and body, is received.

    Example:
        ```pycon
        >>> from aresbind.timeout import TimeoutPolicy
        >>> policy = TimeoutPolicy(connect_timeout=2.0, response_timeout=10.0)
        >>> policy.extensions()
        {'connect': 2.0, 'read': 10.0, 'write': 10.0, 'pool': 3.0}

        ```
    """

    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    connection_acquire_timeout: float = DEFAULT_CONNECTION_ACQUIRE_TIMEOUT
    response_timeout: float = DEFAULT_RESPONSE_TIMEOUT

    def __post_init__(self) -> None:
        validate_timeout("connect_timeout", self.connect_timeout)
        validate_timeout("connection_acquire_timeout", self.connection_acquire_timeout)
        validate_timeout("response_timeout", self.response_timeout)

    @classmethod
    def from_config(cls, config: ClientConfig) -> TimeoutPolicy:
        r"""Create the timeout policy described by a client configuration.

        Args:
            config: The client configuration.

        Returns:
            The timeout policy.
        """
        return cls(
            connect_timeout=config.connect_timeout,
            connection_acquire_timeout=config.connection_acquire_timeout,
            response_timeout=config.response_timeout,
        )

    def acquire_timeout(self, deadline: float | None = None) -> float:
        r"""Return the connection acquisition timeout for one attempt.

        Args:
            deadline: Optional caller deadline (``time.monotonic()`` value).

        Returns:
            The timeout in seconds, clipped to the time left before the
            deadline.
        """
        return _clip(self.connection_acquire_timeout, remaining_time(deadline))

    def extensions(self, deadline: float | None = None) -> dict[str, float]:
        r"""Return the ``timeout`` request extension understood by
        ``httpcore``.

        Args:
            deadline: Optional caller deadline (``time.monotonic()`` value).

        Returns:
            A dictionary with the ``connect``, ``read``, ``write`` and
            ``pool`` timeouts, each clipped to the time left before the
            deadline.
        """
        remaining = remaining_time(deadline)
        return {
            "connect": _clip(self.connect_timeout, remaining),
            "read": _clip(self.response_timeout, remaining),
            "write": _clip(self.response_timeout, remaining),
            "pool": _clip(self.connection_acquire_timeout, remaining),
        }
