r"""Callback types and the manager invoking them.

The executor exposes four lifecycle hooks for logging, metrics or
alerting:

- on_request: Called before each attempt
- on_retry: Called before each retry (before the backoff delay)
- on_success: Called when a request completes with a response
- on_failure: Called when a request fails terminally

Example:
    ```pycon
    >>> from aresbind import ResilientClient
    >>> from aresbind.callbacks import RetryInfo
    >>> from aresbind.core import ClientConfig
    >>> def log_retry(retry_info: RetryInfo):
    ...     print(f"Retry {retry_info.attempt}/{retry_info.max_retries + 1}")
    ...
    >>> client = ResilientClient(config=ClientConfig(on_retry=log_retry))

    ```
"""

from __future__ import annotations

__all__ = [
    "CallbackManager",
    "FailureInfo",
    "RequestInfo",
    "ResponseInfo",
    "RetryInfo",
]

import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable

    import httpx

    from aresbind.core.config import ClientConfig
    from aresbind.outcome import FailureKind


@dataclass
class RequestInfo:
    """Information passed to on_request callback.

    Attributes:
        url: The URL being requested.
        method: The HTTP method (e.g., "GET", "POST").
        attempt: The current attempt number (1-indexed).
        max_retries: Maximum number of retry attempts configured.
    """

    url: str
    method: str
    attempt: int
    max_retries: int


@dataclass
class RetryInfo:
    """Information passed to on_retry callback.

    Attributes:
        url: The URL being requested.
        method: The HTTP method (e.g., "GET", "POST").
        attempt: The number of the upcoming attempt (1-indexed). The first
            retry is attempt 2.
        max_retries: Maximum number of retry attempts configured.
        wait_time: The backoff delay in seconds before this retry.
        kind: The failure kind that triggered the retry.
        error: The exception that triggered the retry.
    """

    url: str
    method: str
    attempt: int
    max_retries: int
    wait_time: float
    kind: FailureKind
    error: BaseException


@dataclass
class ResponseInfo:
    """Information passed to on_success callback.

    Attributes:
        url: The URL that was requested.
        method: The HTTP method (e.g., "GET", "POST").
        attempt: The attempt number that succeeded (1-indexed).
        max_retries: Maximum number of retry attempts configured.
        response: The HTTP response object.
        total_time: Total time spent on all attempts including backoff (seconds).
    """

    url: str
    method: str
    attempt: int
    max_retries: int
    response: httpx.Response
    total_time: float


@dataclass
class FailureInfo:
    """Information passed to on_failure callback.

    Attributes:
        url: The URL that was requested.
        method: The HTTP method (e.g., "GET", "POST").
        attempt: The final attempt number (1-indexed).
        max_retries: Maximum number of retry attempts configured.
        error: The terminal error raised to the caller.
        total_time: Total time spent on all attempts including backoff (seconds).
    """

    url: str
    method: str
    attempt: int
    max_retries: int
    error: Exception
    total_time: float


class CallbackManager:
    """Manages callback invocations during the retry lifecycle.

    Args:
        on_request: Optional callback invoked before each attempt.
        on_retry: Optional callback invoked before each retry.
        on_success: Optional callback invoked when a request completes.
        on_failure: Optional callback invoked when a request fails terminally.
    """

    def __init__(
        self,
        on_request: Callable[[RequestInfo], None] | None = None,
        on_retry: Callable[[RetryInfo], None] | None = None,
        on_success: Callable[[ResponseInfo], None] | None = None,
        on_failure: Callable[[FailureInfo], None] | None = None,
    ) -> None:
        self._on_request = on_request
        self._on_retry = on_retry
        self._on_success = on_success
        self._on_failure = on_failure

    @classmethod
    def from_config(cls, config: ClientConfig) -> CallbackManager:
        """Create a callback manager from the callbacks of a client
        configuration."""
        return cls(
            on_request=config.on_request,
            on_retry=config.on_retry,
            on_success=config.on_success,
            on_failure=config.on_failure,
        )

    def on_request(self, url: str, method: str, attempt: int, max_retries: int) -> None:
        if self._on_request is not None:
            self._on_request(
                RequestInfo(url=url, method=method, attempt=attempt, max_retries=max_retries)
            )

    def on_retry(
        self,
        url: str,
        method: str,
        attempt: int,
        max_retries: int,
        wait_time: float,
        kind: FailureKind,
        error: BaseException,
    ) -> None:
        if self._on_retry is not None:
            self._on_retry(
                RetryInfo(
                    url=url,
                    method=method,
                    attempt=attempt,
                    max_retries=max_retries,
                    wait_time=wait_time,
                    kind=kind,
                    error=error,
                )
            )

    def on_success(
        self,
        url: str,
        method: str,
        attempt: int,
        max_retries: int,
        response: httpx.Response,
        start_time: float,
    ) -> None:
        if self._on_success is not None:
            self._on_success(
                ResponseInfo(
                    url=url,
                    method=method,
                    attempt=attempt,
                    max_retries=max_retries,
                    response=response,
                    total_time=time.monotonic() - start_time,
                )
            )

    def on_failure(
        self,
        url: str,
        method: str,
        attempt: int,
        max_retries: int,
        error: Exception,
        start_time: float,
    ) -> None:
        if self._on_failure is not None:
            self._on_failure(
                FailureInfo(
                    url=url,
                    method=method,
                    attempt=attempt,
                    max_retries=max_retries,
                    error=error,
                    total_time=time.monotonic() - start_time,
                )
            )
