r"""Execution engine running requests through the connection pool
under the timeout and retry policies."""

from __future__ import annotations

__all__ = ["RequestExecutor", "create_failure_error"]

import logging
import time
from typing import TYPE_CHECKING

import httpcore

from aresbind.callbacks import CallbackManager
from aresbind.exceptions import HttpRequestError, NonRetryableRequestError, error_class_for
from aresbind.outcome import TRANSPORT_ERRORS, Failure, FailureKind, Success, classify_exception
from aresbind.pool import Route
from aresbind.retry import RetryPolicy, RetryState
from aresbind.timeout import TimeoutPolicy, remaining_time
from aresbind.utils.structured_logging import log_structured

if TYPE_CHECKING:
    from collections.abc import Callable

    import httpx

    from aresbind.core.config import ClientConfig
    from aresbind.outcome import AttemptOutcome
    from aresbind.pool import ConnectionPool

logger: logging.Logger = logging.getLogger(__name__)

_FAILURE_DESCRIPTIONS: dict[FailureKind, str] = {
    FailureKind.CONNECT_TIMEOUT: "timed out while connecting",
    FailureKind.CONNECTION_ACQUIRE_TIMEOUT: "timed out waiting for a pooled connection",
    FailureKind.RESPONSE_TIMEOUT: "timed out waiting for the response",
    FailureKind.CONNECTION_RESET: "lost its connection",
    FailureKind.OTHER_IO: "failed with a network error",
    FailureKind.NON_RETRYABLE: "failed",
}


def create_failure_error(failure: Failure, method: str, url: str, attempts: int) -> HttpRequestError:
    r"""Create the terminal error of a failed call.

    Args:
        failure: The failure of the last attempt.
        method: The HTTP method of the request.
        url: The URL of the request.
        attempts: The number of attempts made.

    Returns:
        An instance of the error class matching the failure kind, with
        the transport exception as cause.

    Example:
        ```pycon
        >>> import httpcore
        >>> from aresbind.executor import create_failure_error
        >>> from aresbind.outcome import Failure, FailureKind
        >>> error = create_failure_error(
        ...     Failure(FailureKind.RESPONSE_TIMEOUT, httpcore.ReadTimeout("timed out")),
        ...     method="GET",
        ...     url="https://api.example.com/posts/1",
        ...     attempts=1,
        ... )
        >>> error
        ResponseTimeoutError(message='GET request to https://api.example.com/posts/1 timed out waiting for the response (1 attempts): timed out', method='GET', url='https://api.example.com/posts/1', status_code=None)

        ```
    """
    description = _FAILURE_DESCRIPTIONS[failure.kind]
    return error_class_for(failure.kind)(
        f"{method} request to {url} {description} ({attempts} attempts): {failure.cause}",
        method=method,
        url=url,
        cause=failure.cause,
    )


class RequestExecutor:
    r"""Execute fully formed requests with pooled connections, timeouts
    and bounded retries.

    Each call runs attempts ``1..max_retries + 1``. An attempt acquires a
    connection, sends the request and reads the whole response. Any HTTP
    response, whatever its status code, completes the call. A failed
    attempt releases its connection as invalid and the retry policy
    decides whether to sleep the backoff delay and try again.

    Args:
        pool: The connection pool shared by all calls.
        timeout_policy: The timeouts applied to each attempt.
        retry_policy: The retry decision and backoff delay.
        callbacks: Optional lifecycle callbacks.
        sleep: Function used to sleep the backoff delay. Defaults to
            ``time.sleep``.

    Example:
        ```pycon
        >>> import httpx
        >>> from aresbind.executor import RequestExecutor
        >>> from aresbind.pool import ConnectionPool
        >>> executor = RequestExecutor(ConnectionPool())
        >>> response = executor.execute(
        ...     httpx.Request("GET", "https://api.example.com/data")
        ... )  # doctest: +SKIP

        ```
    """

    def __init__(
        self,
        pool: ConnectionPool,
        timeout_policy: TimeoutPolicy | None = None,
        retry_policy: RetryPolicy | None = None,
        *,
        callbacks: CallbackManager | None = None,
        sleep: Callable[[float], None] | None = None,
    ) -> None:
        self._pool = pool
        self._timeout_policy = timeout_policy or TimeoutPolicy()
        self._retry_policy = retry_policy or RetryPolicy()
        self._callbacks = callbacks or CallbackManager()
        self._sleep = sleep

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__qualname__}(pool={self._pool!r}, "
            f"timeout_policy={self._timeout_policy!r}, retry_policy={self._retry_policy!r})"
        )

    @classmethod
    def from_config(cls, pool: ConnectionPool, config: ClientConfig) -> RequestExecutor:
        r"""Create an executor whose policies and callbacks come from a
        client configuration.

        Args:
            pool: The connection pool.
            config: The client configuration.

        Returns:
            The request executor.
        """
        return cls(
            pool,
            TimeoutPolicy.from_config(config),
            RetryPolicy.from_config(config),
            callbacks=CallbackManager.from_config(config),
        )

    @property
    def pool(self) -> ConnectionPool:
        return self._pool

    @property
    def timeout_policy(self) -> TimeoutPolicy:
        return self._timeout_policy

    @property
    def retry_policy(self) -> RetryPolicy:
        return self._retry_policy

    def execute(self, request: httpx.Request, *, deadline: float | None = None) -> httpx.Response:
        r"""Execute a request, retrying retryable failures.

        Args:
            request: The request to send.
            deadline: Optional ``time.monotonic()`` value after which the
                call is abandoned. Every timeout is clipped to it and no
                retry is started if its backoff would overrun it.

        Returns:
            The response of the first completed attempt.

        Raises:
            HttpRequestError: A subclass matching the failure kind of the
                last attempt if no attempt completed.
        """
        method = request.method
        url = str(request.url)
        try:
            route = Route.from_url(request.url)
        except ValueError as exc:
            raise NonRetryableRequestError(
                f"{method} request to {url} failed: {exc}", method=method, url=url, cause=exc
            ) from exc

        max_retries = self._retry_policy.max_retries
        state = RetryState()
        start_time = time.monotonic()
        while True:
            attempt = state.start_attempt()
            self._callbacks.on_request(url=url, method=method, attempt=attempt, max_retries=max_retries)
            outcome = self.attempt(route, request, deadline=deadline)

            if isinstance(outcome, Success):
                logger.debug(
                    f"{method} request to {url} completed with status {outcome.status_code} "
                    f"on attempt {attempt}/{max_retries + 1}"
                )
                self._callbacks.on_success(
                    url=url,
                    method=method,
                    attempt=attempt,
                    max_retries=max_retries,
                    response=outcome.response,
                    start_time=start_time,
                )
                return outcome.response

            log_structured(
                logger,
                logging.DEBUG,
                f"{method} request to {url} failed on attempt {attempt}/{max_retries + 1}: "
                f"{outcome.kind.value}",
                method=method,
                url=url,
                route=str(route),
                attempt=attempt,
                kind=outcome.kind.value,
            )
            delay = self._retry_policy.backoff_delay(attempt)
            if not self._retry_policy.should_retry(attempt, outcome) or self._overruns(
                deadline, delay
            ):
                error = create_failure_error(outcome, method=method, url=url, attempts=attempt)
                self._callbacks.on_failure(
                    url=url,
                    method=method,
                    attempt=attempt,
                    max_retries=max_retries,
                    error=error,
                    start_time=start_time,
                )
                raise error from outcome.cause

            self._callbacks.on_retry(
                url=url,
                method=method,
                attempt=attempt + 1,
                max_retries=max_retries,
                wait_time=delay,
                kind=outcome.kind,
                error=outcome.cause,
            )
            logger.debug(f"Waiting {delay:.2f}s before retrying {method} request to {url}")
            (self._sleep or time.sleep)(delay)
            state.record_backoff(delay)

    def attempt(
        self, route: Route, request: httpx.Request, *, deadline: float | None = None
    ) -> AttemptOutcome:
        r"""Run a single attempt.

        The connection is released as reusable only if the exchange
        completed; on any failure, including exceptions that propagate,
        it is released as invalid. A deadline that has already expired
        fails the attempt with a connection-acquire timeout (before
        acquisition) or a response timeout (before sending).

        Args:
            route: The route of the request URL.
            request: The request to send.
            deadline: Optional ``time.monotonic()`` deadline.

        Returns:
            ``Success`` with the response, or ``Failure`` with the
            classified transport error.
        """
        if remaining_time(deadline) == 0.0:
            return Failure(
                FailureKind.CONNECTION_ACQUIRE_TIMEOUT,
                httpcore.PoolTimeout("The deadline expired before a connection was acquired"),
            )
        try:
            connection = self._pool.acquire(
                route, timeout=self._timeout_policy.acquire_timeout(deadline)
            )
        except httpcore.PoolTimeout as exc:
            return Failure(FailureKind.CONNECTION_ACQUIRE_TIMEOUT, exc)

        if remaining_time(deadline) == 0.0:
            self._pool.release(connection)
            return Failure(
                FailureKind.RESPONSE_TIMEOUT,
                httpcore.ReadTimeout("The deadline expired before the request was sent"),
            )

        reusable = False
        try:
            response = connection.send(request, self._timeout_policy.extensions(deadline))
            reusable = True
        except TRANSPORT_ERRORS as exc:
            return Failure(classify_exception(exc), exc)
        finally:
            self._pool.release(connection, reusable=reusable)
        return Success(response)

    @staticmethod
    def _overruns(deadline: float | None, delay: float) -> bool:
        remaining = remaining_time(deadline)
        return remaining is not None and remaining <= delay
