r"""Context manager client bundling the connection pool, the executor
and the idle connection evictor.

The ``ResilientClient`` offers imperative verbs (``send_get``,
``send_post``, ``send_put``, ``send_delete``) that encode and decode
bodies with the client codec, a low level ``request`` returning the raw
``httpx.Response``, and ``service`` to declare endpoint-bound services
sharing the client resources.
"""

from __future__ import annotations

__all__ = ["ResilientClient"]

from typing import TYPE_CHECKING, Any

import httpx

from aresbind.binding import (
    BodyRole,
    CallArguments,
    EndpointDescriptor,
    HttpMethod,
    decode_response,
    resolve_request,
)
from aresbind.codec import JsonCodec
from aresbind.core.config import ClientConfig
from aresbind.evictor import IdleConnectionEvictor
from aresbind.executor import RequestExecutor
from aresbind.pool import ConnectionPool
from aresbind.service import ServiceBuilder

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence
    from types import TracebackType
    from typing import Self

    from aresbind.binding import ResponseEntity
    from aresbind.codec import Codec


class ResilientClient:
    r"""Synchronous context manager for resilient HTTP calls.

    Two usage patterns are supported:

    **Scenario 1 - Shared pool (external lifecycle management)**:
    A ``ConnectionPool`` is created and closed by the caller, and passed to
    one or several clients. The client does *not* close the pool when it
    exits.

    .. code-block:: python

        from aresbind import ConnectionPool, ResilientClient
        from aresbind.core import ClientConfig

        config = ClientConfig(max_per_route=4)
        with ConnectionPool.from_config(config) as pool:
            with ResilientClient(config, pool=pool) as client:
                entity = client.send_get("https://api.example.com/data", dict)
        # the pool is closed here by the outer ``with`` block

    **Scenario 2 - Owned pool**:
    The client creates its pool from the configuration and closes it on
    exit.

    .. code-block:: python

        from aresbind import ResilientClient

        with ResilientClient() as client:
            entity = client.send_get("https://api.example.com/data", dict)

    In both cases entering the client starts the idle connection evictor
    and exiting stops it.

    Args:
        config: Optional ``ClientConfig``. If ``None``, a default
            ``ClientConfig`` is used.
        codec: The body codec. Defaults to ``JsonCodec``.
        pool: Optional connection pool. If ``None``, a pool sized by
            ``config`` is created and owned by the client.

    Example:
        ```pycon
        >>> from aresbind import ResilientClient
        >>> from aresbind.core import ClientConfig
        >>> with ResilientClient(ClientConfig(max_retries=2)) as client:  # doctest: +SKIP
        ...     post = client.send_get("https://jsonplaceholder.typicode.com/posts/1", dict).body
        ...

        ```
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        *,
        codec: Codec | None = None,
        pool: ConnectionPool | None = None,
    ) -> None:
        self._config: ClientConfig = config or ClientConfig()
        self._codec = codec or JsonCodec()
        self._owns_pool = pool is None
        self._pool = pool or ConnectionPool.from_config(self._config)
        self._executor = RequestExecutor.from_config(self._pool, self._config)
        self._evictor = IdleConnectionEvictor(self._pool, interval=self._config.eviction_interval)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__qualname__}(config={self._config!r}, codec={self._codec!r}, "
            f"owns_pool={self._owns_pool})"
        )

    def __enter__(self) -> Self:
        """Enter the context manager and start the idle connection
        evictor.

        Returns:
            The ResilientClient instance for making requests.
        """
        self._evictor.start()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit the context manager, stop the evictor and close the pool
        if the client owns it.

        Args:
            exc_type: Exception type if an exception occurred.
            exc_val: Exception value if an exception occurred.
            exc_tb: Exception traceback if an exception occurred.
        """
        self.close()

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def codec(self) -> Codec:
        return self._codec

    @property
    def pool(self) -> ConnectionPool:
        return self._pool

    @property
    def executor(self) -> RequestExecutor:
        return self._executor

    def close(self) -> None:
        r"""Stop the evictor and close the pool if the client owns it."""
        self._evictor.stop()
        if self._owns_pool:
            self._pool.close()

    def request(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str] | Sequence[tuple[str, str]] | None = None,
        params: Mapping[str, Any] | None = None,
        content: bytes | None = None,
        deadline: float | None = None,
    ) -> httpx.Response:
        r"""Send an HTTP request with automatic retry logic.

        Any HTTP status completes the call; the status code is not
        checked.

        Args:
            method: The HTTP method.
            url: The absolute URL.
            headers: Optional request headers.
            params: Optional query parameters.
            content: Optional raw request body.
            deadline: Optional ``time.monotonic()`` deadline of the call.

        Returns:
            The response of the first completed attempt.

        Raises:
            HttpRequestError: If no attempt completed.

        Example:
            ```pycon
            >>> from aresbind import ResilientClient
            >>> with ResilientClient() as client:  # doctest: +SKIP
            ...     response = client.request("GET", "https://api.example.com/data")
            ...

            ```
        """
        request = httpx.Request(method, url, headers=headers, params=params, content=content)
        return self._executor.execute(request, deadline=deadline)

    def send_get(
        self,
        url: str,
        response_type: Any = None,
        *,
        headers: Mapping[str, str | Sequence[str]] | None = None,
        deadline: float | None = None,
    ) -> ResponseEntity:
        r"""Send a GET request and decode the response body.

        Args:
            url: The absolute URL.
            response_type: The type the body is decoded into.
            headers: Optional extra headers.
            deadline: Optional ``time.monotonic()`` deadline of the call.

        Returns:
            The response entity.

        Raises:
            ApplicationError: If the status code is not 2xx.
            DecodeError: If the body does not match ``response_type``.
            HttpRequestError: If no attempt completed.
        """
        return self._send(HttpMethod.GET, url, None, response_type, headers, deadline)

    def send_post(
        self,
        url: str,
        body: Any,
        response_type: Any = None,
        *,
        headers: Mapping[str, str | Sequence[str]] | None = None,
        deadline: float | None = None,
    ) -> ResponseEntity:
        r"""Send a POST request with an encoded body and decode the
        response body.

        See ``send_get`` for the arguments and errors.
        """
        return self._send(HttpMethod.POST, url, body, response_type, headers, deadline)

    def send_put(
        self,
        url: str,
        body: Any,
        response_type: Any = None,
        *,
        headers: Mapping[str, str | Sequence[str]] | None = None,
        deadline: float | None = None,
    ) -> ResponseEntity:
        r"""Send a PUT request with an encoded body and decode the response
        body.

        See ``send_get`` for the arguments and errors.
        """
        return self._send(HttpMethod.PUT, url, body, response_type, headers, deadline)

    def send_delete(
        self,
        url: str,
        response_type: Any = None,
        *,
        headers: Mapping[str, str | Sequence[str]] | None = None,
        deadline: float | None = None,
    ) -> ResponseEntity:
        r"""Send a DELETE request and decode the response body, if any.

        See ``send_get`` for the arguments and errors.
        """
        return self._send(HttpMethod.DELETE, url, None, response_type, headers, deadline)

    def service(self, base_url: str) -> ServiceBuilder:
        r"""Return a builder for a service sharing the client executor and
        codec.

        Args:
            base_url: The absolute URL the path templates are appended to.

        Returns:
            The service builder.

        Example:
            ```pycon
            >>> from aresbind import ResilientClient
            >>> client = ResilientClient()
            >>> posts = (
            ...     client.service("https://jsonplaceholder.typicode.com")
            ...     .get("get_post", "/posts/{id}", response_type=dict)
            ...     .build()
            ... )
            >>> posts.names
            ('get_post',)
            >>> client.close()

            ```
        """
        return ServiceBuilder(self._executor, base_url=base_url, codec=self._codec)

    def _send(
        self,
        method: HttpMethod,
        url: str,
        body: Any,
        response_type: Any,
        headers: Mapping[str, str | Sequence[str]] | None,
        deadline: float | None,
    ) -> ResponseEntity:
        body_role = BodyRole.REQUEST_BODY if body is not None else BodyRole.NONE
        descriptor = EndpointDescriptor(
            method, "", body_role=body_role, response_type=response_type
        )
        request = resolve_request(
            descriptor,
            CallArguments(headers=headers or {}, body=body),
            base_url=url,
            codec=self._codec,
        )
        response = self._executor.execute(request, deadline=deadline)
        return decode_response(response, response_type, codec=self._codec)
