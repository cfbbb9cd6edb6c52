r"""aresbind - Declarative and resilient HTTP client core.

This package turns declarative endpoint descriptions into callable
operations and executes them through a bounded connection pool, with
per-phase timeouts and bounded retries of transient transport failures.
Built on top of httpcore connections and httpx request/response models.

Key Features:
    - Connection pool with global and per-route caps, blocking acquisition
      with timeout, and background eviction of idle connections
    - Connect, connection-acquire and response timeouts, clipped to an
      optional caller deadline
    - Bounded retries of connection failures with a fixed backoff interval
    - Declarative endpoints with path placeholders, query parameters and
      typed JSON bodies decoded with pydantic
    - Typed errors for every failure kind
    - Callback/Event system and structured logging for observability

Example:
    ```pycon
    >>> from aresbind import ResilientClient
    >>> from aresbind.core import ClientConfig
    >>> with ResilientClient(ClientConfig(max_retries=2)) as client:  # doctest: +SKIP
    ...     posts = (
    ...         client.service("https://jsonplaceholder.typicode.com")
    ...         .get("get_post", "/posts/{id}", response_type=dict)
    ...         .post("create_post", "/posts", response_type=dict)
    ...         .build()
    ...     )
    ...     post = posts.get_post(id=1)
    ...     created = posts.create_post(body={"title": "foo"})
    ...

    ```
"""

from __future__ import annotations

__all__ = [
    "ApplicationError",
    "BindingError",
    "BodyRole",
    "BoundEndpoint",
    "CallArguments",
    "ClientConfig",
    "ConnectTimeoutError",
    "ConnectionAcquireTimeoutError",
    "ConnectionLostError",
    "ConnectionPool",
    "DecodeError",
    "EndpointDescriptor",
    "HttpMethod",
    "HttpRequestError",
    "IdleConnectionEvictor",
    "JsonCodec",
    "NetworkIOError",
    "NonRetryableRequestError",
    "RequestExecutor",
    "ResilientClient",
    "ResponseEntity",
    "ResponseTimeoutError",
    "RetryPolicy",
    "Route",
    "Service",
    "ServiceBuilder",
    "TimeoutPolicy",
    "__version__",
    "bind",
]

from importlib.metadata import PackageNotFoundError, version

from aresbind.binding import (
    BodyRole,
    BoundEndpoint,
    CallArguments,
    EndpointDescriptor,
    HttpMethod,
    ResponseEntity,
    bind,
)
from aresbind.client import ResilientClient
from aresbind.codec import JsonCodec
from aresbind.core.config import ClientConfig
from aresbind.evictor import IdleConnectionEvictor
from aresbind.exceptions import (
    ApplicationError,
    BindingError,
    ConnectionAcquireTimeoutError,
    ConnectionLostError,
    ConnectTimeoutError,
    DecodeError,
    HttpRequestError,
    NetworkIOError,
    NonRetryableRequestError,
    ResponseTimeoutError,
)
from aresbind.executor import RequestExecutor
from aresbind.pool import ConnectionPool, Route
from aresbind.retry import RetryPolicy
from aresbind.service import Service, ServiceBuilder
from aresbind.timeout import TimeoutPolicy

try:
    __version__ = version(__name__)
except PackageNotFoundError:  # pragma: no cover
    # Package is not installed, fallback if needed
    __version__ = "0.0.0"
