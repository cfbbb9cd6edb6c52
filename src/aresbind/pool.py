r"""Bounded pool of reusable HTTP connections keyed by route.

The pool enforces a global cap and a per-route cap on live connections.
A caller asking for a connection while the pool is saturated blocks
until a connection is released or its acquisition timeout elapses.
Acquire, release and eviction are serialized by a single condition
variable, so the counts are always accurate and the eviction sweep can
never close a connection that was just handed to a caller.
"""

from __future__ import annotations

__all__ = [
    "DEFAULT_PORTS",
    "ConnectionPool",
    "PoolStats",
    "PooledConnection",
    "Route",
    "default_connection_factory",
]

import logging
import socket
import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

import httpcore
import httpx

from aresbind.core.config import (
    DEFAULT_MAX_IDLE_TIME,
    DEFAULT_MAX_PER_ROUTE,
    DEFAULT_MAX_TOTAL_CONNECTIONS,
)
from aresbind.core.validation import validate_pool_params

if TYPE_CHECKING:
    from collections.abc import Callable
    from types import TracebackType
    from typing import Self

    from aresbind.core.config import ClientConfig

logger: logging.Logger = logging.getLogger(__name__)

DEFAULT_PORTS: dict[str, int] = {"http": 80, "https": 443}


@dataclass(frozen=True)
class Route:
    r"""The (scheme, host, port) triple a pooled connection is scoped to.

    Example:
        ```pycon
        >>> from aresbind.pool import Route
        >>> route = Route.from_url("https://api.example.com/posts/1")
        >>> route
        Route(scheme='https', host='api.example.com', port=443)
        >>> str(route)
        'https://api.example.com:443'

        ```
    """

    scheme: str
    host: str
    port: int

    def __str__(self) -> str:
        return f"{self.scheme}://{self.host}:{self.port}"

    @classmethod
    def from_url(cls, url: httpx.URL | str) -> Route:
        r"""Create the route of an absolute URL.

        Args:
            url: An absolute ``http`` or ``https`` URL.

        Returns:
            The route, with the scheme's default port if the URL has none.

        Raises:
            ValueError: If the URL has no host or an unsupported scheme.
        """
        url = httpx.URL(url)
        if url.scheme not in DEFAULT_PORTS:
            msg = f"Unsupported URL scheme {url.scheme!r} in {url}"
            raise ValueError(msg)
        if not url.raw_host:
            msg = f"URL {url} has no host"
            raise ValueError(msg)
        return cls(
            scheme=url.scheme,
            host=url.raw_host.decode("ascii"),
            port=url.port or DEFAULT_PORTS[url.scheme],
        )

    def origin(self) -> httpcore.Origin:
        r"""Return the ``httpcore`` origin of the route."""
        return httpcore.Origin(
            scheme=self.scheme.encode("ascii"),
            host=self.host.encode("ascii"),
            port=self.port,
        )


class TransportConnection(Protocol):
    r"""The subset of ``httpcore.HTTPConnection`` used by the pool."""

    def handle_request(self, request: httpcore.Request) -> httpcore.Response: ...

    def has_expired(self) -> bool: ...

    def is_closed(self) -> bool: ...

    def close(self) -> None: ...


def default_connection_factory(route: Route, max_idle_time: float) -> httpcore.HTTPConnection:
    r"""Create a lazily connected ``httpcore`` connection for a route.

    Args:
        route: The route the connection is scoped to.
        max_idle_time: Keep-alive expiry of the connection in seconds.

    Returns:
        The connection. The socket is opened by the first request.
    """
    return httpcore.HTTPConnection(origin=route.origin(), keepalive_expiry=max_idle_time)


class _ResponseWatchdog:
    r"""Bound the total time spent receiving a response.

    When the time limit passes, the socket is shut down so that a read
    blocked on a slow peer returns instead of waiting for more data.
    """

    def __init__(self, response: httpcore.Response, expires_at: float | None) -> None:
        self._expires_at = expires_at
        self._fired = threading.Event()
        self._timer: threading.Timer | None = None
        if expires_at is None:
            return
        stream = response.extensions.get("network_stream")
        sock = stream.get_extra_info("socket") if stream is not None else None
        if sock is not None:
            self._timer = threading.Timer(
                max(expires_at - time.monotonic(), 0.0), self._interrupt, args=(sock,)
            )
            self._timer.daemon = True
            self._timer.start()

    @property
    def fired(self) -> bool:
        return self._fired.is_set()

    def check(self) -> None:
        r"""Raise ``httpcore.ReadTimeout`` if the time limit has passed."""
        if self._expires_at is not None and time.monotonic() >= self._expires_at:
            raise self.timeout_error()

    def cancel(self) -> None:
        if self._timer is not None:
            self._timer.cancel()

    def timeout_error(self) -> httpcore.ReadTimeout:
        return httpcore.ReadTimeout("Timed out before the full response was received")

    def _interrupt(self, sock: socket.socket) -> None:
        self._fired.set()
        try:
            sock.shutdown(socket.SHUT_RDWR)
        except OSError as exc:
            logger.debug(f"Could not shut down the socket of a timed out response: {exc}")


class PooledConnection:
    r"""One live transport connection owned by a ``ConnectionPool``.

    Args:
        route: The route the connection is scoped to.
        connection: The underlying transport connection.
        created_at: Creation time on the pool clock.
    """

    def __init__(self, route: Route, connection: TransportConnection, *, created_at: float) -> None:
        self.route = route
        self.connection = connection
        self.created_at = created_at
        self.last_used_at = created_at
        self.busy = False

    def __repr__(self) -> str:
        state = "busy" if self.busy else "idle"
        return f"{self.__class__.__qualname__}(route={self.route}, state={state})"

    def idle_time(self, now: float) -> float:
        r"""Return the seconds elapsed since the connection was last
        released."""
        return now - self.last_used_at

    def is_expired(self) -> bool:
        r"""Indicate if the connection can no longer be reused, e.g. the
        server closed it or its keep-alive expired."""
        return self.connection.is_closed() or self.connection.has_expired()

    def send(self, request: httpx.Request, timeouts: dict[str, float]) -> httpx.Response:
        r"""Send a request and read the full response.

        The ``read`` timeout bounds each socket read and also the whole
        time from the start of the exchange until the last body byte.

        Args:
            request: The request to send. Its URL must belong to the
                connection's route.
            timeouts: The ``httpcore`` timeout extension.

        Returns:
            The response, with its body already read.

        Raises:
            httpcore.TimeoutException: If a timeout fired.
            httpcore.NetworkError: If the connection failed.
            httpcore.ProtocolError: If the peer violated HTTP.
        """
        url = request.url
        budget = timeouts.get("read")
        expires_at = None if budget is None else time.monotonic() + budget
        core_request = httpcore.Request(
            method=request.method.encode("ascii"),
            url=httpcore.URL(
                scheme=url.raw_scheme,
                host=url.raw_host,
                port=url.port,
                target=url.raw_path,
            ),
            headers=request.headers.raw,
            content=request.content,
            extensions={"timeout": timeouts},
        )
        core_response = self.connection.handle_request(core_request)
        watchdog = _ResponseWatchdog(core_response, expires_at)
        chunks = []
        try:
            watchdog.check()
            for chunk in core_response.iter_stream():
                chunks.append(chunk)
                watchdog.check()
        except (httpcore.NetworkError, httpcore.ProtocolError) as exc:
            if watchdog.fired:
                raise watchdog.timeout_error() from exc
            raise
        finally:
            watchdog.cancel()
            core_response.close()
        return httpx.Response(
            status_code=core_response.status,
            headers=core_response.headers,
            content=b"".join(chunks),
            request=request,
            extensions=core_response.extensions,
        )

    def close(self) -> None:
        r"""Close the underlying transport connection."""
        self.connection.close()


@dataclass(frozen=True)
class PoolStats:
    r"""Snapshot of the pool counters.

    Attributes:
        total: The number of live connections.
        busy: The number of connections handed out to callers.
        idle: The number of connections waiting for reuse.
        routes: The number of live connections per route.
    """

    total: int
    busy: int
    idle: int
    routes: dict[Route, int]


class ConnectionPool:
    r"""Bounded set of reusable connections keyed by route.

    Args:
        max_total_connections: Maximum number of live connections.
        max_per_route: Maximum number of live connections to one route.
        max_idle_time: Seconds an idle connection is kept before
            ``evict_expired`` removes it.
        connection_factory: Callable creating a transport connection for
            a route. Defaults to ``default_connection_factory``.
        clock: Monotonic clock used for idle times and timeouts.

    Example:
        ```pycon
        >>> from aresbind.pool import ConnectionPool, Route
        >>> with ConnectionPool(max_total_connections=10, max_per_route=2) as pool:
        ...     route = Route.from_url("http://localhost:8080")
        ...     connection = pool.acquire(route, timeout=1.0)
        ...     pool.busy_count
        ...     pool.release(connection)
        ...     pool.stats()
        ...
        1
        PoolStats(total=1, busy=0, idle=1, routes={Route(scheme='http', host='localhost', port=8080): 1})

        ```
    """

    def __init__(
        self,
        *,
        max_total_connections: int = DEFAULT_MAX_TOTAL_CONNECTIONS,
        max_per_route: int = DEFAULT_MAX_PER_ROUTE,
        max_idle_time: float = DEFAULT_MAX_IDLE_TIME,
        connection_factory: Callable[[Route, float], TransportConnection] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        validate_pool_params(
            max_total_connections=max_total_connections,
            max_per_route=max_per_route,
            max_idle_time=max_idle_time,
        )
        self._max_total_connections = max_total_connections
        self._max_per_route = max_per_route
        self._max_idle_time = max_idle_time
        self._connection_factory = connection_factory or default_connection_factory
        self._clock = clock

        # State tracking (protected by the condition)
        self._condition = threading.Condition()
        self._idle: dict[Route, deque[PooledConnection]] = {}
        self._route_counts: dict[Route, int] = {}
        self._total = 0
        self._busy = 0
        self._closed = False

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__qualname__}(max_total_connections={self._max_total_connections}, "
            f"max_per_route={self._max_per_route}, max_idle_time={self._max_idle_time})"
        )

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()

    @classmethod
    def from_config(cls, config: ClientConfig, **kwargs: Any) -> ConnectionPool:
        r"""Create a pool sized by a client configuration.

        Args:
            config: The client configuration.
            **kwargs: Additional keyword arguments passed to the
                constructor (``connection_factory``, ``clock``).

        Returns:
            The connection pool.
        """
        return cls(
            max_total_connections=config.max_total_connections,
            max_per_route=config.max_per_route,
            max_idle_time=config.max_idle_time,
            **kwargs,
        )

    @property
    def max_total_connections(self) -> int:
        return self._max_total_connections

    @property
    def max_per_route(self) -> int:
        return self._max_per_route

    @property
    def max_idle_time(self) -> float:
        return self._max_idle_time

    @property
    def busy_count(self) -> int:
        r"""The number of connections currently handed out to callers."""
        with self._condition:
            return self._busy

    @property
    def total_count(self) -> int:
        r"""The number of live connections."""
        with self._condition:
            return self._total

    @property
    def is_closed(self) -> bool:
        with self._condition:
            return self._closed

    def route_count(self, route: Route) -> int:
        r"""Return the number of live connections to a route."""
        with self._condition:
            return self._route_counts.get(route, 0)

    def stats(self) -> PoolStats:
        r"""Return a consistent snapshot of the pool counters."""
        with self._condition:
            return PoolStats(
                total=self._total,
                busy=self._busy,
                idle=sum(len(idle) for idle in self._idle.values()),
                routes=dict(self._route_counts),
            )

    def acquire(self, route: Route, timeout: float | None = None) -> PooledConnection:
        r"""Obtain a connection to a route for exclusive use.

        An idle connection to the route is reused when possible, otherwise
        a new one is created if both the route and the global counts are
        below their caps. When neither is possible the call waits for a
        release, up to ``timeout`` seconds.

        Args:
            route: The route to connect to.
            timeout: Maximum seconds to wait, or ``None`` to wait forever.

        Returns:
            A busy connection. It must be given back with ``release``.

        Raises:
            httpcore.PoolTimeout: If no connection became available in time.
            RuntimeError: If the pool is closed.
        """
        to_close: list[PooledConnection] = []
        try:
            with self._condition:
                connection = self._acquire_locked(route, timeout, to_close)
        finally:
            self._close_all(to_close)
        return connection

    def release(self, connection: PooledConnection, *, reusable: bool = True) -> None:
        r"""Give back a connection obtained with ``acquire``.

        Args:
            connection: The connection to release.
            reusable: ``False`` if the connection is in an unknown state
                (I/O error, timeout, cancellation). It is then closed and
                its capacity freed immediately.

        Raises:
            RuntimeError: If the connection is not in use.
        """
        with self._condition:
            if not connection.busy:
                msg = f"{connection!r} is not in use"
                raise RuntimeError(msg)
            connection.busy = False
            connection.last_used_at = self._clock()
            self._busy -= 1
            if reusable and not self._closed and not connection.is_expired():
                self._idle.setdefault(connection.route, deque()).append(connection)
                self._condition.notify_all()
                return
            self._discard_locked(connection)
        logger.debug(f"Discarding connection to {connection.route} (reusable={reusable})")
        connection.close()

    def evict_expired(self) -> int:
        r"""Close idle connections that were idle for at least
        ``max_idle_time`` or that report they are expired.

        Busy connections are never evicted.

        Returns:
            The number of evicted connections.
        """
        to_close: list[PooledConnection] = []
        with self._condition:
            now = self._clock()
            for route, idle in list(self._idle.items()):
                kept: deque[PooledConnection] = deque()
                for connection in idle:
                    if connection.idle_time(now) >= self._max_idle_time or connection.is_expired():
                        self._discard_locked(connection)
                        to_close.append(connection)
                    else:
                        kept.append(connection)
                if kept:
                    self._idle[route] = kept
                else:
                    del self._idle[route]
        self._close_all(to_close)
        if to_close:
            logger.debug(f"Evicted {len(to_close)} idle connection(s)")
        return len(to_close)

    def close(self) -> None:
        r"""Close the idle connections and refuse new acquisitions.

        Busy connections are closed when they are released.
        """
        with self._condition:
            if self._closed:
                return
            self._closed = True
            to_close = [connection for idle in self._idle.values() for connection in idle]
            for connection in to_close:
                self._discard_locked(connection)
            self._idle.clear()
            self._condition.notify_all()
        self._close_all(to_close)

    def _acquire_locked(
        self, route: Route, timeout: float | None, to_close: list[PooledConnection]
    ) -> PooledConnection:
        deadline = None if timeout is None else self._clock() + timeout
        while True:
            if self._closed:
                msg = "The connection pool is closed"
                raise RuntimeError(msg)
            connection = self._pop_idle_locked(route, to_close)
            if connection is None and self._has_capacity_locked(route):
                connection = self._create_locked(route)
            if connection is not None:
                connection.busy = True
                self._busy += 1
                return connection
            # Free a global slot held by an idle connection of another route.
            if (
                self._route_counts.get(route, 0) < self._max_per_route
                and self._evict_oldest_idle_locked(to_close)
            ):
                continue
            remaining = None if deadline is None else deadline - self._clock()
            if remaining is not None and remaining <= 0:
                msg = f"Timed out after {timeout}s waiting for a connection to {route}"
                raise httpcore.PoolTimeout(msg)
            self._condition.wait(remaining)

    def _has_capacity_locked(self, route: Route) -> bool:
        return (
            self._total < self._max_total_connections
            and self._route_counts.get(route, 0) < self._max_per_route
        )

    def _create_locked(self, route: Route) -> PooledConnection:
        connection = PooledConnection(
            route,
            self._connection_factory(route, self._max_idle_time),
            created_at=self._clock(),
        )
        self._total += 1
        self._route_counts[route] = self._route_counts.get(route, 0) + 1
        logger.debug(f"Created connection to {route} ({self._total} live)")
        return connection

    def _pop_idle_locked(
        self, route: Route, to_close: list[PooledConnection]
    ) -> PooledConnection | None:
        idle = self._idle.get(route)
        found = None
        while idle and found is None:
            connection = idle.pop()
            if connection.is_expired():
                self._discard_locked(connection)
                to_close.append(connection)
            else:
                found = connection
        if idle is not None and not idle:
            del self._idle[route]
        return found

    def _evict_oldest_idle_locked(self, to_close: list[PooledConnection]) -> bool:
        oldest = min(
            (connection for idle in self._idle.values() for connection in idle),
            key=lambda connection: connection.last_used_at,
            default=None,
        )
        if oldest is None:
            return False
        idle = self._idle[oldest.route]
        idle.remove(oldest)
        if not idle:
            del self._idle[oldest.route]
        self._discard_locked(oldest)
        to_close.append(oldest)
        return True

    def _discard_locked(self, connection: PooledConnection) -> None:
        self._total -= 1
        count = self._route_counts[connection.route] - 1
        if count:
            self._route_counts[connection.route] = count
        else:
            del self._route_counts[connection.route]
        self._condition.notify_all()

    @staticmethod
    def _close_all(connections: list[PooledConnection]) -> None:
        for connection in connections:
            connection.close()
