r"""Fake transport connections shared by the unit tests.

The fakes implement the subset of ``httpcore.HTTPConnection`` used by
the connection pool, so the pool, the executor and the binding layer can
be tested without opening sockets.
"""

from __future__ import annotations

__all__ = ["FakeConnection", "FakeConnectionFactory", "json_reply"]

import json
import threading
from typing import TYPE_CHECKING, Any

import httpcore

if TYPE_CHECKING:
    from aresbind.pool import Route


def json_reply(payload: Any, status: int = 200) -> httpcore.Response:
    """Create an httpcore response with a JSON body."""
    content = json.dumps(payload).encode("utf-8")
    return httpcore.Response(
        status,
        headers=[(b"Content-Type", b"application/json"), (b"Content-Length", str(len(content)).encode())],
        content=content,
    )


class FakeConnection:
    """Fake httpcore connection replaying scripted replies.

    Each item of ``replies`` is either an ``httpcore.Response`` returned by
    ``handle_request`` or an exception raised by it. When the script is
    exhausted, an empty ``200`` response is returned.
    """

    def __init__(self, route: Route | None = None, replies: list[Any] | None = None) -> None:
        self.route = route
        self.replies = list(replies or [])
        self.requests: list[httpcore.Request] = []
        self.closed = False
        self.expired = False

    def handle_request(self, request: httpcore.Request) -> httpcore.Response:
        self.requests.append(request)
        reply = self.replies.pop(0) if self.replies else httpcore.Response(200, content=b"")
        if isinstance(reply, BaseException):
            raise reply
        return reply

    def has_expired(self) -> bool:
        return self.expired

    def is_closed(self) -> bool:
        return self.closed

    def close(self) -> None:
        self.closed = True


class FakeConnectionFactory:
    """Connection factory creating ``FakeConnection`` objects.

    ``script`` is shared by all the created connections: every request,
    whatever the connection it is sent on, consumes the next reply.
    """

    def __init__(self, script: list[Any] | None = None) -> None:
        self.script = list(script or [])
        self.connections: list[FakeConnection] = []
        self._lock = threading.Lock()

    def __call__(self, route: Route, max_idle_time: float) -> FakeConnection:  # noqa: ARG002
        connection = _ScriptedConnection(route, self)
        with self._lock:
            self.connections.append(connection)
        return connection

    @property
    def requests(self) -> list[httpcore.Request]:
        return [request for connection in self.connections for request in connection.requests]

    def next_reply(self) -> Any:
        with self._lock:
            return self.script.pop(0) if self.script else httpcore.Response(200, content=b"")


class _ScriptedConnection(FakeConnection):
    def __init__(self, route: Route, factory: FakeConnectionFactory) -> None:
        super().__init__(route)
        self._factory = factory

    def handle_request(self, request: httpcore.Request) -> httpcore.Response:
        self.requests.append(request)
        reply = self._factory.next_reply()
        if isinstance(reply, BaseException):
            raise reply
        return reply
