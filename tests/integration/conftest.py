from __future__ import annotations

import json
import socket
import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import TYPE_CHECKING, Any
from urllib.parse import parse_qs, urlsplit

import pytest

if TYPE_CHECKING:
    from collections.abc import Generator


class PostsHandler(BaseHTTPRequestHandler):
    """Minimal HTTP/1.1 posts API.

    ``GET /posts/{id}`` returns a post, ``GET /slow?delay=s`` sends the
    headers after ``delay`` seconds, ``GET /trickle?delay=s`` sends the body
    one byte every ``delay`` seconds, ``POST /posts`` and ``PUT /posts/{id}``
    echo the JSON body with an id, ``DELETE /posts/{id}`` returns an empty
    body and ``GET /missing`` returns 404.
    """

    protocol_version = "HTTP/1.1"

    def log_message(self, format: str, *args: Any) -> None:  # noqa: A002
        pass

    def do_GET(self) -> None:
        url = urlsplit(self.path)
        if url.path == "/slow":
            delay = float(parse_qs(url.query).get("delay", ["1.0"])[0])
            time.sleep(delay)
            self._send_json(200, {"slow": True})
        elif url.path == "/trickle":
            delay = float(parse_qs(url.query).get("delay", ["0.1"])[0])
            self._send_trickle(delay)
        elif url.path.startswith("/posts/"):
            post_id = int(url.path.rsplit("/", 1)[1])
            self._send_json(
                200, {"id": post_id, "userId": 1, "title": "foo", "body": "bar"}
            )
        elif url.path == "/echo":
            self._send_json(
                200,
                {
                    "query": parse_qs(url.query),
                    "accept": self.headers.get_all("Accept"),
                    "trace": self.headers.get_all("X-Trace"),
                },
            )
        else:
            self._send_json(404, {"error": "not found"})

    def do_POST(self) -> None:
        self._send_json(201, {**self._read_json(), "id": 101})

    def do_PUT(self) -> None:
        post_id = int(urlsplit(self.path).path.rsplit("/", 1)[1])
        self._send_json(200, {**self._read_json(), "id": post_id})

    def do_DELETE(self) -> None:
        self.send_response(200)
        self.send_header("Content-Length", "0")
        self.end_headers()

    def _read_json(self) -> dict[str, Any]:
        length = int(self.headers.get("Content-Length", "0"))
        return json.loads(self.rfile.read(length) or b"{}")

    def _send_json(self, status: int, payload: Any) -> None:
        content = json.dumps(payload).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(content)))
        self.end_headers()
        self.wfile.write(content)

    def _send_trickle(self, delay: float) -> None:
        content = json.dumps({"id": 1}).encode("utf-8").ljust(20)
        self.send_response(200)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(content)))
        self.end_headers()
        self.wfile.flush()
        try:
            for byte in content:
                time.sleep(delay)
                self.wfile.write(bytes([byte]))
                self.wfile.flush()
        except (BrokenPipeError, ConnectionResetError):
            self.close_connection = True


class PostsServer(ThreadingHTTPServer):
    daemon_threads = True
    request_queue_size = 128


@pytest.fixture(scope="module")
def server_url() -> Generator[str, None, None]:
    """Run the posts API on a free local port."""
    server = PostsServer(("127.0.0.1", 0), PostsHandler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield f"http://127.0.0.1:{server.server_address[1]}"
    server.shutdown()
    server.server_close()


@pytest.fixture
def closed_port_url() -> str:
    """Return the URL of a local port nothing listens on."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        port = sock.getsockname()[1]
    return f"http://127.0.0.1:{port}"
