r"""Unit tests for ResilientClient context manager.

This file contains tests for the synchronous context manager client.
"""

from __future__ import annotations

from typing import Any
from unittest.mock import Mock

import httpcore
import pytest
from pydantic import BaseModel

from aresbind import ResilientClient
from aresbind.codec import JsonCodec
from aresbind.core.config import ClientConfig
from aresbind.exceptions import ApplicationError, ConnectTimeoutError
from aresbind.pool import ConnectionPool
from aresbind.service import ServiceBuilder
from tests.unit.helpers import FakeConnectionFactory, json_reply

TEST_URL = "http://api.example.com/posts"


class Post(BaseModel):
    id: int | None = None
    title: str | None = None


def make_client(
    script: list[Any] | None = None, config: ClientConfig | None = None
) -> tuple[ResilientClient, FakeConnectionFactory]:
    factory = FakeConnectionFactory(script)
    pool = ConnectionPool(connection_factory=factory)
    return ResilientClient(config, pool=pool), factory


#####################################
#     Tests for ResilientClient     #
#####################################


def test_client_defaults() -> None:
    client = ResilientClient()
    assert client.config == ClientConfig()
    assert isinstance(client.codec, JsonCodec)
    assert client.pool.max_total_connections == 100
    assert client.executor.pool is client.pool
    client.close()


def test_client_pool_sized_by_config() -> None:
    client = ResilientClient(ClientConfig(max_total_connections=5, max_per_route=2))
    assert client.pool.max_total_connections == 5
    assert client.pool.max_per_route == 2
    client.close()


def test_client_context_manager_closes_owned_pool(mock_sleep: Mock) -> None:
    with ResilientClient() as client:
        assert client._evictor.is_running
    assert not client._evictor.is_running
    assert client.pool.is_closed
    mock_sleep.assert_not_called()


def test_client_context_manager_keeps_external_pool() -> None:
    pool = ConnectionPool(connection_factory=FakeConnectionFactory())
    with ResilientClient(pool=pool) as client:
        assert client.pool is pool
    assert not pool.is_closed
    pool.close()


def test_client_closes_on_exception() -> None:
    msg = "test error"
    with pytest.raises(ValueError, match=r"test error"), ResilientClient() as client:
        raise ValueError(msg)
    assert client.pool.is_closed


def test_client_request(mock_sleep: Mock) -> None:
    client, factory = make_client([json_reply({"id": 1}, status=404)])

    response = client.request(
        "GET", TEST_URL, headers={"X-Trace": "t"}, params={"page": 2}, deadline=None
    )

    assert response.status_code == 404
    sent = factory.requests[0]
    assert sent.url.target == b"/posts?page=2"
    assert (b"X-Trace", b"t") in sent.headers
    mock_sleep.assert_not_called()


def test_client_send_get(mock_sleep: Mock) -> None:
    client, factory = make_client([json_reply({"id": 1, "title": "foo"})])

    entity = client.send_get(f"{TEST_URL}/1", Post, headers={"Authorization": "Bearer t"})

    assert entity.status_code == 200
    assert entity.body == Post(id=1, title="foo")
    sent = factory.requests[0]
    assert sent.method == b"GET"
    assert (b"Accept", b"application/json") in sent.headers
    assert (b"Authorization", b"Bearer t") in sent.headers
    mock_sleep.assert_not_called()


def test_client_send_post(mock_sleep: Mock) -> None:
    client, factory = make_client([json_reply({"id": 101, "title": "foo"}, status=201)])

    entity = client.send_post(TEST_URL, Post(title="foo"), Post)

    assert entity.status_code == 201
    assert entity.body == Post(id=101, title="foo")
    sent = factory.requests[0]
    assert sent.method == b"POST"
    assert (b"Content-Type", b"application/json") in sent.headers
    mock_sleep.assert_not_called()


def test_client_send_put(mock_sleep: Mock) -> None:
    client, factory = make_client([json_reply({"id": 1, "title": "bar"})])

    entity = client.send_put(f"{TEST_URL}/1", {"title": "bar"}, Post)

    assert entity.body == Post(id=1, title="bar")
    assert factory.requests[0].method == b"PUT"
    mock_sleep.assert_not_called()


def test_client_send_delete_empty_body(mock_sleep: Mock) -> None:
    client, factory = make_client([httpcore.Response(200, content=b"")])

    entity = client.send_delete(f"{TEST_URL}/1", Post)

    assert entity.status_code == 200
    assert entity.body.id is None
    assert entity.body.title is None
    assert factory.requests[0].method == b"DELETE"
    mock_sleep.assert_not_called()


def test_client_send_get_error_status(mock_sleep: Mock) -> None:
    client, _ = make_client([json_reply({"error": "missing"}, status=404)])

    with pytest.raises(ApplicationError, match=r"failed with status 404") as exc_info:
        client.send_get(f"{TEST_URL}/999", dict)

    assert exc_info.value.body == {"error": "missing"}
    mock_sleep.assert_not_called()


def test_client_retries_with_config(mock_sleep: Mock) -> None:
    client, factory = make_client(
        [httpcore.ConnectTimeout("timed out")] * 4,
        ClientConfig(max_retries=3, retry_backoff_interval=0.25),
    )

    with pytest.raises(ConnectTimeoutError, match=r"\(4 attempts\)"):
        client.send_get(TEST_URL)

    assert len(factory.requests) == 4
    assert mock_sleep.call_count == 3
    mock_sleep.assert_called_with(0.25)
    assert client.pool.busy_count == 0


def test_client_callbacks_from_config(mock_sleep: Mock) -> None:
    on_success = Mock()
    client, _ = make_client([json_reply({})], ClientConfig(on_success=on_success))
    client.send_get(TEST_URL)
    assert on_success.call_args.args[0].response.status_code == 200
    mock_sleep.assert_not_called()


def test_client_service(mock_sleep: Mock) -> None:
    client, factory = make_client([json_reply({"id": 1, "title": "foo"})])

    builder = client.service("http://api.example.com")
    posts = builder.get("get_post", "/posts/{id}", Post).build()

    assert isinstance(builder, ServiceBuilder)
    assert posts.get_post(id=1) == Post(id=1, title="foo")
    assert factory.requests[0].url.target == b"/posts/1"
    mock_sleep.assert_not_called()
