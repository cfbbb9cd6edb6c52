r"""Unit tests for the service builder."""

from __future__ import annotations

from unittest.mock import Mock

import httpx
import pytest

from aresbind.binding import BodyRole, BoundEndpoint, EndpointDescriptor, HttpMethod
from aresbind.executor import RequestExecutor
from aresbind.service import Service, ServiceBuilder

BASE_URL = "https://jsonplaceholder.typicode.com"


@pytest.fixture
def executor() -> Mock:
    executor = Mock(spec=RequestExecutor)
    executor.execute.side_effect = lambda request, deadline=None: httpx.Response(  # noqa: ARG005
        200, json={"id": 1}, request=request
    )
    return executor


def test_service_builder_registers_verbs(executor: Mock) -> None:
    service = (
        ServiceBuilder(executor, base_url=BASE_URL)
        .get("get_post", "/posts/{id}", dict)
        .post("create_post", "/posts", dict)
        .put("update_post", "/posts/{id}", dict)
        .delete("delete_post", "/posts/{id}", query_params=("force",))
        .build()
    )

    assert service.names == ("get_post", "create_post", "update_post", "delete_post")
    assert service.get_post.descriptor == EndpointDescriptor(
        HttpMethod.GET, "/posts/{id}", response_type=dict
    )
    assert service.create_post.descriptor.body_role == BodyRole.REQUEST_BODY
    assert service.update_post.descriptor.body_role == BodyRole.REQUEST_BODY
    assert service.delete_post.descriptor == EndpointDescriptor(
        HttpMethod.DELETE, "/posts/{id}", query_params=("force",)
    )


def test_service_builder_endpoint(executor: Mock) -> None:
    descriptor = EndpointDescriptor(HttpMethod.GET, "/users/{user_id}/posts", response_type=list)
    service = ServiceBuilder(executor, base_url=BASE_URL).endpoint("user_posts", descriptor).build()
    assert service["user_posts"].descriptor is descriptor


def test_service_access(executor: Mock) -> None:
    service = ServiceBuilder(executor, base_url=BASE_URL).get("get_post", "/posts/{id}").build()

    assert isinstance(service, Service)
    assert isinstance(service.get_post, BoundEndpoint)
    assert service["get_post"] is service.get_post
    assert "get_post" in service
    assert "missing" not in service
    assert list(service) == ["get_post"]
    assert len(service) == 1
    assert service.get_post.name == "get_post"


def test_service_unknown_endpoint(executor: Mock) -> None:
    service = ServiceBuilder(executor, base_url=BASE_URL).build()
    with pytest.raises(AttributeError, match=r"no endpoint 'missing'"):
        service.missing  # noqa: B018
    with pytest.raises(KeyError):
        service["missing"]


def test_service_call(executor: Mock) -> None:
    service = ServiceBuilder(executor, base_url=BASE_URL).get("get_post", "/posts/{id}", dict).build()

    assert service.get_post(id=1) == {"id": 1}
    assert str(executor.execute.call_args.args[0].url) == f"{BASE_URL}/posts/1"


def test_service_builder_duplicate_name(executor: Mock) -> None:
    builder = ServiceBuilder(executor, base_url=BASE_URL).get("get_post", "/posts/{id}")
    with pytest.raises(ValueError, match=r"already in use"):
        builder.delete("get_post", "/posts/{id}")


def test_service_builder_reserved_name(executor: Mock) -> None:
    """Test that names clashing with Service attributes are rejected."""
    with pytest.raises(ValueError, match=r"already in use"):
        ServiceBuilder(executor, base_url=BASE_URL).get("names", "/posts")


@pytest.mark.parametrize("name", ["", "get-post", "1post", "class", "_private"])
def test_service_builder_invalid_name(executor: Mock, name: str) -> None:
    with pytest.raises(ValueError, match=r"Invalid endpoint name"):
        ServiceBuilder(executor, base_url=BASE_URL).get(name, "/posts")


def test_service_repr(executor: Mock) -> None:
    service = ServiceBuilder(executor, base_url=BASE_URL).get("get_post", "/posts/{id}").build()
    assert repr(service) == "Service(names=('get_post',))"
