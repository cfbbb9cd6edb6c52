r"""Registration of named endpoints into a service object.

Example:
    ```pycon
    >>> from aresbind.executor import RequestExecutor
    >>> from aresbind.pool import ConnectionPool
    >>> from aresbind.service import ServiceBuilder
    >>> service = (
    ...     ServiceBuilder(
    ...         RequestExecutor(ConnectionPool()), base_url="https://jsonplaceholder.typicode.com"
    ...     )
    ...     .get("get_post", "/posts/{id}", response_type=dict)
    ...     .post("create_post", "/posts", response_type=dict)
    ...     .delete("delete_post", "/posts/{id}")
    ...     .build()
    ... )
    >>> service.names
    ('get_post', 'create_post', 'delete_post')
    >>> "get_post" in service
    True

    ```
"""

from __future__ import annotations

__all__ = ["Service", "ServiceBuilder"]

import keyword
from typing import TYPE_CHECKING, Any

from aresbind.binding import BodyRole, BoundEndpoint, EndpointDescriptor, HttpMethod

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Mapping
    from typing import Self

    from aresbind.codec import Codec
    from aresbind.executor import RequestExecutor


class Service:
    r"""Read-only collection of bound endpoints.

    Each endpoint is reachable as an attribute and by name.

    Args:
        endpoints: The bound endpoints keyed by operation name.
    """

    def __init__(self, endpoints: Mapping[str, BoundEndpoint]) -> None:
        self._endpoints = dict(endpoints)

    def __repr__(self) -> str:
        return f"{self.__class__.__qualname__}(names={self.names!r})"

    def __getattr__(self, name: str) -> BoundEndpoint:
        endpoints = self.__dict__.get("_endpoints", {})
        try:
            return endpoints[name]
        except KeyError:
            msg = f"{self.__class__.__qualname__!r} object has no endpoint {name!r}"
            raise AttributeError(msg) from None

    def __getitem__(self, name: str) -> BoundEndpoint:
        return self._endpoints[name]

    def __contains__(self, name: object) -> bool:
        return name in self._endpoints

    def __iter__(self) -> Iterator[str]:
        return iter(self._endpoints)

    def __len__(self) -> int:
        return len(self._endpoints)

    @property
    def names(self) -> tuple[str, ...]:
        r"""The operation names, in registration order."""
        return tuple(self._endpoints)


class ServiceBuilder:
    r"""Builder registering named endpoint descriptions against one base
    URL and executor.

    ``get`` and ``delete`` register endpoints without a request body,
    ``post`` and ``put`` endpoints taking one.

    Args:
        executor: The executor shared by every endpoint.
        base_url: The absolute URL the path templates are appended to.
        codec: The body codec. Defaults to ``JsonCodec``.
    """

    def __init__(
        self, executor: RequestExecutor, *, base_url: str, codec: Codec | None = None
    ) -> None:
        self._executor = executor
        self._base_url = base_url
        self._codec = codec
        self._descriptors: dict[str, EndpointDescriptor] = {}

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__qualname__}(base_url={self._base_url!r}, "
            f"names={tuple(self._descriptors)!r})"
        )

    def endpoint(self, name: str, descriptor: EndpointDescriptor) -> Self:
        r"""Register an endpoint description under an operation name.

        Args:
            name: The operation name, a valid Python identifier.
            descriptor: The endpoint description.

        Returns:
            The builder, for chaining.

        Raises:
            ValueError: If the name is invalid or already registered.
        """
        if not name.isidentifier() or keyword.iskeyword(name) or name.startswith("_"):
            msg = f"Invalid endpoint name {name!r}: expected a public Python identifier"
            raise ValueError(msg)
        if name in self._descriptors or hasattr(Service, name):
            msg = f"Endpoint name {name!r} is already in use"
            raise ValueError(msg)
        self._descriptors[name] = descriptor
        return self

    def get(
        self,
        name: str,
        path_template: str,
        response_type: Any = None,
        *,
        query_params: Iterable[str] = (),
    ) -> Self:
        return self._register(name, HttpMethod.GET, path_template, response_type, query_params)

    def post(
        self,
        name: str,
        path_template: str,
        response_type: Any = None,
        *,
        query_params: Iterable[str] = (),
    ) -> Self:
        return self._register(
            name,
            HttpMethod.POST,
            path_template,
            response_type,
            query_params,
            body_role=BodyRole.REQUEST_BODY,
        )

    def put(
        self,
        name: str,
        path_template: str,
        response_type: Any = None,
        *,
        query_params: Iterable[str] = (),
    ) -> Self:
        return self._register(
            name,
            HttpMethod.PUT,
            path_template,
            response_type,
            query_params,
            body_role=BodyRole.REQUEST_BODY,
        )

    def delete(
        self,
        name: str,
        path_template: str,
        response_type: Any = None,
        *,
        query_params: Iterable[str] = (),
    ) -> Self:
        return self._register(name, HttpMethod.DELETE, path_template, response_type, query_params)

    def build(self) -> Service:
        r"""Bind every registered description and return the service.

        Returns:
            The service exposing one callable per operation name.
        """
        return Service(
            {
                name: BoundEndpoint(
                    descriptor,
                    self._executor,
                    base_url=self._base_url,
                    codec=self._codec,
                    name=name,
                )
                for name, descriptor in self._descriptors.items()
            }
        )

    def _register(
        self,
        name: str,
        method: HttpMethod,
        path_template: str,
        response_type: Any,
        query_params: Iterable[str],
        body_role: BodyRole = BodyRole.NONE,
    ) -> Self:
        return self.endpoint(
            name,
            EndpointDescriptor(
                method,
                path_template,
                body_role=body_role,
                response_type=response_type,
                query_params=tuple(query_params),
            ),
        )
