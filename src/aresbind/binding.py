r"""Declarative binding of endpoint descriptions to callable
operations.

An ``EndpointDescriptor`` is created once, at setup time, and shared
read-only by every call. Each call goes through the states
``Resolving -> Executing -> Decoding -> Done`` or ends in ``Failed``;
no state is shared between calls, so bound endpoints are safe to use
from several threads.

Example:
    ```pycon
    >>> from pydantic import BaseModel
    >>> from aresbind.binding import CallArguments, EndpointDescriptor, HttpMethod, resolve_request
    >>> from aresbind.codec import JsonCodec
    >>> class Post(BaseModel):
    ...     id: int | None = None
    ...
    >>> descriptor = EndpointDescriptor(HttpMethod.GET, "/posts/{id}", response_type=Post)
    >>> request = resolve_request(
    ...     descriptor,
    ...     CallArguments(path_params={"id": 1}),
    ...     base_url="https://jsonplaceholder.typicode.com",
    ...     codec=JsonCodec(),
    ... )
    >>> request.url
    URL('https://jsonplaceholder.typicode.com/posts/1')

    ```
"""

from __future__ import annotations

__all__ = [
    "BodyRole",
    "BoundEndpoint",
    "CallArguments",
    "EndpointDescriptor",
    "HttpMethod",
    "ResponseEntity",
    "bind",
    "decode_response",
    "parse_placeholders",
    "resolve_request",
]

import logging
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import httpx

from aresbind.codec import JsonCodec
from aresbind.exceptions import ApplicationError, BindingError, DecodeError, HttpRequestError

if TYPE_CHECKING:
    from collections.abc import Iterator

    from aresbind.codec import Codec
    from aresbind.executor import RequestExecutor

logger: logging.Logger = logging.getLogger(__name__)

_PLACEHOLDER_PATTERN = re.compile(r"\{([^{}]*)\}")
_NAME_PATTERN = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")


class HttpMethod(Enum):
    r"""HTTP verbs supported by endpoint descriptions."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"


class BodyRole(Enum):
    r"""Whether a call sends a request body.

    Attributes:
        NONE: The call sends no body.
        REQUEST_BODY: The call argument ``body`` is encoded as the request
            body.
    """

    NONE = "none"
    REQUEST_BODY = "request-body"


def parse_placeholders(path_template: str) -> tuple[str, ...]:
    r"""Return the names of the ``{name}`` placeholders of a path
    template, in order of first appearance.

    Args:
        path_template: The path template.

    Returns:
        The placeholder names.

    Raises:
        BindingError: If a placeholder is not a valid identifier or a
            brace is unbalanced.

    Example:
        ```pycon
        >>> from aresbind.binding import parse_placeholders
        >>> parse_placeholders("/users/{user_id}/posts/{id}")
        ('user_id', 'id')

        ```
    """
    names: list[str] = []
    for match in _PLACEHOLDER_PATTERN.finditer(path_template):
        name = match.group(1)
        if not _NAME_PATTERN.fullmatch(name):
            msg = f"Invalid placeholder {{{name}}} in path template {path_template!r}"
            raise BindingError(msg, url=path_template)
        if name not in names:
            names.append(name)
    remainder = _PLACEHOLDER_PATTERN.sub("", path_template)
    if "{" in remainder or "}" in remainder:
        msg = f"Unbalanced braces in path template {path_template!r}"
        raise BindingError(msg, url=path_template)
    return tuple(names)


@dataclass(frozen=True)
class EndpointDescriptor:
    r"""Immutable description of a remote endpoint.

    Args:
        method: The HTTP verb. Strings are converted (``"get"`` works).
        path_template: The path, with ``{name}`` placeholders.
        body_role: Whether calls send a request body.
        response_type: The type the response body is decoded into, or
            ``None`` to ignore the body.
        query_params: The names of the query parameters calls may pass.

    Raises:
        BindingError: If the path template is malformed.
        ValueError: If the method or body role is not supported.
    """

    method: HttpMethod
    path_template: str
    body_role: BodyRole = BodyRole.NONE
    response_type: Any = None
    query_params: tuple[str, ...] = ()
    placeholders: tuple[str, ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        method = self.method.upper() if isinstance(self.method, str) else self.method
        object.__setattr__(self, "method", HttpMethod(method))
        object.__setattr__(self, "body_role", BodyRole(self.body_role))
        object.__setattr__(self, "query_params", tuple(self.query_params))
        object.__setattr__(self, "placeholders", parse_placeholders(self.path_template))


@dataclass
class CallArguments:
    r"""Arguments of one call to a bound endpoint.

    Args:
        path_params: One value per placeholder of the path template.
        query_params: Values of declared query parameters. A sequence
            value repeats the parameter; ``None`` omits it.
        headers: Extra request headers. A sequence value repeats the
            header; other values are converted with ``str`` and ``None``
            omits the header.
        body: The request body, required iff the endpoint takes one.
    """

    path_params: Mapping[str, Any] = field(default_factory=dict)
    query_params: Mapping[str, Any] = field(default_factory=dict)
    headers: Mapping[str, Any] = field(default_factory=dict)
    body: Any = None


@dataclass(frozen=True)
class ResponseEntity:
    r"""A completed exchange with its decoded body.

    Attributes:
        status_code: The HTTP status code.
        headers: The response headers.
        body: The body decoded into the declared response type.
    """

    status_code: int
    headers: httpx.Headers
    body: Any


def resolve_request(
    descriptor: EndpointDescriptor,
    arguments: CallArguments,
    *,
    base_url: str,
    codec: Codec,
) -> httpx.Request:
    r"""Turn an endpoint description and call arguments into a concrete
    request.

    Generated headers (``Accept``, and ``Content-Type`` when a body is
    sent) come first; caller headers are appended after them, so a caller
    header with the same name adds a value instead of replacing it.

    Args:
        descriptor: The endpoint description.
        arguments: The call arguments.
        base_url: The absolute URL the path template is appended to.
        codec: The codec encoding the request body.

    Returns:
        The request, ready for the executor.

    Raises:
        BindingError: If a placeholder has no value, an argument is not
            declared, or the body does not match the body role.
    """
    method = descriptor.method.value
    template = descriptor.path_template
    path = _expand_path(descriptor, arguments.path_params)
    url = httpx.URL(_join_url(base_url, path))
    params = list(_query_items(descriptor, arguments.query_params))
    if params:
        url = url.copy_merge_params(params)

    headers: list[tuple[str, str]] = []
    if descriptor.response_type is not None:
        headers.append(("Accept", codec.content_type))
    content = None
    if descriptor.body_role is BodyRole.REQUEST_BODY:
        if arguments.body is None:
            msg = f"{method} {template} requires a request body"
            raise BindingError(msg, method=method, url=template)
        content = codec.encode(arguments.body)
        headers.append(("Content-Type", codec.content_type))
    elif arguments.body is not None:
        msg = f"{method} {template} does not take a request body"
        raise BindingError(msg, method=method, url=template)
    headers.extend(_header_items(arguments.headers))
    return httpx.Request(method, url, headers=headers, content=content)


def decode_response(
    response: httpx.Response, response_type: Any, *, codec: Codec
) -> ResponseEntity:
    r"""Decode a response into a ``ResponseEntity``.

    An empty body decodes to the absent value of the response type.

    Args:
        response: The response returned by the executor.
        response_type: The declared response type.
        codec: The codec decoding the body.

    Returns:
        The response entity.

    Raises:
        ApplicationError: If the status code is not 2xx. The body is
            attached when it can be decoded.
        DecodeError: If a 2xx body does not match the response type.
    """
    method = response.request.method
    url = str(response.request.url)
    status_code = response.status_code
    if not response.is_success:
        body = None
        if response.content:
            try:
                body = codec.decode(response.content, response_type)
            except DecodeError:
                logger.debug(f"Could not decode the {status_code} error body of {method} {url}")
        raise ApplicationError(
            f"{method} request to {url} failed with status {status_code}",
            method=method,
            url=url,
            status_code=status_code,
            response=response,
            body=body,
        )
    try:
        body = codec.decode(response.content, response_type)
    except DecodeError as exc:
        raise DecodeError(
            f"{method} request to {url}: {exc.message}",
            method=method,
            url=url,
            status_code=status_code,
            response=response,
            cause=exc.cause,
        ) from exc
    return ResponseEntity(status_code=status_code, headers=response.headers, body=body)


class BoundEndpoint:
    r"""A callable operation bound to an endpoint description.

    Calling the endpoint returns the decoded response body; ``exchange``
    returns the whole ``ResponseEntity``. Arguments are given either as a
    ``CallArguments`` or as keyword arguments routed by name: path
    placeholders, declared query parameters, ``body`` and ``headers``.

    Args:
        descriptor: The endpoint description.
        executor: The executor running the requests.
        base_url: The absolute URL the path template is appended to.
        codec: The body codec. Defaults to ``JsonCodec``.
        name: Optional operation name used in log messages.

    Example:
        ```pycon
        >>> from aresbind.binding import EndpointDescriptor, bind
        >>> from aresbind.executor import RequestExecutor
        >>> from aresbind.pool import ConnectionPool
        >>> get_post = bind(
        ...     EndpointDescriptor("GET", "/posts/{id}", response_type=dict),
        ...     RequestExecutor(ConnectionPool()),
        ...     base_url="https://jsonplaceholder.typicode.com",
        ... )
        >>> post = get_post(id=1)  # doctest: +SKIP

        ```
    """

    def __init__(
        self,
        descriptor: EndpointDescriptor,
        executor: RequestExecutor,
        *,
        base_url: str,
        codec: Codec | None = None,
        name: str | None = None,
    ) -> None:
        self._descriptor = descriptor
        self._executor = executor
        self._base_url = base_url
        self._codec = codec or JsonCodec()
        self._name = name or f"{descriptor.method.value} {descriptor.path_template}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__qualname__}(name={self._name!r}, descriptor={self._descriptor!r}, "
            f"base_url={self._base_url!r})"
        )

    def __call__(
        self, arguments: CallArguments | None = None, /, *, deadline: float | None = None, **kwargs: Any
    ) -> Any:
        return self.exchange(arguments, deadline=deadline, **kwargs).body

    @property
    def descriptor(self) -> EndpointDescriptor:
        return self._descriptor

    @property
    def name(self) -> str:
        return self._name

    def arguments(self, **kwargs: Any) -> CallArguments:
        r"""Route keyword arguments to a ``CallArguments``.

        Raises:
            BindingError: If a keyword matches no placeholder, no declared
                query parameter, nor ``body``/``headers``.
        """
        path_params: dict[str, Any] = {}
        query_params: dict[str, Any] = {}
        headers: Mapping[str, str | Sequence[str]] = {}
        body = None
        for key, value in kwargs.items():
            if key in self._descriptor.placeholders:
                path_params[key] = value
            elif key in self._descriptor.query_params:
                query_params[key] = value
            elif key == "body":
                body = value
            elif key == "headers":
                headers = value
            else:
                msg = f"{self._name} got an unexpected argument {key!r}"
                raise BindingError(
                    msg, method=self._descriptor.method.value, url=self._descriptor.path_template
                )
        return CallArguments(
            path_params=path_params, query_params=query_params, headers=headers, body=body
        )

    def resolve(self, arguments: CallArguments) -> httpx.Request:
        r"""Resolve call arguments into a request without sending it."""
        return resolve_request(
            self._descriptor, arguments, base_url=self._base_url, codec=self._codec
        )

    def exchange(
        self, arguments: CallArguments | None = None, /, *, deadline: float | None = None, **kwargs: Any
    ) -> ResponseEntity:
        r"""Resolve, execute and decode one call.

        Args:
            arguments: The call arguments. Mutually exclusive with keyword
                arguments.
            deadline: Optional ``time.monotonic()`` deadline of the call.
            **kwargs: Call arguments routed by name.

        Returns:
            The response entity.

        Raises:
            BindingError: If the arguments do not fit the endpoint. No
                request is sent.
            HttpRequestError: The terminal execution error, an
                ``ApplicationError`` or a ``DecodeError``.
        """
        if arguments is not None and kwargs:
            msg = "Pass either a CallArguments or keyword arguments, not both"
            raise TypeError(msg)
        if arguments is None:
            arguments = self.arguments(**kwargs)
        try:
            logger.debug(f"{self._name}: resolving")
            request = self.resolve(arguments)
            logger.debug(f"{self._name}: executing {request.method} {request.url}")
            response = self._executor.execute(request, deadline=deadline)
            logger.debug(f"{self._name}: decoding status {response.status_code}")
            entity = decode_response(response, self._descriptor.response_type, codec=self._codec)
        except HttpRequestError as exc:
            logger.debug(f"{self._name}: failed with {exc.__class__.__name__}")
            raise
        logger.debug(f"{self._name}: done")
        return entity


def bind(
    descriptor: EndpointDescriptor,
    executor: RequestExecutor,
    *,
    base_url: str,
    codec: Codec | None = None,
    name: str | None = None,
) -> BoundEndpoint:
    r"""Bind an endpoint description to an executor.

    Args:
        descriptor: The endpoint description.
        executor: The executor running the requests.
        base_url: The absolute URL the path template is appended to.
        codec: The body codec. Defaults to ``JsonCodec``.
        name: Optional operation name used in log messages.

    Returns:
        The callable operation.
    """
    return BoundEndpoint(descriptor, executor, base_url=base_url, codec=codec, name=name)


def _expand_path(descriptor: EndpointDescriptor, path_params: Mapping[str, Any]) -> str:
    method = descriptor.method.value
    template = descriptor.path_template
    missing = [name for name in descriptor.placeholders if path_params.get(name) is None]
    if missing:
        msg = f"{method} {template} is missing path parameter(s): {', '.join(missing)}"
        raise BindingError(msg, method=method, url=template)
    unknown = sorted(set(path_params) - set(descriptor.placeholders))
    if unknown:
        msg = f"{method} {template} has no placeholder(s): {', '.join(unknown)}"
        raise BindingError(msg, method=method, url=template)
    return _PLACEHOLDER_PATTERN.sub(
        lambda match: quote(str(path_params[match.group(1)]), safe=""), template
    )


def _join_url(base_url: str, path: str) -> str:
    if not path:
        return base_url
    return f"{base_url.rstrip('/')}/{path.lstrip('/')}"


def _query_items(
    descriptor: EndpointDescriptor, query_params: Mapping[str, Any]
) -> Iterator[tuple[str, Any]]:
    unknown = sorted(set(query_params) - set(descriptor.query_params))
    if unknown:
        method = descriptor.method.value
        msg = f"{method} {descriptor.path_template} declares no query parameter(s): {', '.join(unknown)}"
        raise BindingError(msg, method=method, url=descriptor.path_template)
    for name in descriptor.query_params:
        value = query_params.get(name)
        if value is None:
            continue
        values = value if isinstance(value, (list, tuple)) else [value]
        for item in values:
            yield name, item


def _header_items(headers: Mapping[str, Any]) -> Iterator[tuple[str, str]]:
    for name, value in headers.items():
        if value is None:
            continue
        values = value if isinstance(value, (list, tuple)) else [value]
        for item in values:
            yield name, str(item)
