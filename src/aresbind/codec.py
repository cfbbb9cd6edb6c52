r"""Body codecs turning values into request bytes and response bytes
into values of a declared type."""

from __future__ import annotations

__all__ = ["Codec", "JsonCodec", "empty_value"]

import dataclasses
from functools import lru_cache
from typing import Any, Protocol, get_origin, runtime_checkable

import pydantic

from aresbind.exceptions import DecodeError


@runtime_checkable
class Codec(Protocol):
    r"""Encode request bodies and decode response bodies.

    The execution engine treats payloads as opaque bytes plus the
    declared ``content_type``.
    """

    content_type: str

    def encode(self, value: Any) -> bytes:
        r"""Encode a value into request body bytes."""

    def decode(self, content: bytes, target_type: Any) -> Any:
        r"""Decode response body bytes into a value of ``target_type``.

        Raises:
            DecodeError: If the content does not match the type.
        """


def empty_value(target_type: Any) -> Any:
    r"""Return the value an empty body decodes to.

    Models and dataclasses get an instance whose fields are all ``None``,
    ``str`` and ``bytes`` get an empty string, anything else ``None``.

    Args:
        target_type: The declared response type.

    Returns:
        The absent value of the type.

    Example:
        ```pycon
        >>> from pydantic import BaseModel
        >>> from aresbind.codec import empty_value
        >>> class Post(BaseModel):
        ...     id: int | None = None
        ...     title: str | None = None
        ...
        >>> empty_value(Post)
        Post(id=None, title=None)
        >>> empty_value(dict) is None
        True

        ```
    """
    # Parametrized generics such as list[int] are not classes.
    is_class = isinstance(target_type, type) and get_origin(target_type) is None
    if is_class and issubclass(target_type, pydantic.BaseModel):
        return target_type.model_construct(**dict.fromkeys(target_type.model_fields))
    if is_class and dataclasses.is_dataclass(target_type):
        return target_type(**{f.name: None for f in dataclasses.fields(target_type) if f.init})
    if target_type is str:
        return ""
    if target_type is bytes:
        return b""
    return None


@lru_cache(maxsize=256)
def _type_adapter(target_type: Any) -> pydantic.TypeAdapter:
    return pydantic.TypeAdapter(target_type)


class JsonCodec:
    r"""JSON codec backed by pydantic.

    Pydantic models, dataclasses, typed dicts and builtin containers are
    supported. ``bytes`` and ``str`` response types receive the raw body.
    A ``None`` response type discards the body.

    Example:
        ```pycon
        >>> from pydantic import BaseModel
        >>> from aresbind.codec import JsonCodec
        >>> class Post(BaseModel):
        ...     id: int | None = None
        ...     title: str | None = None
        ...
        >>> codec = JsonCodec()
        >>> codec.encode(Post(id=1, title="foo"))
        b'{"id":1,"title":"foo"}'
        >>> codec.decode(b'{"id": 1, "title": "foo"}', Post)
        Post(id=1, title='foo')
        >>> codec.decode(b"", Post)
        Post(id=None, title=None)

        ```
    """

    content_type = "application/json"

    def __repr__(self) -> str:
        return f"{self.__class__.__qualname__}()"

    def encode(self, value: Any) -> bytes:
        if isinstance(value, bytes):
            return value
        if isinstance(value, pydantic.BaseModel):
            return value.model_dump_json(by_alias=True).encode("utf-8")
        return _type_adapter(type(value)).dump_json(value, by_alias=True)

    def decode(self, content: bytes, target_type: Any) -> Any:
        if target_type is None:
            return None
        if not content.strip():
            return empty_value(target_type)
        if target_type is bytes:
            return content
        name = getattr(target_type, "__name__", repr(target_type))
        if target_type is str:
            try:
                return content.decode("utf-8")
            except UnicodeDecodeError as exc:
                msg = f"Response body is not valid UTF-8 text: {exc}"
                raise DecodeError(msg, cause=exc) from exc
        try:
            return _type_adapter(target_type).validate_json(content)
        except pydantic.ValidationError as exc:
            msg = f"Response body does not match {name}: {exc}"
            raise DecodeError(msg, cause=exc) from exc
