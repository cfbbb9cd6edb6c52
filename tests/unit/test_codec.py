r"""Unit tests for the JSON codec."""

from __future__ import annotations

from dataclasses import dataclass

import pytest
from coola.equality import objects_are_equal
from pydantic import BaseModel, Field

from aresbind.codec import Codec, JsonCodec, empty_value
from aresbind.exceptions import DecodeError


class Post(BaseModel):
    id: int | None = None
    user_id: int | None = Field(default=None, alias="userId")
    title: str | None = None
    body: str | None = None


@dataclass
class Comment:
    id: int | None
    text: str | None


#################################
#     Tests for empty_value     #
#################################


def test_empty_value_model() -> None:
    value = empty_value(Post)
    assert isinstance(value, Post)
    assert value.id is None
    assert value.user_id is None
    assert value.title is None


def test_empty_value_dataclass() -> None:
    assert empty_value(Comment) == Comment(id=None, text=None)


@pytest.mark.parametrize(
    ("target_type", "expected"),
    [(str, ""), (bytes, b""), (dict, None), (list[int], None), (int, None)],
)
def test_empty_value_other_types(target_type: object, expected: object) -> None:
    assert empty_value(target_type) == expected


###############################
#     Tests for JsonCodec     #
###############################


def test_json_codec_is_codec() -> None:
    assert isinstance(JsonCodec(), Codec)
    assert JsonCodec().content_type == "application/json"


def test_json_codec_encode_model_uses_aliases() -> None:
    assert JsonCodec().encode(Post(id=1, userId=2, title="foo")) == (
        b'{"id":1,"userId":2,"title":"foo","body":null}'
    )


def test_json_codec_encode_dict() -> None:
    assert JsonCodec().encode({"title": "foo", "tags": [1, 2]}) == b'{"title":"foo","tags":[1,2]}'


def test_json_codec_encode_dataclass() -> None:
    assert JsonCodec().encode(Comment(id=1, text="hi")) == b'{"id":1,"text":"hi"}'


def test_json_codec_encode_bytes_passthrough() -> None:
    assert JsonCodec().encode(b'{"raw":true}') == b'{"raw":true}'


def test_json_codec_decode_model() -> None:
    post = JsonCodec().decode(b'{"id": 1, "userId": 7, "title": "foo", "extra": 1}', Post)
    assert post == Post(id=1, userId=7, title="foo")


def test_json_codec_decode_builtin_types() -> None:
    codec = JsonCodec()
    assert objects_are_equal(
        codec.decode(b'[{"id": 1}, {"id": 2}]', list[dict]), [{"id": 1}, {"id": 2}]
    )
    assert codec.decode(b"42", int) == 42


def test_json_codec_decode_dataclass() -> None:
    assert JsonCodec().decode(b'{"id": 3, "text": "hi"}', Comment) == Comment(id=3, text="hi")


def test_json_codec_decode_none_type_discards_body() -> None:
    assert JsonCodec().decode(b'{"id": 1}', None) is None


def test_json_codec_decode_raw_types() -> None:
    codec = JsonCodec()
    assert codec.decode(b'{"id": 1}', bytes) == b'{"id": 1}'
    assert codec.decode(b'{"id": 1}', str) == '{"id": 1}'


@pytest.mark.parametrize("content", [b"", b"   ", b"\r\n"])
def test_json_codec_decode_empty_body(content: bytes) -> None:
    """Test that an empty body yields an instance with absent fields."""
    post = JsonCodec().decode(content, Post)
    assert post.id is None
    assert post.title is None


def test_json_codec_decode_empty_body_idempotent() -> None:
    codec = JsonCodec()
    assert codec.decode(b"", Post) == codec.decode(b"", Post)
    assert codec.decode(b"", dict) is None


def test_json_codec_decode_invalid_json() -> None:
    with pytest.raises(DecodeError, match=r"does not match Post"):
        JsonCodec().decode(b"{not json", Post)


def test_json_codec_decode_type_mismatch() -> None:
    with pytest.raises(DecodeError, match=r"does not match Post") as exc_info:
        JsonCodec().decode(b'{"id": "not a number"}', Post)
    assert exc_info.value.cause is not None


def test_json_codec_decode_invalid_utf8_text() -> None:
    with pytest.raises(DecodeError, match=r"not valid UTF-8"):
        JsonCodec().decode(b"\xff\xfe", str)
