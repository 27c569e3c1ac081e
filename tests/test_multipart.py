"""Tests for multipart/form-data encoding."""

from __future__ import annotations

import io
import re
from pathlib import Path

from ringclient.core.models import MultipartPart
from ringclient.core.multipart import encode_multipart


def _boundary(content_type: str) -> str:
    match = re.search(r"boundary=(\S+)", content_type)
    assert match, content_type
    return match.group(1)


def _split_parts(body: bytes, boundary: str) -> list[bytes]:
    chunks = body.split(b"--" + boundary.encode())
    # first chunk is the empty preamble, last is the closing "--\r\n"
    return chunks[1:-1]


def test_encodes_one_part_per_entry_in_order(tmp_path: Path) -> None:
    data_file = tmp_path / "keystore.bin"
    data_file.write_bytes(b"\x00file-bytes\xff")
    stream = io.BytesIO(b"stream-test")
    parts = [
        MultipartPart.of("a", "testFINDMEtest"),
        MultipartPart.of("b", b"byte-test"),
        MultipartPart.of("c", stream),
        MultipartPart.of("d", data_file),
    ]

    entity = encode_multipart(parts)

    assert entity.content_type.startswith("multipart/form-data; boundary=")
    chunks = _split_parts(entity.content, _boundary(entity.content_type))
    assert len(chunks) == 4
    for chunk, name in zip(chunks, "abcd"):
        assert f'name="{name}"'.encode() in chunk
    assert b"testFINDMEtest" in chunks[0]
    assert b"byte-test" in chunks[1]
    assert b"stream-test" in chunks[2]
    assert b"\x00file-bytes\xff" in chunks[3]
    assert b'filename="keystore.bin"' in chunks[3]


def test_text_parts_have_no_filename() -> None:
    entity = encode_multipart([MultipartPart.of("title", "Foo")])

    assert b"filename=" not in entity.content
    assert b"Content-Type: text/plain; charset=UTF-8" in entity.content


def test_binary_parts_default_to_octet_stream() -> None:
    entity = encode_multipart([MultipartPart.of("blob", b"\x01\x02")])

    assert b"Content-Type: application/octet-stream" in entity.content
    assert b'filename="blob"' in entity.content


def test_explicit_content_type_and_filename_win() -> None:
    part = MultipartPart.of("doc", b"{}", content_type="application/json", filename="doc.json")

    entity = encode_multipart([part])

    assert b"Content-Type: application/json" in entity.content
    assert b'filename="doc.json"' in entity.content


def test_file_backed_stream_uses_its_name(tmp_path: Path) -> None:
    path = tmp_path / "photo.png"
    path.write_bytes(b"png-bytes")

    with path.open("rb") as stream:
        entity = encode_multipart([MultipartPart.of("upload", stream)])
        assert not stream.closed

    assert b'filename="photo.png"' in entity.content
    assert b"Content-Type: image/png" in entity.content


def test_caller_stream_is_left_open() -> None:
    stream = io.BytesIO(b"payload")

    encode_multipart([MultipartPart.of("s", stream)])

    assert not stream.closed


def test_boundary_is_random_per_encoding() -> None:
    parts = [MultipartPart.of("a", "x")]

    first = encode_multipart(parts)
    second = encode_multipart(parts)

    assert _boundary(first.content_type) != _boundary(second.content_type)
