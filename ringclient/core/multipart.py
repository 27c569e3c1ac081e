"""multipart/form-data encoding."""

from __future__ import annotations

import mimetypes
import os
from pathlib import Path
from typing import Iterable

from urllib3.fields import RequestField
from urllib3.filepost import choose_boundary, encode_multipart_formdata

from .body import OCTET_STREAM, Entity
from .models import BytesBody, FileBody, MultipartPart, StreamBody, TextBody

TEXT_PART_TYPE = "text/plain; charset=UTF-8"


def _guess_type(filename: str | None) -> str:
    if not filename:
        return OCTET_STREAM
    return mimetypes.guess_type(filename)[0] or OCTET_STREAM


def _build_field(part: MultipartPart) -> RequestField:
    value = part.value
    filename: str | None
    if isinstance(value, TextBody):
        data: str | bytes = value.text
        filename = part.filename
        content_type = part.content_type or TEXT_PART_TYPE
    elif isinstance(value, BytesBody):
        data = value.data
        filename = part.filename or part.name
        content_type = part.content_type or OCTET_STREAM
    elif isinstance(value, StreamBody):
        # caller owns the stream; read it but leave it open
        data = value.stream.read()
        source_name = getattr(value.stream, "name", None)
        if isinstance(source_name, (str, os.PathLike)):
            filename = part.filename or Path(source_name).name
            content_type = part.content_type or _guess_type(filename)
        else:
            filename = part.filename or part.name
            content_type = part.content_type or OCTET_STREAM
    elif isinstance(value, FileBody):
        data = value.path.read_bytes()
        filename = part.filename or value.path.name
        content_type = part.content_type or _guess_type(filename)
    else:
        raise TypeError(f"Unsupported multipart value: {value!r}")

    field = RequestField(name=part.name, data=data, filename=filename)
    field.make_multipart(content_type=content_type)
    return field


def encode_multipart(parts: Iterable[MultipartPart]) -> Entity:
    """Encode ``parts`` in order into one multipart/form-data entity."""

    fields = [_build_field(part) for part in parts]
    body, content_type = encode_multipart_formdata(fields, boundary=choose_boundary())
    return Entity(body, content_type)
