"""Body coercion for outbound entities and inbound response bodies."""

from __future__ import annotations

import io
import json
import logging
import mimetypes
import zlib
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import IO, Any, Callable

import brotli

from ..exceptions import DecodingError, TransportError
from . import edn
from .models import (
    BodySource,
    BytesBody,
    CoercionMode,
    FileBody,
    RequestDescription,
    ResponseDescription,
    StreamBody,
    TextBody,
)

_LOGGER = logging.getLogger(__name__)

DEFAULT_CHARSET = "ISO-8859-1"
STRUCTURED_CHARSET = "UTF-8"
OCTET_STREAM = "application/octet-stream"
_READ_CHUNK = 64 * 1024

_JSON_TYPES = {"application/json", "text/json"}
_EDN_TYPES = {"application/edn", "application/clojure", "application/x-clojure"}


@dataclass(slots=True)
class Entity:
    """Transport-ready request body."""

    content: bytes | IO[bytes]
    content_type: str | None = None


def encode_body(source: BodySource, *, charset: str | None = None) -> Entity:
    """Turn a ``BodySource`` into an entity.

    ``FileBody`` entities are returned without an open handle; the executor
    opens the file for the duration of the exchange.
    """

    if isinstance(source, BytesBody):
        return Entity(source.data, OCTET_STREAM)
    if isinstance(source, TextBody):
        encoding = charset or "UTF-8"
        data = source.text.encode(encoding)
        return Entity(data, f"text/plain; charset={encoding}")
    if isinstance(source, StreamBody):
        return Entity(source.stream, OCTET_STREAM)
    if isinstance(source, FileBody):
        guessed = mimetypes.guess_type(source.path.name)[0]
        return Entity(b"", guessed or OCTET_STREAM)
    raise TypeError(f"Unsupported body source: {source!r}")


def _caller_streams(request: RequestDescription) -> list[IO[bytes]]:
    if request.multipart is not None:
        sources = [part.value for part in request.multipart]
    else:
        sources = [request.body]
    return [source.stream for source in sources if isinstance(source, StreamBody)]


class BodyReplay:
    """Tracks whether a request body can be sent more than once.

    Bytes, text and file bodies are rebuilt for every attempt. Caller streams
    are replayable only when seekable; their starting offsets are recorded so
    :meth:`rewind` can put them back before the next attempt.
    """

    def __init__(self, request: RequestDescription) -> None:
        self._marks: list[tuple[IO[bytes], int]] = []
        self.replayable = True
        for stream in _caller_streams(request):
            seekable = getattr(stream, "seekable", None)
            try:
                if not callable(seekable) or not seekable():
                    self.replayable = False
                    continue
                self._marks.append((stream, stream.tell()))
            except (OSError, ValueError):
                self.replayable = False

    def rewind(self) -> None:
        for stream, offset in self._marks:
            stream.seek(offset)


def parse_content_type(value: str | None) -> tuple[str | None, dict[str, str]]:
    """Split a Content-Type value into its media type and parameters."""

    if not value:
        return None, {}
    media_type, *raw_params = value.split(";")
    params: dict[str, str] = {}
    for item in raw_params:
        key, sep, param_value = item.partition("=")
        if not sep:
            continue
        params[key.strip().lower()] = param_value.strip().strip('"')
    return media_type.strip().lower() or None, params


def structured_reader(media_type: str | None) -> Callable[[str], Any] | None:
    """Return the parser registered for ``media_type``, if any."""

    if not media_type:
        return None
    if media_type in _JSON_TYPES or media_type.endswith("+json"):
        return _read_json
    if media_type in _EDN_TYPES:
        return edn.loads
    return None


def _read_json(text: str) -> Any:
    return json.loads(text, parse_float=Decimal)


class DecompressingStream(io.RawIOBase):
    """Incrementally decode a ``gzip``, ``deflate`` or ``br`` byte stream."""

    def __init__(self, raw: IO[bytes], encoding: str) -> None:
        self._raw = raw
        self._encoding = encoding
        self._decompressor = self._new_decompressor(raw_deflate=False)
        self._pending = b""
        self._started = False
        self._finished = False

    def _new_decompressor(self, *, raw_deflate: bool) -> Any:
        if self._encoding == "br":
            return brotli.Decompressor()
        if self._encoding == "gzip":
            return zlib.decompressobj(16 + zlib.MAX_WBITS)
        return zlib.decompressobj(-zlib.MAX_WBITS if raw_deflate else zlib.MAX_WBITS)

    def _feed(self, chunk: bytes) -> bytes:
        if self._encoding == "br":
            return self._decompressor.process(chunk)
        if self._encoding == "deflate" and not self._started:
            self._started = True
            try:
                return self._decompressor.decompress(chunk)
            except zlib.error:
                # servers disagree on whether deflate carries the zlib header
                self._decompressor = self._new_decompressor(raw_deflate=True)
        return self._decompressor.decompress(chunk)

    def readable(self) -> bool:
        return True

    def readinto(self, buffer: Any) -> int:
        while not self._pending and not self._finished:
            chunk = self._raw.read(_READ_CHUNK)
            if not chunk:
                self._finished = True
                if self._encoding != "br":
                    self._pending = self._decompressor.flush()
                break
            self._pending = self._feed(chunk)
        size = min(len(buffer), len(self._pending))
        buffer[:size] = self._pending[:size]
        self._pending = self._pending[size:]
        return size

    def close(self) -> None:
        try:
            self._raw.close()
        finally:
            super().close()


def decompressed(response: ResponseDescription) -> IO[bytes] | None:
    """Return the response body stream, decoding its ``content-encoding``."""

    stream = response.body
    if stream is None:
        return None
    encoding = (response.header("content-encoding") or "").strip().lower()
    if encoding in {"gzip", "x-gzip"}:
        return io.BufferedReader(DecompressingStream(stream, "gzip"))
    if encoding in {"deflate", "br"}:
        return io.BufferedReader(DecompressingStream(stream, encoding))
    if encoding and encoding != "identity":
        _LOGGER.debug("Leaving unsupported content-encoding %s untouched", encoding)
    return stream


def materialize(stream: IO[bytes] | None, *, url: str | None = None) -> bytes:
    """Read a body stream to the end and close it."""

    if stream is None:
        return b""
    try:
        return stream.read()
    except (zlib.error, brotli.error) as exc:
        raise TransportError(
            "Failed to decompress response body", kind=TransportError.PROTOCOL, url=url
        ) from exc
    except OSError as exc:
        kind = TransportError.SOCKET_TIMEOUT if isinstance(exc, TimeoutError) else TransportError.IO
        raise TransportError(
            f"Failed to read response body: {exc}", kind=kind, url=url
        ) from exc
    finally:
        stream.close()


def decode_text(
    data: bytes, content_type: str | None, *, default: str = DEFAULT_CHARSET
) -> str:
    """Decode with the declared charset, else ``default``."""

    _, params = parse_content_type(content_type)
    charset = params.get("charset") or default
    try:
        return data.decode(charset)
    except LookupError:
        _LOGGER.warning("Unknown charset %s, falling back to %s", charset, default)
        return data.decode(default)


def parse_structured(data: bytes, content_type: str | None) -> Any:
    """Parse a JSON or EDN body; both are UTF-8 unless a charset is declared."""

    media_type, _ = parse_content_type(content_type)
    reader = structured_reader(media_type) or edn.loads
    text = ""
    try:
        text = decode_text(data, content_type, default=STRUCTURED_CHARSET)
        if not text.strip():
            return None
        return reader(text)
    except (ValueError, RecursionError) as exc:
        raise DecodingError(
            f"Unable to parse {media_type or 'response'} body: {exc}",
            content_type=content_type,
            content=text or data.decode(STRUCTURED_CHARSET, errors="replace"),
        ) from exc


def coerce_response(
    response: ResponseDescription,
    mode: CoercionMode,
    *,
    decompress: bool = True,
) -> ResponseDescription:
    """Return a copy of ``response`` whose body is coerced per ``mode``."""

    if response.body is None:
        return response
    url = response.request.url if response.request is not None else None
    stream = decompressed(response) if decompress else response.body
    if mode is CoercionMode.STREAM:
        return replace(response, body=stream)

    data = materialize(stream, url=url)
    if mode is CoercionMode.BYTES:
        return replace(response, body=data)

    content_type = response.content_type
    if mode is CoercionMode.STRING:
        return replace(response, body=decode_text(data, content_type))
    if mode is CoercionMode.AUTO:
        media_type, _ = parse_content_type(content_type)
        if structured_reader(media_type) is None:
            return replace(response, body=decode_text(data, content_type))
    return replace(response, body=parse_structured(data, content_type))
