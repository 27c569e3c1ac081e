"""Request and response descriptions passed through the pipeline."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import IO, TYPE_CHECKING, Any, Mapping, Union
from urllib.parse import urlsplit

from ..exceptions import InvalidRequestError

if TYPE_CHECKING:
    from .retry import RetryHandler


class Method(str, Enum):
    GET = "GET"
    HEAD = "HEAD"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    OPTIONS = "OPTIONS"
    TRACE = "TRACE"
    PATCH = "PATCH"

    @classmethod
    def parse(cls, value: "Method | str") -> "Method":
        if isinstance(value, Method):
            return value
        try:
            return cls(str(value).upper())
        except ValueError:
            raise InvalidRequestError(f"Invalid request method: {value}") from None

    @property
    def idempotent(self) -> bool:
        return self in IDEMPOTENT_METHODS


IDEMPOTENT_METHODS = frozenset(
    {Method.GET, Method.HEAD, Method.PUT, Method.DELETE, Method.OPTIONS, Method.TRACE}
)


class CoercionMode(str, Enum):
    """How a response body is turned into a value for the caller."""

    BYTES = "bytes"
    STRING = "string"
    STREAM = "stream"
    STRUCTURED = "structured"
    AUTO = "auto"

    @classmethod
    def parse(cls, value: "CoercionMode | str") -> "CoercionMode":
        if isinstance(value, CoercionMode):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise InvalidRequestError(f"Unsupported coercion mode: {value}") from None


@dataclass(frozen=True, slots=True)
class BytesBody:
    data: bytes


@dataclass(frozen=True, slots=True)
class TextBody:
    text: str


@dataclass(frozen=True, slots=True)
class StreamBody:
    stream: IO[bytes]


@dataclass(frozen=True, slots=True)
class FileBody:
    path: Path


BodySource = Union[BytesBody, TextBody, StreamBody, FileBody]


def body_source(value: Any) -> BodySource:
    """Resolve a loosely typed body value into a tagged ``BodySource``."""

    if isinstance(value, (BytesBody, TextBody, StreamBody, FileBody)):
        return value
    if isinstance(value, (bytes, bytearray, memoryview)):
        return BytesBody(bytes(value))
    if isinstance(value, str):
        return TextBody(value)
    if isinstance(value, os.PathLike):
        return FileBody(Path(value))
    if hasattr(value, "read"):
        return StreamBody(value)
    raise InvalidRequestError(
        f"Unsupported body type: {type(value).__name__}",
        details={"expected": "bytes, str, path or readable stream"},
    )


@dataclass(frozen=True, slots=True)
class MultipartPart:
    name: str
    value: BodySource
    content_type: str | None = None
    filename: str | None = None

    @classmethod
    def of(
        cls,
        name: str,
        value: Any,
        *,
        content_type: str | None = None,
        filename: str | None = None,
    ) -> "MultipartPart":
        return cls(
            name=str(name),
            value=body_source(value),
            content_type=content_type,
            filename=filename,
        )


@dataclass(frozen=True, slots=True)
class RequestDescription:
    """Everything needed to perform one logical request.

    Instances are immutable; redirect hops produce modified copies through
    :func:`dataclasses.replace`.
    """

    server_name: str
    scheme: str = "http"
    server_port: int | None = None
    method: Method = Method.GET
    uri: str = "/"
    query_string: str | None = None
    headers: Mapping[str, str] = field(default_factory=dict)
    body: BodySource | None = None
    multipart: tuple[MultipartPart, ...] | None = None
    content_type: str | None = None
    character_encoding: str | None = None
    socket_timeout: float | None = None
    conn_timeout: float | None = None
    max_redirects: int = 20
    follow_redirects: bool = True
    throw_exceptions: bool = True
    insecure: bool = False
    retry_handler: "RetryHandler | None" = None
    save_request: bool = False
    as_: CoercionMode = CoercionMode.STRING
    decompress_body: bool = True

    def __post_init__(self) -> None:
        object.__setattr__(self, "method", Method.parse(self.method))
        object.__setattr__(self, "as_", CoercionMode.parse(self.as_))

    @property
    def host(self) -> str:
        host = self.server_name
        if ":" in host and not host.startswith("["):
            host = f"[{host}]"
        if self.server_port is not None:
            host = f"{host}:{self.server_port}"
        return host

    @property
    def url(self) -> str:
        uri = self.uri or "/"
        url = f"{self.scheme}://{self.host}{uri}"
        if self.query_string:
            url = f"{url}?{self.query_string}"
        return url

    def with_url(self, url: str) -> "RequestDescription":
        """Copy of this request pointed at ``url``."""
        return replace(self, **url_parts(url))


def url_parts(url: str) -> dict[str, Any]:
    """Split an absolute URL into request description fields."""

    parts = urlsplit(url)
    if not parts.scheme or not parts.hostname:
        raise InvalidRequestError(f"Invalid URL: {url}")
    try:
        port = parts.port
    except ValueError as exc:
        raise InvalidRequestError(f"Invalid port in URL: {url}") from exc
    return {
        "scheme": parts.scheme.lower(),
        "server_name": parts.hostname,
        "server_port": port,
        "uri": parts.path or "/",
        "query_string": parts.query or None,
    }


@dataclass(slots=True)
class ResponseDescription:
    status: int
    headers: dict[str, str | list[str]]
    body: Any = None
    request: RequestDescription | None = None
    trace_redirects: list[str] = field(default_factory=list)

    @property
    def content_type(self) -> str | None:
        return self.header("content-type")

    @property
    def is_redirect(self) -> bool:
        return 300 <= self.status < 400 and self.status != 304 and bool(self.header("location"))

    def header(self, name: str) -> str | None:
        """Return the first value recorded for ``name``."""
        value = self.headers.get(name.lower())
        if isinstance(value, list):
            return value[0] if value else None
        return value

    def close(self) -> None:
        close = getattr(self.body, "close", None)
        if callable(close):
            close()


@dataclass(slots=True)
class RetryContext:
    exception: BaseException
    attempt: int
    context: dict[str, Any] = field(default_factory=dict)
