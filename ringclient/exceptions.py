"""Error taxonomy for the HTTP client."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any, Mapping

if TYPE_CHECKING:
    from .core.models import ResponseDescription


class HttpClientError(RuntimeError):
    """Base class for every failure raised by the client."""

    def __init__(self, message: str, *, details: Mapping[str, Any] | None = None) -> None:
        super().__init__(message)
        self.details = dict(details or {})

    def __str__(self) -> str:
        base = super().__str__()
        if not self.details:
            return base
        try:
            detail_repr = json.dumps(self.details, ensure_ascii=False)
        except TypeError:
            detail_repr = str(self.details)
        return f"{base} | details: {detail_repr}"


class InvalidRequestError(HttpClientError, ValueError):
    """Raised before any network activity when a request cannot be built."""


class TransportError(HttpClientError):
    """Raised when the transport fails to complete an exchange.

    ``kind`` tells retry policies what went wrong; the original exception is
    chained as ``__cause__``.
    """

    CONNECT_TIMEOUT = "connect-timeout"
    SOCKET_TIMEOUT = "socket-timeout"
    TLS = "tls"
    CONNECTION = "connection"
    PROTOCOL = "protocol"
    IO = "io"

    def __init__(
        self,
        message: str,
        *,
        kind: str,
        url: str | None = None,
        details: Mapping[str, Any] | None = None,
    ) -> None:
        merged = {"kind": kind}
        if url:
            merged["url"] = url
        merged.update(details or {})
        super().__init__(message, details=merged)
        self.kind = kind
        self.url = url


class TooManyRedirectsError(HttpClientError):
    """Raised when a redirect chain exceeds ``max_redirects``."""

    def __init__(self, hops: int, *, limit: int, trace: list[str] | None = None) -> None:
        super().__init__(f"Too many redirects: {hops}")
        self.hops = hops
        self.limit = limit
        self.trace = list(trace or [])


class DecodingError(HttpClientError):
    """Raised when a response body cannot be parsed into structured data."""

    def __init__(self, message: str, *, content_type: str | None, content: str) -> None:
        snippet = content[:200]
        super().__init__(
            message,
            details={"content_type": content_type, "content": snippet},
        )
        self.content_type = content_type
        self.snippet = snippet


class HttpStatusError(HttpClientError):
    """Raised for status codes >= 400 unless ``throw_exceptions`` is off."""

    def __init__(self, response: "ResponseDescription") -> None:
        details: dict[str, Any] = {"status": response.status}
        if isinstance(response.body, str):
            details["body"] = response.body[:200]
        super().__init__(f"Unexpected HTTP status {response.status}", details=details)
        self.status = response.status
        self.response = response


__all__ = [
    "HttpClientError",
    "InvalidRequestError",
    "TransportError",
    "TooManyRedirectsError",
    "DecodingError",
    "HttpStatusError",
]
