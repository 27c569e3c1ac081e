"""Request/response pipeline primitives."""

from .executor import RequestExecutor
from .headers import canonicalize_headers
from .models import (
    BodySource,
    BytesBody,
    CoercionMode,
    FileBody,
    Method,
    MultipartPart,
    RequestDescription,
    ResponseDescription,
    RetryContext,
    StreamBody,
    TextBody,
    body_source,
)
from .redirects import RedirectFollower
from .retry import DefaultRetryHandler, RetryCoordinator, RetryHandler
from .transport import RawResponse, RequestsTransport, Transport

__all__ = [
    "BodySource",
    "BytesBody",
    "CoercionMode",
    "DefaultRetryHandler",
    "FileBody",
    "Method",
    "MultipartPart",
    "RawResponse",
    "RedirectFollower",
    "RequestDescription",
    "RequestExecutor",
    "RequestsTransport",
    "ResponseDescription",
    "RetryContext",
    "RetryCoordinator",
    "RetryHandler",
    "StreamBody",
    "TextBody",
    "Transport",
    "body_source",
    "canonicalize_headers",
]
