"""ringclient - declarative HTTP requests with redirects, retries and body coercion."""

from .client import (
    HttpClient,
    default_client,
    delete,
    get,
    head,
    options,
    patch,
    post,
    put,
    request,
)
from .core import (
    CoercionMode,
    DefaultRetryHandler,
    Method,
    MultipartPart,
    RequestDescription,
    ResponseDescription,
    RetryHandler,
)
from .core.edn import Keyword, Symbol
from .exceptions import (
    DecodingError,
    HttpClientError,
    HttpStatusError,
    InvalidRequestError,
    TooManyRedirectsError,
    TransportError,
)

__version__ = "0.1.0"

__all__ = [
    "CoercionMode",
    "DecodingError",
    "DefaultRetryHandler",
    "HttpClient",
    "HttpClientError",
    "HttpStatusError",
    "InvalidRequestError",
    "Keyword",
    "Method",
    "MultipartPart",
    "RequestDescription",
    "ResponseDescription",
    "RetryHandler",
    "Symbol",
    "TooManyRedirectsError",
    "TransportError",
    "default_client",
    "delete",
    "get",
    "head",
    "options",
    "patch",
    "post",
    "put",
    "request",
]
