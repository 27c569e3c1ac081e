"""High-level HTTP client: option handling around the request pipeline."""

from __future__ import annotations

import base64
import logging
import threading
from typing import Any, Iterable, Mapping
from urllib.parse import unquote, urlencode, urlsplit

from .core.body import coerce_response
from .core.executor import RequestExecutor
from .core.models import (
    CoercionMode,
    Method,
    MultipartPart,
    RequestDescription,
    ResponseDescription,
    body_source,
    url_parts,
)
from .core.redirects import RedirectFollower
from .core.retry import DefaultRetryHandler, RetryCoordinator, as_retry_handler
from .core.transport import Transport
from .exceptions import HttpStatusError, InvalidRequestError
from .settings import ClientSettings, load_settings

_LOGGER = logging.getLogger(__name__)

DEFAULT_ACCEPT_ENCODING = "gzip, deflate, br"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
_MEDIA_TYPE_ALIASES = {
    "json": "application/json",
    "edn": "application/edn",
    "clojure": "application/clojure",
    "text": "text/plain",
    "html": "text/html",
}

_UNSET: Any = object()


def _has_header(headers: Mapping[str, str], name: str) -> bool:
    lowered = name.lower()
    return any(key.lower() == lowered for key in headers)


def _media_type(value: str) -> str:
    return _MEDIA_TYPE_ALIASES.get(value, value)


def _encode_params(params: Mapping[str, Any] | Iterable[tuple[str, Any]]) -> str:
    pairs = list(params.items()) if isinstance(params, Mapping) else list(params)
    return urlencode(pairs, doseq=True)


def _basic_auth_header(credentials: str | tuple[str, str]) -> str:
    if isinstance(credentials, str):
        user, sep, password = credentials.partition(":")
        if not sep:
            raise InvalidRequestError("basic_auth string must look like 'user:password'")
    else:
        user, password = credentials
    token = base64.b64encode(f"{user}:{password}".encode("utf-8")).decode("ascii")
    return f"Basic {token}"


def _multipart_parts(value: Any) -> tuple[MultipartPart, ...]:
    items = value.items() if isinstance(value, Mapping) else value
    parts: list[MultipartPart] = []
    for item in items:
        if isinstance(item, MultipartPart):
            parts.append(item)
            continue
        try:
            name, part_value = item
        except (TypeError, ValueError):
            raise InvalidRequestError(
                f"Multipart entries must be MultipartPart or (name, value) pairs, got {item!r}"
            ) from None
        parts.append(MultipartPart.of(name, part_value))
    return tuple(parts)


class HttpClient:
    """Builds request descriptions and runs them through the pipeline.

    The pipeline is ``RedirectFollower -> RetryCoordinator -> RequestExecutor
    -> Transport``; the body is coerced once the final response is known.
    """

    def __init__(
        self,
        *,
        settings: ClientSettings | None = None,
        transport: Transport | None = None,
    ) -> None:
        self._settings = settings or load_settings()
        self._executor = RequestExecutor(transport)
        coordinator = RetryCoordinator(
            self._executor,
            default_handler=DefaultRetryHandler(self._settings.max_retries),
        )
        self._follower = RedirectFollower(coordinator)

    @property
    def settings(self) -> ClientSettings:
        return self._settings

    def build_request(
        self,
        method: Method | str = "GET",
        url: str | None = None,
        *,
        scheme: str | None = None,
        server_name: str | None = None,
        server_port: int | None = None,
        uri: str | None = None,
        query_string: str | None = None,
        query_params: Mapping[str, Any] | Iterable[tuple[str, Any]] | None = None,
        headers: Mapping[str, str] | None = None,
        body: Any = None,
        form_params: Mapping[str, Any] | Iterable[tuple[str, Any]] | None = None,
        multipart: Any = None,
        content_type: str | None = None,
        character_encoding: str | None = None,
        basic_auth: str | tuple[str, str] | None = None,
        accept: str | None = None,
        accept_encoding: str | Iterable[str] | None = None,
        socket_timeout: float | None = _UNSET,
        conn_timeout: float | None = _UNSET,
        max_redirects: int | None = None,
        follow_redirects: bool = True,
        throw_exceptions: bool = True,
        insecure: bool | None = None,
        save_request: bool = False,
        as_: CoercionMode | str = CoercionMode.STRING,
        retry_handler: Any = None,
        decompress_body: bool | None = None,
    ) -> RequestDescription:
        """Validate caller options and resolve them into a ``RequestDescription``.

        Everything that can be rejected without touching the network is
        rejected here: the method, the coercion mode, the body type, the URL
        and the retry handler.
        """

        settings = self._settings
        method = Method.parse(method)
        mode = CoercionMode.parse(as_)
        handler = as_retry_handler(retry_handler)

        if url is not None:
            location = url_parts(url)
            split = urlsplit(url)
            if split.username is not None and basic_auth is None:
                basic_auth = (unquote(split.username), unquote(split.password or ""))
        elif server_name:
            location = {
                "scheme": (scheme or "http").lower(),
                "server_name": server_name,
                "server_port": int(server_port) if server_port is not None else None,
                "uri": uri or "/",
                "query_string": query_string or None,
            }
        else:
            raise InvalidRequestError("Either url or server_name is required")

        if query_params:
            encoded = _encode_params(query_params)
            existing = location["query_string"]
            location["query_string"] = f"{existing}&{encoded}" if existing else encoded

        merged_headers = {str(k): str(v) for k, v in (headers or {}).items()}
        if settings.user_agent and not _has_header(merged_headers, "User-Agent"):
            merged_headers["User-Agent"] = settings.user_agent
        if accept is not None:
            merged_headers["Accept"] = _media_type(accept)
        decompress = settings.decompress_body if decompress_body is None else decompress_body
        if accept_encoding is not None:
            merged_headers["Accept-Encoding"] = (
                accept_encoding if isinstance(accept_encoding, str) else ", ".join(accept_encoding)
            )
        elif decompress and not _has_header(merged_headers, "Accept-Encoding"):
            merged_headers["Accept-Encoding"] = DEFAULT_ACCEPT_ENCODING
        if basic_auth is not None:
            merged_headers["Authorization"] = _basic_auth_header(basic_auth)

        if form_params is not None:
            if body is not None:
                raise InvalidRequestError("body and form_params are mutually exclusive")
            body = _encode_params(form_params)
            content_type = content_type or FORM_CONTENT_TYPE

        return RequestDescription(
            method=method,
            headers=merged_headers,
            body=body_source(body) if body is not None else None,
            multipart=_multipart_parts(multipart) if multipart is not None else None,
            content_type=_media_type(content_type) if content_type else None,
            character_encoding=character_encoding,
            socket_timeout=settings.socket_timeout if socket_timeout is _UNSET else socket_timeout,
            conn_timeout=settings.conn_timeout if conn_timeout is _UNSET else conn_timeout,
            max_redirects=settings.max_redirects if max_redirects is None else int(max_redirects),
            follow_redirects=follow_redirects,
            throw_exceptions=throw_exceptions,
            insecure=settings.insecure if insecure is None else insecure,
            retry_handler=handler,
            save_request=save_request,
            as_=mode,
            decompress_body=decompress,
            **location,
        )

    def execute(self, request: RequestDescription) -> ResponseDescription:
        """Run a prepared request through redirects, retries and coercion."""

        response = self._follower.follow(request)
        response = coerce_response(response, request.as_, decompress=request.decompress_body)
        if request.throw_exceptions and response.status >= 400:
            _LOGGER.debug("%s %s returned %s", request.method.value, request.url, response.status)
            raise HttpStatusError(response)
        return response

    def request(
        self, method: Method | str = "GET", url: str | None = None, **options: Any
    ) -> ResponseDescription:
        return self.execute(self.build_request(method, url, **options))

    def get(self, url: str, **options: Any) -> ResponseDescription:
        return self.request(Method.GET, url, **options)

    def head(self, url: str, **options: Any) -> ResponseDescription:
        return self.request(Method.HEAD, url, **options)

    def post(self, url: str, **options: Any) -> ResponseDescription:
        return self.request(Method.POST, url, **options)

    def put(self, url: str, **options: Any) -> ResponseDescription:
        return self.request(Method.PUT, url, **options)

    def delete(self, url: str, **options: Any) -> ResponseDescription:
        return self.request(Method.DELETE, url, **options)

    def options(self, url: str, **options: Any) -> ResponseDescription:
        return self.request(Method.OPTIONS, url, **options)

    def patch(self, url: str, **options: Any) -> ResponseDescription:
        return self.request(Method.PATCH, url, **options)

    def close(self) -> None:
        close = getattr(self._executor.transport, "close", None)
        if callable(close):
            close()

    def __enter__(self) -> "HttpClient":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()


_default_client: HttpClient | None = None
_default_lock = threading.Lock()


def default_client() -> HttpClient:
    """Process-wide client used by the module-level helpers."""

    global _default_client
    with _default_lock:
        if _default_client is None:
            _default_client = HttpClient()
        return _default_client


def request(
    method: Method | str = "GET", url: str | None = None, **options: Any
) -> ResponseDescription:
    return default_client().request(method, url, **options)


def get(url: str, **options: Any) -> ResponseDescription:
    return default_client().get(url, **options)


def head(url: str, **options: Any) -> ResponseDescription:
    return default_client().head(url, **options)


def post(url: str, **options: Any) -> ResponseDescription:
    return default_client().post(url, **options)


def put(url: str, **options: Any) -> ResponseDescription:
    return default_client().put(url, **options)


def delete(url: str, **options: Any) -> ResponseDescription:
    return default_client().delete(url, **options)


def options(url: str, **kwargs: Any) -> ResponseDescription:
    return default_client().options(url, **kwargs)


def patch(url: str, **options: Any) -> ResponseDescription:
    return default_client().patch(url, **options)
