"""Single-exchange execution against a transport."""

from __future__ import annotations

import contextlib
import logging

from ..exceptions import TransportError
from .body import Entity, encode_body
from .headers import canonicalize_headers
from .models import FileBody, Method, RequestDescription, ResponseDescription
from .multipart import encode_multipart
from .transport import RequestsTransport, Transport

_LOGGER = logging.getLogger(__name__)


def content_type_header(request: RequestDescription) -> str | None:
    """Render the declared content type, with charset when one is set."""

    if not request.content_type:
        return None
    if request.character_encoding:
        return f"{request.content_type}; charset={request.character_encoding}"
    return request.content_type


class RequestExecutor:
    """Performs exactly one HTTP exchange for a resolved request."""

    def __init__(self, transport: Transport | None = None) -> None:
        self._transport = transport or RequestsTransport()

    @property
    def transport(self) -> Transport:
        return self._transport

    def execute(self, request: RequestDescription) -> ResponseDescription:
        url = request.url
        _LOGGER.debug("Executing %s %s", request.method.value, url)
        with contextlib.ExitStack() as stack:
            entity = self._build_entity(request, stack)
            headers = self._build_headers(request, entity)
            raw = self._transport.execute(
                request.method.value,
                url,
                headers,
                entity,
                request.conn_timeout,
                request.socket_timeout,
                request.insecure,
            )

        body = raw.body
        if request.method is Method.HEAD:
            if body is not None:
                body.close()
            body = None

        return ResponseDescription(
            status=raw.status,
            headers=canonicalize_headers(raw.headers),
            body=body,
            request=request if request.save_request else None,
        )

    def _build_entity(
        self, request: RequestDescription, stack: contextlib.ExitStack
    ) -> Entity | None:
        try:
            if request.multipart is not None:
                return encode_multipart(request.multipart)
            if request.body is None:
                return None
            entity = encode_body(request.body, charset=request.character_encoding)
            if isinstance(request.body, FileBody):
                entity.content = stack.enter_context(request.body.path.open("rb"))
            return entity
        except OSError as exc:
            raise TransportError(
                f"Unable to read request body: {exc}",
                kind=TransportError.IO,
                url=request.url,
            ) from exc

    def _build_headers(
        self, request: RequestDescription, entity: Entity | None
    ) -> list[tuple[str, str]]:
        headers = [(str(name), str(value)) for name, value in request.headers.items()]
        has_content_type = any(name.lower() == "content-type" for name, _ in headers)

        content_type = content_type_header(request)
        if request.multipart is not None and entity is not None:
            content_type = entity.content_type
        elif content_type is None and entity is not None and not has_content_type:
            content_type = entity.content_type

        if content_type:
            headers = [(name, value) for name, value in headers if name.lower() != "content-type"]
            headers.append(("Content-Type", content_type))
        return headers
