"""Transport boundary: the black box that performs one wire exchange."""

from __future__ import annotations

import http.cookiejar
import io
import logging
from dataclasses import dataclass
from typing import IO, Any, Protocol, Sequence

import requests
from urllib3.exceptions import HTTPError as Urllib3HTTPError
from urllib3.exceptions import ProtocolError, ReadTimeoutError

from ..exceptions import InvalidRequestError, TransportError
from .body import Entity

_LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class RawResponse:
    status: int
    headers: list[tuple[str, str]]
    body: IO[bytes] | None


class Transport(Protocol):
    def execute(
        self,
        method: str,
        url: str,
        headers: Sequence[tuple[str, str]],
        entity: Entity | None,
        connect_timeout: float | None,
        socket_timeout: float | None,
        insecure: bool,
    ) -> RawResponse:
        ...


class ResponseStream(io.RawIOBase):
    """File-like view over a urllib3 response that raises ``TransportError``."""

    def __init__(self, raw: Any, url: str) -> None:
        self._raw = raw
        self._url = url

    def readable(self) -> bool:
        return True

    def readinto(self, buffer: Any) -> int:
        try:
            data = self._raw.read(len(buffer))
        except ReadTimeoutError as exc:
            raise TransportError(
                "Timed out reading response body",
                kind=TransportError.SOCKET_TIMEOUT,
                url=self._url,
            ) from exc
        except (ProtocolError, Urllib3HTTPError, OSError) as exc:
            raise TransportError(
                f"Connection broken while reading response body: {exc}",
                kind=TransportError.PROTOCOL,
                url=self._url,
            ) from exc
        size = len(data)
        buffer[:size] = data
        return size

    def close(self) -> None:
        try:
            self._raw.close()
            release = getattr(self._raw, "release_conn", None)
            if callable(release):
                release()
        finally:
            super().close()


class _RejectAllCookies(http.cookiejar.DefaultCookiePolicy):
    def set_ok(self, cookie: http.cookiejar.Cookie, request: Any) -> bool:
        return False


class RequestsTransport:
    """Transport backed by a ``requests.Session``.

    Redirects and retries are disabled at this level; the pipeline above owns
    both. Bodies are requested with ``stream=True`` so they stay unread.
    """

    def __init__(self, session: requests.Session | None = None) -> None:
        self._session = session or requests.Session()
        # headers and cookies come only from the request description
        self._session.headers.clear()
        self._session.cookies.set_policy(_RejectAllCookies())

    def execute(
        self,
        method: str,
        url: str,
        headers: Sequence[tuple[str, str]],
        entity: Entity | None,
        connect_timeout: float | None,
        socket_timeout: float | None,
        insecure: bool,
    ) -> RawResponse:
        data = entity.content if entity is not None else None
        try:
            response = self._session.request(
                method,
                url,
                headers=dict(headers),
                data=data,
                timeout=(connect_timeout, socket_timeout),
                verify=not insecure,
                stream=True,
                allow_redirects=False,
            )
        except requests.exceptions.ConnectTimeout as exc:
            raise TransportError(
                f"Timed out connecting to {url}",
                kind=TransportError.CONNECT_TIMEOUT,
                url=url,
            ) from exc
        except requests.exceptions.ReadTimeout as exc:
            raise TransportError(
                f"Timed out waiting for {url}",
                kind=TransportError.SOCKET_TIMEOUT,
                url=url,
            ) from exc
        except requests.exceptions.SSLError as exc:
            raise TransportError(
                f"TLS failure talking to {url}: {exc}",
                kind=TransportError.TLS,
                url=url,
            ) from exc
        except requests.exceptions.ConnectionError as exc:
            reason = exc.args[0] if exc.args else None
            kind = (
                TransportError.PROTOCOL
                if isinstance(reason, ProtocolError)
                else TransportError.CONNECTION
            )
            raise TransportError(f"Connection to {url} failed: {exc}", kind=kind, url=url) from exc
        except requests.exceptions.ChunkedEncodingError as exc:
            raise TransportError(
                f"Malformed response from {url}: {exc}",
                kind=TransportError.PROTOCOL,
                url=url,
            ) from exc
        except (
            requests.exceptions.InvalidURL,
            requests.exceptions.InvalidSchema,
            requests.exceptions.MissingSchema,
            requests.exceptions.InvalidHeader,
        ) as exc:
            raise InvalidRequestError(str(exc), details={"url": url}) from exc
        except OSError as exc:
            raise TransportError(
                f"I/O error sending request body: {exc}",
                kind=TransportError.IO,
                url=url,
            ) from exc

        _LOGGER.debug("%s %s -> %s", method, url, response.status_code)
        raw = response.raw
        return RawResponse(
            status=response.status_code,
            headers=list(raw.headers.iteritems()),
            body=ResponseStream(raw, url),
        )

    def close(self) -> None:
        self._session.close()
