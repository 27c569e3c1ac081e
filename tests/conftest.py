"""Shared fixtures: a disposable HTTP server and a scripted transport."""

from __future__ import annotations

import gzip
import io
import json
import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Callable, Iterator

import pytest

from ringclient import HttpClient
from ringclient.core.transport import RawResponse
from ringclient.settings import ClientSettings

EDN_BODY = '{:foo "bar" :baz 7M :eggplant {:quux #{1 2 3}}}'


class _Handler(BaseHTTPRequestHandler):
    def log_message(self, format: str, *args: Any) -> None:  # noqa: A002 - stdlib signature
        return

    def _read_body(self) -> bytes:
        length = int(self.headers.get("Content-Length") or 0)
        return self.rfile.read(length) if length else b""

    def _send(
        self, status: int, body: bytes = b"", headers: list[tuple[str, str]] | None = None
    ) -> None:
        self.send_response(status)
        for name, value in headers or []:
            self.send_header(name, value)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        if self.command != "HEAD":
            self.wfile.write(body)

    def _dispatch(self) -> None:
        request_body = self._read_body()
        path, _, query = self.path.partition("?")
        base = f"http://127.0.0.1:{self.server.server_address[1]}"
        route = (self.command, path)

        if route == ("GET", "/get"):
            self._send(200, b"get")
        elif route == ("GET", "/clojure"):
            self._send(200, EDN_BODY.encode(), [("Content-Type", "application/clojure")])
        elif route == ("GET", "/json"):
            payload = b'{"price": 19.99, "tags": ["a", "b"]}'
            self._send(200, payload, [("Content-Type", "application/json")])
        elif route == ("GET", "/redirect"):
            self._send(302, headers=[("Location", f"{base}/redirect")])
        elif route == ("GET", "/relative-redirect"):
            self._send(302, headers=[("Location", "/get")])
        elif route == ("POST", "/see-other"):
            self._send(303, headers=[("Location", "/get")])
        elif route == ("HEAD", "/head"):
            self._send(200, b"foo")
        elif route == ("GET", "/content-type"):
            self._send(200, (self.headers.get("Content-Type") or "").encode())
        elif route == ("GET", "/header"):
            self._send(200, (self.headers.get("X-My-Header") or "").encode())
        elif route == ("GET", "/query"):
            self._send(200, query.encode())
        elif route in {("POST", "/post"), ("POST", "/multipart"), ("GET", "/get-with-body")}:
            self._send(200, request_body)
        elif route == ("GET", "/error"):
            self._send(500, b"o noes")
        elif route == ("GET", "/timeout"):
            time.sleep(0.5)
            self._send(200, b"timeout")
        elif route == ("DELETE", "/delete-with-body"):
            self._send(200, b"delete-with-body")
        elif route == ("GET", "/cookies"):
            self._send(200, b"", [("Set-Cookie", "one=1"), ("Set-Cookie", "two=2")])
        elif route == ("GET", "/gzip"):
            buffer = io.BytesIO()
            with gzip.GzipFile(fileobj=buffer, mode="wb") as gz:
                gz.write(b"compressed payload")
            self._send(200, buffer.getvalue(), [("Content-Encoding", "gzip")])
        elif route == ("GET", "/auth"):
            self._send(200, (self.headers.get("Authorization") or "").encode())
        else:
            self._send(404, json.dumps({"path": path}).encode())

    do_GET = _dispatch
    do_HEAD = _dispatch
    do_POST = _dispatch
    do_PUT = _dispatch
    do_DELETE = _dispatch


@pytest.fixture(scope="session")
def live_server() -> Iterator[str]:
    server = ThreadingHTTPServer(("127.0.0.1", 0), _Handler)
    server.daemon_threads = True
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield f"http://127.0.0.1:{server.server_address[1]}"
    finally:
        server.shutdown()
        server.server_close()
        thread.join(timeout=5)


@pytest.fixture
def client() -> Iterator[HttpClient]:
    with HttpClient(settings=ClientSettings()) as http_client:
        yield http_client


class FakeTransport:
    """Replays scripted outcomes; the last outcome repeats forever.

    An outcome is an exception to raise, a status code, or a
    ``(status, body, headers)`` tuple.
    """

    def __init__(self, *outcomes: Any) -> None:
        self.outcomes = list(outcomes)
        self.calls: list[dict[str, Any]] = []

    def execute(
        self,
        method: str,
        url: str,
        headers: list[tuple[str, str]],
        entity: Any,
        connect_timeout: float | None,
        socket_timeout: float | None,
        insecure: bool,
    ) -> RawResponse:
        content = entity.content if entity is not None else None
        if hasattr(content, "read"):
            content = content.read()
        self.calls.append(
            {
                "method": method,
                "url": url,
                "headers": list(headers),
                "body": content,
                "content_type": entity.content_type if entity is not None else None,
                "connect_timeout": connect_timeout,
                "socket_timeout": socket_timeout,
                "insecure": insecure,
            }
        )
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        if isinstance(outcome, int):
            outcome = (outcome, b"", [])
        status, body, response_headers = outcome
        return RawResponse(status=status, headers=list(response_headers), body=io.BytesIO(body))


@pytest.fixture
def fake_transport() -> Callable[..., FakeTransport]:
    return FakeTransport


class OneShotStream(io.RawIOBase):
    """Readable once, like a socket or pipe; cannot seek back."""

    def __init__(self, data: bytes) -> None:
        self._data = io.BytesIO(data)

    def readable(self) -> bool:
        return True

    def readinto(self, buffer: Any) -> int:
        chunk = self._data.read(len(buffer))
        buffer[: len(chunk)] = chunk
        return len(chunk)


@pytest.fixture
def one_shot_stream() -> Callable[[bytes], OneShotStream]:
    return OneShotStream
