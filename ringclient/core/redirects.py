"""Redirect following."""

from __future__ import annotations

import logging
from dataclasses import replace
from urllib.parse import urljoin

from ..exceptions import TooManyRedirectsError
from .body import BodyReplay
from .models import Method, RequestDescription, ResponseDescription
from .retry import RetryCoordinator

_LOGGER = logging.getLogger(__name__)

_BODY_HEADERS = {"content-type", "content-length", "transfer-encoding"}


class RedirectFollower:
    """Drives a request through its redirect chain.

    Every URL requested is recorded on ``trace_redirects`` in order. The hop
    counter starts at 1 for the first exchange, so a limit of ``n`` allows
    ``n`` redirects to be followed and fails on hop ``n + 1``.

    A hop that keeps the request body is only followed when the body can be
    sent again; otherwise the redirect response itself is returned.
    """

    def __init__(self, coordinator: RetryCoordinator) -> None:
        self._coordinator = coordinator

    def follow(self, request: RequestDescription) -> ResponseDescription:
        replay = BodyReplay(request)
        trace: list[str] = []
        hops = 1
        current = request
        while True:
            response = self._coordinator.execute(current)
            trace.append(current.url)
            response.trace_redirects = list(trace)

            if not current.follow_redirects or not response.is_redirect:
                return response

            if hops > current.max_redirects:
                if not current.throw_exceptions:
                    _LOGGER.debug(
                        "Redirect limit %d reached at %s", current.max_redirects, current.url
                    )
                    return response
                response.close()
                raise TooManyRedirectsError(hops, limit=current.max_redirects, trace=trace)

            location = response.header("location") or ""
            target = redirect_request(current, response.status, location)
            if target.body is not None or target.multipart is not None:
                if not replay.replayable:
                    _LOGGER.warning(
                        "Not following %s redirect from %s: request body cannot be resent",
                        response.status,
                        current.url,
                    )
                    return response
                replay.rewind()
            response.close()
            current = target
            hops += 1
            _LOGGER.debug("Following %s redirect to %s", response.status, current.url)


def redirect_request(
    request: RequestDescription, status: int, location: str
) -> RequestDescription:
    """Build the request for the next hop of a redirect."""

    target = request.with_url(urljoin(request.url, location))
    headers = dict(target.headers)
    if target.server_name != request.server_name:
        headers = {k: v for k, v in headers.items() if k.lower() != "authorization"}

    if status == 303 and request.method is not Method.GET:
        headers = {k: v for k, v in headers.items() if k.lower() not in _BODY_HEADERS}
        return replace(
            target,
            method=Method.HEAD if request.method is Method.HEAD else Method.GET,
            body=None,
            multipart=None,
            content_type=None,
            character_encoding=None,
            headers=headers,
        )
    return replace(target, headers=headers)
