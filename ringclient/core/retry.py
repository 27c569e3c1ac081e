"""Retry policy around single exchanges."""

from __future__ import annotations

import logging
from typing import Any, Callable, Protocol, runtime_checkable

from ..exceptions import InvalidRequestError, TransportError
from .body import BodyReplay
from .executor import RequestExecutor
from .models import Method, RequestDescription, ResponseDescription, RetryContext

_LOGGER = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 3
RETRYABLE_KINDS = frozenset({TransportError.IO, TransportError.PROTOCOL})


@runtime_checkable
class RetryHandler(Protocol):
    def should_retry(self, error: BaseException, attempt: int, context: dict[str, Any]) -> bool:
        ...


class DefaultRetryHandler:
    """Retry idempotent requests on transient transport failures.

    Timeouts, refused connections and TLS failures are not retried.
    """

    def __init__(
        self,
        max_retries: int = DEFAULT_MAX_RETRIES,
        *,
        retryable_kinds: frozenset[str] = RETRYABLE_KINDS,
    ) -> None:
        self.max_retries = max_retries
        self.retryable_kinds = retryable_kinds

    def should_retry(self, error: BaseException, attempt: int, context: dict[str, Any]) -> bool:
        if attempt > self.max_retries:
            return False
        if not isinstance(error, TransportError) or error.kind not in self.retryable_kinds:
            return False
        method = context.get("method")
        return isinstance(method, Method) and method.idempotent


class CallableRetryHandler:
    """Adapts a plain ``(error, attempt, context) -> bool`` function."""

    def __init__(self, func: Callable[[BaseException, int, dict[str, Any]], bool]) -> None:
        self._func = func

    def should_retry(self, error: BaseException, attempt: int, context: dict[str, Any]) -> bool:
        return bool(self._func(error, attempt, context))


def as_retry_handler(value: Any) -> RetryHandler | None:
    if value is None or isinstance(value, RetryHandler):
        return value
    if callable(value):
        return CallableRetryHandler(value)
    raise InvalidRequestError(
        f"retry_handler must be callable or define should_retry, got {value!r}"
    )


class RetryCoordinator:
    """Runs the executor until it succeeds or the retry handler gives up.

    A handler supplied on the request is authoritative: when it keeps
    answering ``True`` the exchange is retried without any further cap.
    A request whose body cannot be sent again is never retried; the first
    failure is raised without consulting any handler.
    """

    def __init__(
        self,
        executor: RequestExecutor,
        *,
        default_handler: RetryHandler | None = None,
    ) -> None:
        self._executor = executor
        self._default_handler = default_handler or DefaultRetryHandler()

    def execute(self, request: RequestDescription) -> ResponseDescription:
        handler = as_retry_handler(request.retry_handler) or self._default_handler
        replay = BodyReplay(request)
        attempt = 0
        while True:
            try:
                return self._executor.execute(request)
            except TransportError as exc:
                attempt += 1
                if not replay.replayable:
                    _LOGGER.debug(
                        "Not retrying %s: request body is a one-shot stream", request.url
                    )
                    raise
                retry = RetryContext(
                    exception=exc,
                    attempt=attempt,
                    context={"request": request, "url": request.url, "method": request.method},
                )
                if not handler.should_retry(retry.exception, retry.attempt, retry.context):
                    _LOGGER.debug(
                        "Giving up on %s after %d attempt(s): %s", request.url, attempt, exc
                    )
                    raise
                _LOGGER.warning(
                    "Retrying %s %s (attempt %d, %s)",
                    request.method.value,
                    request.url,
                    attempt,
                    exc.kind,
                )
                replay.rewind()
