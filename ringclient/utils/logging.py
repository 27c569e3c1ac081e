"""Logging helpers for applications embedding the client."""

from __future__ import annotations

import json
import logging
import sys
from typing import IO, Any

PACKAGE_LOGGER = "ringclient"
_PLAIN_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_RESERVED_ATTRS = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", None, None).__dict__
) | {"message", "asctime"}


class JsonFormatter(logging.Formatter):
    """Render log records as compact JSON, folding ``extra=`` fields in."""

    default_time_format = "%Y-%m-%dT%H:%M:%S"
    default_msec_format = "%s.%03dZ"

    def format(self, record: logging.LogRecord) -> str:
        data: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.default_time_format),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                data[key] = value

        if record.exc_info:
            data["exception"] = self.formatException(record.exc_info)

        return json.dumps(data, ensure_ascii=False, default=str)


def configure_logging(
    *,
    level: int = logging.INFO,
    structured: bool = False,
    stream: IO[str] | None = None,
    logger_name: str = PACKAGE_LOGGER,
) -> logging.Logger:
    """Attach a stdout handler to the client's logger.

    Calling it again swaps the formatter on the existing handler instead of
    stacking another one.
    """

    logger = logging.getLogger(logger_name)
    logger.setLevel(level)
    formatter: logging.Formatter = (
        JsonFormatter() if structured else logging.Formatter(_PLAIN_FORMAT)
    )

    for handler in logger.handlers:
        if getattr(handler, "_ringclient_handler", False):
            handler.setFormatter(formatter)
            return logger

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(formatter)
    handler._ringclient_handler = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    return logger


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


__all__ = ["configure_logging", "get_logger", "JsonFormatter"]
