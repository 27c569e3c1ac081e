"""Reader for EDN, the literal notation served as ``application/edn``.

Maps read as ``dict``, vectors as ``list``, lists as ``tuple``, sets as
``frozenset``. Numbers with an ``M`` suffix read as :class:`decimal.Decimal`
so exact decimals never pass through floating point.
"""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Callable


class EdnSyntaxError(ValueError):
    """Raised for malformed EDN input."""


@dataclass(frozen=True, slots=True)
class Keyword:
    name: str

    def __str__(self) -> str:
        return f":{self.name}"


@dataclass(frozen=True, slots=True)
class Symbol:
    name: str

    def __str__(self) -> str:
        return self.name


_WHITESPACE = frozenset(" \t\r\n,")
_DELIMITERS = _WHITESPACE | frozenset('()[]{}";')
_NUMBER_RE = re.compile(r"[+-]?\d+(\.\d*)?([eE][+-]?\d+)?[MN]?\Z")
_STRING_ESCAPES = {
    "t": "\t",
    "r": "\r",
    "n": "\n",
    "b": "\b",
    "f": "\f",
    "\\": "\\",
    '"': '"',
}
_NAMED_CHARS = {
    "newline": "\n",
    "return": "\r",
    "space": " ",
    "tab": "\t",
    "formfeed": "\f",
    "backspace": "\b",
}
_TAG_READERS: dict[str, Callable[[Any], Any]] = {
    "inst": lambda value: datetime.fromisoformat(str(value).replace("Z", "+00:00")),
    "uuid": lambda value: uuid.UUID(str(value)),
}

_EOF = object()
_CLOSE = object()


def loads(text: str) -> Any:
    """Read exactly one form from ``text``; blank input reads as ``None``."""

    reader = _Reader(text)
    value = reader.read()
    if value is _EOF:
        return None
    if reader.read() is not _EOF:
        raise EdnSyntaxError(f"Unexpected trailing content at offset {reader.pos}")
    return value


class _Reader:
    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0

    def read(self, closing: str | None = None) -> Any:
        while True:
            self._skip_whitespace()
            if self.pos >= len(self.text):
                if closing:
                    raise EdnSyntaxError(f"Unexpected end of input, expected {closing!r}")
                return _EOF
            char = self.text[self.pos]
            if char == closing:
                self.pos += 1
                return _CLOSE
            if char in ")]}":
                raise EdnSyntaxError(f"Unmatched delimiter {char!r} at offset {self.pos}")
            if self.text.startswith("#_", self.pos):
                self.pos += 2
                discarded = self.read(closing)
                if discarded is _EOF or discarded is _CLOSE:
                    raise EdnSyntaxError("Nothing to discard after #_")
                continue
            return self._read_form(char)

    def _skip_whitespace(self) -> None:
        text = self.text
        while self.pos < len(text):
            char = text[self.pos]
            if char in _WHITESPACE:
                self.pos += 1
            elif char == ";":
                end = text.find("\n", self.pos)
                self.pos = len(text) if end == -1 else end + 1
            else:
                break

    def _read_form(self, char: str) -> Any:
        if char == "(":
            self.pos += 1
            return tuple(self._read_items(")"))
        if char == "[":
            self.pos += 1
            return self._read_items("]")
        if char == "{":
            self.pos += 1
            return self._read_map()
        if char == "#":
            return self._read_dispatch()
        if char == '"':
            return self._read_string()
        if char == "\\":
            return self._read_char()
        return self._read_atom(self._read_token())

    def _read_items(self, closing: str) -> list[Any]:
        items: list[Any] = []
        while True:
            value = self.read(closing)
            if value is _CLOSE:
                return items
            items.append(value)

    def _read_map(self) -> dict[Any, Any]:
        start = self.pos
        items = self._read_items("}")
        if len(items) % 2:
            raise EdnSyntaxError(f"Map literal at offset {start} has an odd number of forms")
        try:
            return dict(zip(items[::2], items[1::2]))
        except TypeError as exc:
            raise EdnSyntaxError(f"Unhashable map key in literal at offset {start}") from exc

    def _read_dispatch(self) -> Any:
        self.pos += 1
        if self.text.startswith("{", self.pos):
            start = self.pos
            self.pos += 1
            try:
                return frozenset(self._read_items("}"))
            except TypeError as exc:
                raise EdnSyntaxError(f"Unhashable set element at offset {start}") from exc
        tag = self._read_token()
        if not tag:
            raise EdnSyntaxError(f"Invalid dispatch character at offset {self.pos}")
        value = self.read()
        if value is _EOF:
            raise EdnSyntaxError(f"Missing value for tag #{tag}")
        handler = _TAG_READERS.get(tag)
        if handler is None:
            raise EdnSyntaxError(f"No reader for tag #{tag}")
        try:
            return handler(value)
        except ValueError as exc:
            raise EdnSyntaxError(f"Invalid #{tag} value {value!r}") from exc

    def _read_string(self) -> str:
        text = self.text
        start = self.pos
        self.pos += 1
        chunks: list[str] = []
        while True:
            if self.pos >= len(text):
                raise EdnSyntaxError(f"Unterminated string starting at offset {start}")
            char = text[self.pos]
            if char == '"':
                self.pos += 1
                return "".join(chunks)
            if char == "\\":
                escape = text[self.pos + 1 : self.pos + 2]
                if escape == "u":
                    code = text[self.pos + 2 : self.pos + 6]
                    try:
                        chunks.append(chr(int(code, 16)))
                    except ValueError as exc:
                        raise EdnSyntaxError(f"Invalid unicode escape {code!r}") from exc
                    self.pos += 6
                    continue
                if escape not in _STRING_ESCAPES:
                    raise EdnSyntaxError(f"Invalid escape \\{escape} at offset {self.pos}")
                chunks.append(_STRING_ESCAPES[escape])
                self.pos += 2
                continue
            chunks.append(char)
            self.pos += 1

    def _read_char(self) -> str:
        self.pos += 1
        if self.pos >= len(self.text):
            raise EdnSyntaxError("Unexpected end of input after \\")
        start = self.pos
        self.pos += 1
        while self.pos < len(self.text) and self.text[self.pos] not in _DELIMITERS:
            self.pos += 1
        token = self.text[start : self.pos]
        if len(token) == 1:
            return token
        if token in _NAMED_CHARS:
            return _NAMED_CHARS[token]
        if token.startswith("u") and len(token) == 5:
            try:
                return chr(int(token[1:], 16))
            except ValueError:
                pass
        raise EdnSyntaxError(f"Invalid character literal \\{token}")

    def _read_token(self) -> str:
        start = self.pos
        while self.pos < len(self.text) and self.text[self.pos] not in _DELIMITERS:
            self.pos += 1
        return self.text[start : self.pos]

    def _read_atom(self, token: str) -> Any:
        if token == "nil":
            return None
        if token == "true":
            return True
        if token == "false":
            return False
        if token.startswith(":"):
            if len(token) == 1:
                raise EdnSyntaxError("Empty keyword")
            return Keyword(token[1:])
        if _NUMBER_RE.match(token):
            return _parse_number(token)
        if token[:1].isdigit() or (token[:1] in "+-" and token[1:2].isdigit()):
            raise EdnSyntaxError(f"Invalid number {token!r}")
        return Symbol(token)


def _parse_number(token: str) -> int | float | Decimal:
    if token.endswith("M"):
        try:
            return Decimal(token[:-1])
        except InvalidOperation as exc:  # pragma: no cover - regex guards the format
            raise EdnSyntaxError(f"Invalid decimal {token!r}") from exc
    if token.endswith("N"):
        if any(ch in token for ch in ".eE"):
            raise EdnSyntaxError(f"Invalid integer {token!r}")
        return int(token[:-1])
    if any(ch in token for ch in ".eE"):
        return float(token)
    return int(token)


__all__ = ["EdnSyntaxError", "Keyword", "Symbol", "loads"]
