"""Header canonicalization."""

from __future__ import annotations

from typing import Iterable


def canonicalize_headers(pairs: Iterable[tuple[str, str]]) -> dict[str, str | list[str]]:
    """Fold raw header pairs into a mapping keyed by lower-cased name.

    A repeated name collects its values into a list in encounter order.
    """

    headers: dict[str, str | list[str]] = {}
    for name, value in pairs:
        key = str(name).lower()
        current = headers.get(key)
        if current is None:
            headers[key] = value
        elif isinstance(current, list):
            current.append(value)
        else:
            headers[key] = [current, value]
    return headers
