"""Tests for the EDN reader."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from ringclient.core.edn import EdnSyntaxError, Keyword, Symbol, loads


def test_reads_nested_map_with_decimal_and_set() -> None:
    value = loads('{:foo "bar" :baz 7M :eggplant {:quux #{1 2 3}}}')

    assert value == {
        Keyword("foo"): "bar",
        Keyword("baz"): Decimal("7"),
        Keyword("eggplant"): {Keyword("quux"): frozenset({1, 2, 3})},
    }
    assert isinstance(value[Keyword("baz")], Decimal)


def test_decimal_literal_keeps_exact_digits() -> None:
    assert loads("0.1M") == Decimal("0.1")
    assert str(loads("3.14159265358979323846264338327950288M")) == (
        "3.14159265358979323846264338327950288"
    )


def test_scalars() -> None:
    assert loads("nil") is None
    assert loads("true") is True
    assert loads("false") is False
    assert loads("42") == 42
    assert loads("-7") == -7
    assert loads("12345678901234567890N") == 12345678901234567890
    assert loads("1.5") == 1.5
    assert loads("1e3") == 1000.0
    assert loads("sym/name") == Symbol("sym/name")
    assert loads("-") == Symbol("-")


def test_collections() -> None:
    assert loads("[1 2 [3]]") == [1, 2, [3]]
    assert loads("(1 :a)") == (1, Keyword("a"))
    assert loads("#{}") == frozenset()
    assert loads("{}") == {}


def test_strings_and_characters() -> None:
    assert loads(r'"line\nbreak \"quoted\" é"') == 'line\nbreak "quoted" é'
    assert loads(r"[\a \newline \space \A]") == ["a", "\n", " ", "A"]


def test_comments_commas_and_discard() -> None:
    text = """
    ; leading comment
    {:a 1, :b #_ ignored 2}
    """
    assert loads(text) == {Keyword("a"): 1, Keyword("b"): 2}


def test_tagged_literals() -> None:
    assert loads('#uuid "f81d4fae-7dec-11d0-a765-00a0c91e6bf6"') == uuid.UUID(
        "f81d4fae-7dec-11d0-a765-00a0c91e6bf6"
    )
    assert loads('#inst "1985-04-12T23:20:50Z"') == datetime(
        1985, 4, 12, 23, 20, 50, tzinfo=timezone.utc
    )


def test_blank_input_reads_as_none() -> None:
    assert loads("   ") is None


@pytest.mark.parametrize(
    "text",
    [
        "{:a 1",
        "[1 2))",
        '"unterminated',
        "{:a}",
        "1 2",
        "#{[1]}",
        "#unknown 1",
        "12abc",
    ],
)
def test_malformed_input_raises(text: str) -> None:
    with pytest.raises(EdnSyntaxError):
        loads(text)


def test_keyword_renders_with_colon() -> None:
    assert str(Keyword("foo")) == ":foo"
