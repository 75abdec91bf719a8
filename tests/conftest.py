"""
Pytest configuration and shared fixtures for jstream tests.

Provides immutable test case containers, record sources, and helpers for
collecting streamed output.
"""

from collections.abc import Callable
from collections.abc import Iterable
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any

import pytest

import jstream


@dataclass(frozen=True)
class EncodeCase:
    """
    Immutable container for a single value encoding case.

    Holds the input value, the flags to encode it with and the exact JSON
    text expected back.
    """

    description: str
    value: Any
    expected: str
    flags: int = jstream.EncodeFlag.THROW_ON_ERROR


class SourceFailure(RuntimeError):
    """Raised by failing record sources."""


def collect(chunks: Iterable[bytes]) -> bytes:
    """Joins streamed chunks into the complete document."""
    return b"".join(chunks)


def nest(levels: int, leaf: Any = 1) -> Any:
    """Wraps a leaf value in the given number of single-item lists."""
    value = leaf
    for _ in range(levels):
        value = [value]
    return value


@pytest.fixture
def records() -> list[dict[str, Any]]:
    """Provides a small, mixed-shape record collection."""
    return [
        {"id": 1, "name": "Alice", "tags": ["admin", "ops"]},
        {"id": 2, "name": "Bob", "tags": []},
        {"id": 3, "name": "Zoë", "manager": None, "active": True},
    ]


@pytest.fixture
def failing_source() -> Callable[[list[Any]], Iterator[Any]]:
    """
    Builds record generators that fail after yielding the given records.
    """

    def build(valid: list[Any]) -> Iterator[Any]:
        yield from valid
        raise SourceFailure("upstream reader crashed")

    return build


@pytest.fixture
def scalar_cases() -> list[EncodeCase]:
    """
    Provides scalar encoding cases under the default flags.
    """
    return [
        EncodeCase("null", None, "null"),
        EncodeCase("true", True, "true"),
        EncodeCase("false", False, "false"),
        EncodeCase("integer", 42, "42"),
        EncodeCase("negative integer", -17, "-17"),
        EncodeCase("big integer", 2**70, "1180591620717411303424"),
        EncodeCase("float", 3.14, "3.14"),
        EncodeCase("integral float", 10.0, "10"),
        EncodeCase("exponent float", 1e20, "1e+20"),
        EncodeCase("empty string", "", '""'),
        EncodeCase("simple string", "hello", '"hello"'),
        EncodeCase("quote and backslash", 'a"b\\c', '"a\\"b\\\\c"'),
        EncodeCase("controls", "\b\f\n\r\t", '"\\b\\f\\n\\r\\t"'),
        EncodeCase("other control", "\x01\x1f", '"\\u0001\\u001f"'),
        EncodeCase("slash", "a/b", '"a\\/b"'),
        EncodeCase("latin", "é", '"\\u00e9"'),
        EncodeCase("astral", "\U0001f600", '"\\ud83d\\ude00"'),
        EncodeCase("empty list", [], "[]"),
        EncodeCase("empty dict", {}, "{}"),
        EncodeCase("tuple", (1, "x"), '[1,"x"]'),
    ]
