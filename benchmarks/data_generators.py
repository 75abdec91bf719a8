"""
Record generators for JSON encoding benchmarks.

Produces lazy record sequences of different shapes:
- Small flat records
- Wide records with many fields and embedded lists
- Nested records
- String-heavy records with characters that need escaping
"""

import random
import string
from collections.abc import Callable
from collections.abc import Iterator
from typing import Any

_ESCAPE_PROBABILITY = 0.3

RECORD_KINDS = [
    "small_records",
    "wide_records",
    "nested_records",
    "string_heavy",
]


def generate_records(kind: str, count: int, seed: int = 0) -> Iterator[Any]:
    """Lazily generates ``count`` records of the given kind."""
    generators: dict[str, Callable[[random.Random, int], Any]] = {
        "small_records": _small_record,
        "wide_records": _wide_record,
        "nested_records": _nested_record,
        "string_heavy": _string_heavy_record,
    }

    if kind not in generators:
        raise ValueError(f"Unknown record kind: {kind}")

    rng = random.Random(seed)
    build = generators[kind]
    for index in range(count):
        yield build(rng, index)


def _small_record(rng: random.Random, index: int) -> dict[str, Any]:
    """A CSV-row sized record with a handful of scalar fields."""
    return {
        "id": index,
        "name": _random_string(rng, 12),
        "email": f"{_random_string(rng, 8)}@example.com",
        "active": rng.choice([True, False]),
        "balance": round(rng.uniform(0, 10000), 2),
        "manager": None,
    }


def _wide_record(rng: random.Random, index: int) -> dict[str, Any]:
    """A record with many fields and a short transaction history."""
    record: dict[str, Any] = {
        f"field_{i:02d}": _random_string(rng, 10) for i in range(40)
    }
    record["id"] = index
    record["transactions"] = [
        {
            "id": f"txn_{index:06d}_{i}",
            "amount": round(rng.uniform(1.0, 1000.0), 2),
            "currency": rng.choice(["USD", "EUR", "GBP", "JPY"]),
            "status": rng.choice(["completed", "pending", "failed"]),
        }
        for i in range(10)
    ]
    return record


def _nested_record(rng: random.Random, index: int) -> dict[str, Any]:
    """A record nested a few levels deep."""

    def create_nested_dict(depth: int) -> dict[str, Any]:
        if depth <= 0:
            return {"value": _random_string(rng, 10)}

        return {
            "level": depth,
            "data": _random_string(rng, 15),
            "items": [create_nested_dict(depth - 1) for _ in range(2)],
        }

    return {"id": index, "tree": create_nested_dict(4)}


def _string_heavy_record(rng: random.Random, index: int) -> dict[str, Any]:
    """A record whose strings need escaping."""

    def create_escaped_string() -> str:
        chars = []
        for _ in range(50):
            if rng.random() < _ESCAPE_PROBABILITY:
                chars.append(
                    rng.choice(['"', "\\", "/", "\b", "\f", "\n", "\r", "\t"])
                )
            else:
                chars.append(
                    rng.choice(string.ascii_letters + string.digits + " ")
                )
        return "".join(chars)

    return {
        "id": index,
        "strings": [create_escaped_string() for _ in range(5)],
        "unicode": "Zoë – naïve café ☕",
        "path": f"C:\\Users\\{_random_string(rng, 8)}\\file_{index}.txt",
    }


def _random_string(rng: random.Random, length: int) -> str:
    """Generates a random string of specified length."""
    return "".join(rng.choices(string.ascii_letters, k=length))
