"""
Memory usage benchmarks for JSON collection encoding.

Measures peak memory while encoding a record collection, comparing jstream
streaming into a sink against libraries that need the whole collection
materialized first.
"""

import json
import tracemalloc
from collections.abc import Callable
from typing import Any

import orjson
import pytest
import ujson  # type: ignore[import-untyped]

import jstream
from benchmarks.data_generators import RECORD_KINDS
from benchmarks.data_generators import generate_records

RECORD_COUNT = 2000


class CountingSink:
    """Discards written bytes, keeping only their count."""

    def __init__(self) -> None:
        self.size = 0

    def write(self, data: bytes) -> int:
        self.size += len(data)
        return len(data)


def measure_memory_usage(func: Callable[[], Any]) -> tuple[Any, int]:
    """
    Measures peak memory usage during function execution.

    Returns:
        Tuple of (function_result, peak_memory_bytes)
    """
    tracemalloc.start()
    try:
        result = func()
        current, peak = tracemalloc.get_traced_memory()
        return result, peak
    finally:
        tracemalloc.stop()


def _jstream(kind: str) -> int:
    return jstream.encode_to_sink(
        generate_records(kind, RECORD_COUNT),
        jstream.configure(),
        CountingSink(),
    )


def _stdlib(kind: str) -> int:
    return len(json.dumps(list(generate_records(kind, RECORD_COUNT))))


def _orjson(kind: str) -> int:
    return len(orjson.dumps(list(generate_records(kind, RECORD_COUNT))))


def _ujson(kind: str) -> int:
    return len(ujson.dumps(list(generate_records(kind, RECORD_COUNT))))


ENCODERS: dict[str, Callable[[str], int]] = {
    "jstream": _jstream,
    "stdlib_json": _stdlib,
    "orjson": _orjson,
    "ujson": _ujson,
}


class TestMemoryUsage:
    """Memory usage benchmarks for JSON collection encoding."""

    @pytest.mark.parametrize("kind", RECORD_KINDS)
    @pytest.mark.parametrize("library", list(ENCODERS))
    def test_encoder_memory(self, library: str, kind: str) -> None:
        """Measures peak memory for one library and record kind."""
        size, peak_memory = measure_memory_usage(
            lambda: ENCODERS[library](kind)
        )

        print(f"\n{library} {kind}: {peak_memory:,} bytes")
        assert size > 0

    def test_memory_comparison_summary(self) -> None:
        """Generates a memory usage comparison across libraries."""
        results: dict[str, dict[str, int]] = {}

        for kind in RECORD_KINDS:
            results[kind] = {}
            for library, func in ENCODERS.items():
                _, peak = measure_memory_usage(lambda f=func: f(kind))
                results[kind][library] = peak

        # Print comparison table
        print("\n" + "=" * 80)
        print("PEAK MEMORY COMPARISON (bytes)")
        print("=" * 80)
        header = "".join(f"{name:<14}" for name in ENCODERS)
        print(f"{'Record Kind':<18} {header}")
        print("-" * 80)

        for kind, measurements in results.items():
            row = "".join(f"{measurements[name]:<14,}" for name in ENCODERS)
            print(f"{kind:<18} {row}")

        print("=" * 80)

        # Streaming must stay well below any fully materialized encode
        for measurements in results.values():
            assert measurements["jstream"] < measurements["stdlib_json"]
