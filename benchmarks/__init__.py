"""
Benchmark suite for jstream encoding performance.

Compares streaming encoding against fully materialized encoding with:
- Python standard library json
- orjson (Rust-optimized)
- ujson (ultra-fast JSON)

Measures encoding speed and peak memory usage across record shapes.
"""
