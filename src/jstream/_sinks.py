"""Destinations for encoded chunks: open handles and filesystem paths."""

from __future__ import annotations

import io
import logging
import os
from collections.abc import Callable
from collections.abc import Iterable
from collections.abc import Iterator
from contextlib import closing
from typing import IO
from typing import Any
from typing import TypeAlias

from jstream._config import EncoderConfig
from jstream._errors import SinkError
from jstream._stream import Record
from jstream._stream import encode

logger = logging.getLogger(__name__)

PathLike: TypeAlias = str | os.PathLike[str]
Opener: TypeAlias = Callable[[str, int], int]

_WRITE_MODES = frozenset("wax")


class StreamSink:
    """
    Writes chunks to an already-open handle and counts the bytes written.

    Binary handles receive the chunks as-is, text handles receive them
    decoded as UTF-8. The handle belongs to the caller and is never closed
    here.
    """

    def __init__(self, handle: IO[Any]) -> None:
        if not hasattr(handle, "write"):
            raise TypeError("sink must have a write() method")
        self.handle = handle
        self.bytes_written = 0
        self._text = isinstance(handle, io.TextIOBase)

    def write(self, chunk: bytes) -> None:
        try:
            if self._text:
                self.handle.write(chunk.decode("utf-8"))
            else:
                self.handle.write(chunk)
        except (OSError, ValueError) as exc:
            msg = (
                f"Unable to write to sink after {self.bytes_written} "
                f"bytes: {exc}"
            )
            raise SinkError(msg) from exc
        self.bytes_written += len(chunk)

    def drain(self, chunks: Iterable[bytes]) -> int:
        """Writes every chunk in order and returns the bytes written."""
        for chunk in chunks:
            self.write(chunk)
        return self.bytes_written


def _binary_mode(mode: str) -> str:
    """Normalizes an open mode to its binary, writable form."""
    if not mode or len(set(mode) & _WRITE_MODES) != 1:
        raise SinkError(
            f"open mode must create, truncate or append, got {mode!r}"
        )
    if "r" in mode:
        raise SinkError(f"open mode must not be a read mode, got {mode!r}")
    return mode.replace("t", "").replace("b", "") + "b"


class PathSink(StreamSink):
    """
    Opens a path for writing and owns the resulting handle.

    ``mode`` follows ``open()``: ``"w"`` truncates, ``"a"`` appends and
    ``"x"`` fails when the file exists; a ``"b"`` is implied. ``opener`` is
    handed to ``open()`` for platform specific options. Use as a context
    manager so the handle is closed on every exit path.
    """

    def __init__(
        self,
        path: PathLike,
        mode: str = "w",
        opener: Opener | None = None,
    ) -> None:
        self.path = path
        self.mode = _binary_mode(mode)
        try:
            handle = open(path, self.mode, opener=opener)  # noqa: SIM115
        except OSError as exc:
            msg = f"Unable to open {os.fspath(path)!r}: {exc}"
            raise SinkError(msg) from exc
        super().__init__(handle)

    def close(self) -> None:
        self.handle.close()

    def __enter__(self) -> PathSink:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()


def _drain_stream(sink: StreamSink, chunks: Iterator[bytes]) -> int:
    # Closing the generator releases it when the sink fails mid-stream.
    with closing(chunks):  # type: ignore[type-var]
        return sink.drain(chunks)


def encode_to_sink(
    records: Iterable[Record], config: EncoderConfig, sink: IO[Any]
) -> int:
    """
    Encodes records into an open writable handle.

    Returns the number of bytes written. The handle is left open.
    """
    count = _drain_stream(StreamSink(sink), encode(records, config))
    logger.debug("Wrote %d bytes to sink", count)
    return count


def encode_to_path(
    records: Iterable[Record],
    config: EncoderConfig,
    path: PathLike,
    mode: str = "w",
    opener: Opener | None = None,
) -> int:
    """
    Encodes records into the file at ``path``.

    Returns the number of bytes written. The file is closed before this
    returns or raises; after a failure it holds a truncated document.
    """
    with PathSink(path, mode, opener) as sink:
        count = _drain_stream(sink, encode(records, config))
    logger.debug("Wrote %d bytes to %s", count, os.fspath(path))
    return count
