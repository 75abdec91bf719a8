"""Single-pass state machine turning a lazy record sequence into JSON chunks."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from collections.abc import Iterator
from enum import Enum
from typing import Any
from typing import TypeAlias

from jstream._config import EncoderConfig
from jstream._encoder import ValueEncoder
from jstream._errors import JSONEncodeError
from jstream._errors import SourceSequenceError
from jstream._profile import ProfileContext

logger = logging.getLogger(__name__)

Offset: TypeAlias = Any
Record: TypeAlias = Any

_EXHAUSTED = object()


class StreamState(Enum):
    """
    States of a stream encoder run.

    A run moves ``START -> OPENED -> (EMITTING <-> SEPARATING)* -> CLOSED ->
    DONE``; ``ERRORED`` is reachable from any state before ``DONE``.
    """

    START = "start"
    OPENED = "opened"
    EMITTING = "emitting"
    SEPARATING = "separating"
    CLOSED = "closed"
    DONE = "done"
    ERRORED = "errored"


class KeyedRecords:
    """
    Lazy source of records labelled with explicit offsets.

    Wraps an iterable of ``(offset, record)`` pairs so the stream encoder
    uses the supplied offsets instead of positional indexes.
    """

    def __init__(self, pairs: Iterable[tuple[Offset, Record]]) -> None:
        self._pairs = pairs

    def items(self) -> Iterator[tuple[Offset, Record]]:
        return iter(self._pairs)


def keyed(pairs: Iterable[tuple[Offset, Record]]) -> KeyedRecords:
    """Labels each record of a lazy source with its own offset."""
    return KeyedRecords(pairs)


def _iter_offsets(records: Any) -> Iterator[tuple[Offset, Record]]:
    """Pairs records with offsets: supplied keys when present, else indexes."""
    items = getattr(records, "items", None)
    if callable(items):
        return iter(items())
    return enumerate(records)


class StreamEncoder:
    """
    Encodes a lazy sequence of records as one JSON array or object.

    Records are pulled one at a time and rendered to byte chunks as the
    consumer asks for them; nothing is read ahead. With ``preserve_offset``
    the document is an object keyed by record offsets, otherwise an array.
    A run is single-pass: ``chunks`` may only be called once.

    When a record cannot be encoded or the source fails, the run stops and
    the error propagates. Chunks already produced stay produced, so the
    output is a truncated document.
    """

    def __init__(self, records: Iterable[Record], config: EncoderConfig):
        self.records = records
        self.config = config
        self.state = StreamState.START
        self.records_emitted = 0
        self.bytes_emitted = 0
        self._started = False
        self._encoder = ValueEncoder(
            config.flags,
            indent_size=config.indent_size,
            default=config.default,
        )

    def __iter__(self) -> Iterator[bytes]:
        return self.chunks()

    def chunks(self) -> Iterator[bytes]:
        """Returns the single-pass iterator of encoded chunks."""
        if self._started:
            raise RuntimeError("a stream encoder can only be consumed once")
        self._started = True
        return self._run()

    def _emit(self, text: str) -> bytes:
        with ProfileContext("emit_chunk") as profile:
            chunk = text.encode("utf-8")
            self.bytes_emitted += len(chunk)
            profile.produced(len(chunk))
        return chunk

    def _pull(self, source: Iterator[tuple[Offset, Record]]) -> Any:
        try:
            item = next(source, _EXHAUSTED)
            if item is _EXHAUSTED:
                return item
            offset, record = item
            return offset, record
        except Exception as exc:
            msg = (
                f"Record source failed after {self.records_emitted} "
                f"records: {exc}"
            )
            raise SourceSequenceError(msg, self.records_emitted) from exc

    def _open_source(self) -> Iterator[tuple[Offset, Record]]:
        try:
            return _iter_offsets(self.records)
        except Exception as exc:
            msg = f"Record source could not be iterated: {exc}"
            raise SourceSequenceError(msg) from exc

    def _encode_record(self, offset: Offset, record: Record) -> str:
        config = self.config
        parts = []
        if self.records_emitted:
            self.state = StreamState.SEPARATING
            parts.append(",")
        self.state = StreamState.EMITTING
        if config.pretty_print:
            parts.append("\n" + " " * config.indent_size)

        try:
            if config.preserve_offset:
                colon = ": " if config.pretty_print else ":"
                key = self._encoder.encode_key(offset, config.depth)
                parts.append(key + colon)
            if config.formatter is not None:
                record = config.formatter(record)
            parts.append(
                self._encoder.encode(
                    record, config.depth, 1 if config.pretty_print else 0
                )
            )
        except JSONEncodeError as exc:
            raise exc.with_offset(offset)

        self.records_emitted += 1
        return "".join(parts)

    def _run(self) -> Iterator[bytes]:
        config = self.config
        opener, closer = ("{", "}") if config.preserve_offset else ("[", "]")
        pending: list[str] = []

        logger.debug(
            "Starting stream encode (preserve_offset=%s, depth=%d, "
            "chunk_size=%d)",
            config.preserve_offset,
            config.depth,
            config.chunk_size,
        )
        try:
            source = self._open_source()
            self.state = StreamState.OPENED
            yield self._emit(opener)

            while (item := self._pull(source)) is not _EXHAUSTED:
                offset, record = item
                pending.append(self._encode_record(offset, record))
                if len(pending) >= config.chunk_size:
                    chunk = self._emit("".join(pending))
                    pending.clear()
                    yield chunk

            if pending:
                chunk = self._emit("".join(pending))
                pending.clear()
                yield chunk

            self.state = StreamState.CLOSED
            if config.pretty_print and self.records_emitted:
                closer = "\n" + closer
            yield self._emit(closer)
        except GeneratorExit:
            logger.debug(
                "Stream encode abandoned by consumer after %d records",
                self.records_emitted,
            )
            raise
        except Exception as exc:
            self.state = StreamState.ERRORED
            logger.warning(
                "Stream encode aborted after %d records (%d bytes emitted): "
                "%s",
                self.records_emitted,
                self.bytes_emitted,
                exc,
            )
            # Records completed before the failure still reach the consumer.
            if pending:
                chunk = self._emit("".join(pending))
                pending.clear()
                yield chunk
            raise exc

        self.state = StreamState.DONE
        logger.debug(
            "Finished stream encode: %d records, %d bytes",
            self.records_emitted,
            self.bytes_emitted,
        )


def encode(
    records: Iterable[Record], config: EncoderConfig
) -> Iterator[bytes]:
    """
    Encodes records lazily as a JSON document.

    Returns a single-pass iterator of byte chunks; concatenated in order they
    form the complete document. No record is read before the chunk that
    needs it is requested.
    """
    return StreamEncoder(records, config).chunks()
