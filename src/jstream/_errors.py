"""Exception hierarchy for streaming JSON encoding."""

from __future__ import annotations

from typing import Any


class JSONStreamError(Exception):
    """Base class for every error raised by jstream."""


class ConfigurationError(JSONStreamError, ValueError):
    """
    Rejects invalid encoder settings at configuration time.

    Never raised while a stream is being produced.
    """


class JSONEncodeError(JSONStreamError, ValueError):
    """
    Reports a value that could not be rendered as JSON.

    Carries the location of the failing value inside its record as a
    JSONPath-like string and, once the stream encoder has seen it, the
    offset of the record being encoded.
    """

    def __init__(self, msg: str, path: str = "$", offset: Any = None) -> None:
        if not isinstance(msg, str):
            raise TypeError("msg must be a string")

        self.msg = msg
        self.path = path
        self.offset = offset
        super().__init__(self._format())

    def _format(self) -> str:
        if self.offset is None:
            return f"{self.msg} at {self.path}"
        return f"{self.msg} at {self.path} (record {self.offset!r})"

    def with_offset(self, offset: Any) -> JSONEncodeError:
        """Returns this error labelled with the offset of its record."""
        self.offset = offset
        self.args = (self._format(),)
        return self


class DepthExceededError(JSONEncodeError):
    """A value nests deeper than the configured depth allows."""


class UnencodableValueError(JSONEncodeError):
    """A value has no JSON representation."""


class SourceSequenceError(JSONStreamError):
    """
    Wraps a failure raised by the upstream record sequence.

    The original exception is chained as ``__cause__``.
    """

    def __init__(self, msg: str, records_emitted: int = 0) -> None:
        self.records_emitted = records_emitted
        super().__init__(msg)


class SinkError(JSONStreamError, OSError):
    """The output destination could not be opened or written."""
