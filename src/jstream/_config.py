"""Immutable encoder configuration and encoding flags."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from dataclasses import replace
from enum import IntFlag
from typing import Any
from typing import TypeAlias

from jstream._errors import ConfigurationError

Formatter: TypeAlias = Callable[[Any], Any]
DefaultHook: TypeAlias = Callable[[Any], Any]

DEFAULT_DEPTH = 512
DEFAULT_INDENT_SIZE = 4
DEFAULT_CHUNK_SIZE = 1


class EncodeFlag(IntFlag):
    """
    Named encoding options.

    Values match the bit layout of the classic ``json_encode`` option set so
    flag integers can be exchanged with other tooling. Bits without a name
    are kept as-is and ignored by the encoder.
    """

    HEX_TAG = 1
    HEX_AMP = 2
    HEX_APOS = 4
    HEX_QUOT = 8
    FORCE_OBJECT = 16
    NUMERIC_CHECK = 32
    UNESCAPED_SLASHES = 64
    PRETTY_PRINT = 128
    UNESCAPED_UNICODE = 256
    PARTIAL_OUTPUT_ON_ERROR = 512
    PRESERVE_ZERO_FRACTION = 1024
    UNESCAPED_LINE_TERMINATORS = 2048
    INVALID_UTF8_IGNORE = 1048576
    INVALID_UTF8_SUBSTITUTE = 2097152
    THROW_ON_ERROR = 4194304


def _check_positive(name: str, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        msg = f"{name} must be an integer, not {type(value).__name__}"
        raise ConfigurationError(msg)
    if value < 1:
        msg = f"{name} must be greater than or equal to 1, got {value}"
        raise ConfigurationError(msg)


def _check_flags(flags: Any) -> None:
    if isinstance(flags, bool) or not isinstance(flags, int):
        msg = f"flags must be an integer, not {type(flags).__name__}"
        raise ConfigurationError(msg)
    if flags < 0:
        msg = f"flags must be non-negative, got {flags}"
        raise ConfigurationError(msg)


@dataclass(frozen=True)
class EncoderConfig:
    """
    Configures streaming JSON encoding with immutable settings.

    Every ``with_*`` style method returns a new instance; an instance already
    handed to a stream encoder is never altered. Invalid settings raise
    ``ConfigurationError`` at construction time.
    """

    flags: EncodeFlag = EncodeFlag.THROW_ON_ERROR
    depth: int = DEFAULT_DEPTH
    preserve_offset: bool = False
    indent_size: int = DEFAULT_INDENT_SIZE
    chunk_size: int = DEFAULT_CHUNK_SIZE
    formatter: Formatter | None = None
    default: DefaultHook | None = None

    def __post_init__(self) -> None:
        _check_flags(self.flags)
        _check_positive("depth", self.depth)
        _check_positive("indent_size", self.indent_size)
        _check_positive("chunk_size", self.chunk_size)
        if not isinstance(self.preserve_offset, bool):
            raise ConfigurationError("preserve_offset must be a boolean")
        if self.formatter is not None and not callable(self.formatter):
            raise ConfigurationError("formatter must be callable or None")
        if self.default is not None and not callable(self.default):
            raise ConfigurationError("default must be callable or None")

        # Plain integers are normalized so flag membership tests work.
        object.__setattr__(self, "flags", EncodeFlag(self.flags))

    @property
    def partial_output(self) -> bool:
        return EncodeFlag.PARTIAL_OUTPUT_ON_ERROR in self.flags

    @property
    def pretty_print(self) -> bool:
        return EncodeFlag.PRETTY_PRINT in self.flags

    def with_flags(self, flags: int) -> EncoderConfig:
        """Replaces the whole flag set."""
        return replace(self, flags=flags)

    def add_flags(self, flags: int) -> EncoderConfig:
        _check_flags(flags)
        return replace(self, flags=int(self.flags) | int(flags))

    def remove_flags(self, flags: int) -> EncoderConfig:
        _check_flags(flags)
        return replace(self, flags=int(self.flags) & ~int(flags))

    def with_depth(self, depth: int) -> EncoderConfig:
        """Replaces the maximum nesting depth of a single record."""
        return replace(self, depth=depth)

    def including_offset(self) -> EncoderConfig:
        """Emits a JSON object keyed by record offsets."""
        return replace(self, preserve_offset=True)

    def excluding_offset(self) -> EncoderConfig:
        """Emits a JSON array, discarding record offsets."""
        return replace(self, preserve_offset=False)

    def with_pretty_print(
        self, indent_size: int | None = None
    ) -> EncoderConfig:
        config = self.add_flags(EncodeFlag.PRETTY_PRINT)
        if indent_size is None:
            return config
        return config.with_indent_size(indent_size)

    def without_pretty_print(self) -> EncoderConfig:
        return self.remove_flags(EncodeFlag.PRETTY_PRINT)

    def with_indent_size(self, indent_size: int) -> EncoderConfig:
        return replace(self, indent_size=indent_size)

    def with_chunk_size(self, chunk_size: int) -> EncoderConfig:
        """Sets how many records are grouped into one emitted chunk."""
        return replace(self, chunk_size=chunk_size)

    def with_formatter(self, formatter: Formatter | None) -> EncoderConfig:
        """Sets a callable that maps each record before it is encoded."""
        return replace(self, formatter=formatter)

    def with_default(self, default: DefaultHook | None) -> EncoderConfig:
        """Sets a fallback converter for values with no JSON form."""
        return replace(self, default=default)


def configure() -> EncoderConfig:
    """
    Returns the default configuration.

    Encoding errors abort the run, nesting is capped at 512 levels and
    records are emitted as a JSON array.
    """
    return EncoderConfig()
