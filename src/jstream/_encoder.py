"""Renders single values as JSON text under a set of encoding flags."""

from __future__ import annotations

import decimal
import logging
import math
import re
from collections.abc import Iterable
from collections.abc import Iterator
from collections.abc import Mapping
from collections.abc import Sequence
from dataclasses import dataclass
from dataclasses import field
from typing import Any
from typing import TypeAlias

from jstream._config import DEFAULT_DEPTH
from jstream._config import DEFAULT_INDENT_SIZE
from jstream._config import DefaultHook
from jstream._config import EncodeFlag
from jstream._errors import DepthExceededError
from jstream._errors import JSONEncodeError
from jstream._errors import UnencodableValueError
from jstream._profile import ProfileContext

logger = logging.getLogger(__name__)

PathKey: TypeAlias = str | int

BMP_LIMIT = 0xFFFF

_BASE_ESCAPES: dict[str, str] = {
    '"': '\\"',
    "\\": "\\\\",
    "\b": "\\b",
    "\f": "\\f",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
}

_LONE_SURROGATE = re.compile("[\ud800-\udfff]")
_NUMERIC_STRING = re.compile(
    r"\s*[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?\s*"
)
_IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")

# Flags that only make sense for values, never for offset keys
_KEY_IGNORED_FLAGS = (
    EncodeFlag.PRETTY_PRINT
    | EncodeFlag.NUMERIC_CHECK
    | EncodeFlag.FORCE_OBJECT
    | EncodeFlag.PARTIAL_OUTPUT_ON_ERROR
)


def _unicode_escape(code: int) -> str:
    """Escapes a code point, using a surrogate pair above the BMP."""
    if code > BMP_LIMIT:
        code -= 0x10000
        high = 0xD800 + (code >> 10)
        low = 0xDC00 + (code & 0x3FF)
        return f"\\u{high:04x}\\u{low:04x}"
    return f"\\u{code:04x}"


def _build_escapes(flags: EncodeFlag) -> dict[str, str]:
    escapes = dict(_BASE_ESCAPES)
    if EncodeFlag.UNESCAPED_SLASHES not in flags:
        escapes["/"] = "\\/"
    if EncodeFlag.HEX_TAG in flags:
        escapes["<"] = "\\u003C"
        escapes[">"] = "\\u003E"
    if EncodeFlag.HEX_AMP in flags:
        escapes["&"] = "\\u0026"
    if EncodeFlag.HEX_APOS in flags:
        escapes["'"] = "\\u0027"
    if EncodeFlag.HEX_QUOT in flags:
        escapes['"'] = "\\u0022"
    if (
        EncodeFlag.UNESCAPED_UNICODE in flags
        and EncodeFlag.UNESCAPED_LINE_TERMINATORS not in flags
    ):
        escapes["\u2028"] = "\\u2028"
        escapes["\u2029"] = "\\u2029"
    return escapes


def _build_escape_pattern(
    escapes: dict[str, str], escape_unicode: bool
) -> re.Pattern[str]:
    specials = "".join(re.escape(char) for char in escapes)
    ranges = "\\x00-\\x1f"
    if escape_unicode:
        ranges += "\\x80-\\U0010ffff"
    return re.compile(f"[{specials}{ranges}]")


@dataclass
class _Container:
    """A mapping or sequence whose members are still being encoded."""

    members: Iterator[tuple[Any, Any]]
    sequence: bool
    remaining_depth: int
    level: int
    markers: list[int]
    key: PathKey = 0
    label: str = ""
    items: list[str] = field(default_factory=list)


class ValueEncoder:
    """
    Encodes one value to a JSON fragment.

    Strings, numbers, booleans, ``None``, mappings and sequences map to their
    JSON forms. Each container consumes one unit of the depth budget handed
    to ``encode``. Failures raise ``DepthExceededError`` or
    ``UnencodableValueError``; with ``PARTIAL_OUTPUT_ON_ERROR`` the failing
    value is rendered as ``null`` instead.

    Instances keep per-call traversal state and must not be shared between
    concurrent encodes.
    """

    def __init__(
        self,
        flags: int = EncodeFlag.THROW_ON_ERROR,
        indent_size: int = DEFAULT_INDENT_SIZE,
        default: DefaultHook | None = None,
    ) -> None:
        self.flags = EncodeFlag(flags)
        self.indent_size = indent_size
        self.default = default

        self._partial = EncodeFlag.PARTIAL_OUTPUT_ON_ERROR in self.flags
        self._pretty = EncodeFlag.PRETTY_PRINT in self.flags
        self._force_object = EncodeFlag.FORCE_OBJECT in self.flags
        self._numeric_check = EncodeFlag.NUMERIC_CHECK in self.flags
        self._zero_fraction = EncodeFlag.PRESERVE_ZERO_FRACTION in self.flags
        self._utf8_ignore = EncodeFlag.INVALID_UTF8_IGNORE in self.flags
        self._utf8_substitute = (
            EncodeFlag.INVALID_UTF8_SUBSTITUTE in self.flags
        )
        self._escapes = _build_escapes(self.flags)
        self._escape_pattern = _build_escape_pattern(
            self._escapes, EncodeFlag.UNESCAPED_UNICODE not in self.flags
        )
        self._key_encoder: ValueEncoder | None = None

        self._path: list[PathKey] = []
        self._markers: set[int] = set()

    def encode(self, value: Any, remaining_depth: int, level: int = 0) -> str:
        """
        Encodes a value with the given nesting budget.

        ``level`` is the indentation level the fragment starts at, used only
        when pretty printing.
        """
        self._path = []
        self._markers = set()
        with ProfileContext("encode_value") as profile:
            try:
                fragment = self._encode(value, remaining_depth, level)
            except JSONEncodeError as exc:
                if not self._partial:
                    raise
                fragment = self._substitute(exc)
            profile.produced(len(fragment))
        return fragment

    def encode_key(
        self, offset: Any, remaining_depth: int = DEFAULT_DEPTH
    ) -> str:
        """
        Renders a record offset as a quoted JSON object key.

        Text offsets are used verbatim, anything else is keyed by its compact
        JSON representation, encoded with the same depth budget as values.
        """
        self._path = []
        if isinstance(offset, str | bytes | bytearray):
            return self._quote(offset)
        if self._key_encoder is None:
            self._key_encoder = ValueEncoder(
                int(self.flags) & ~int(_KEY_IGNORED_FLAGS),
                default=self.default,
            )
        return self._quote(self._key_encoder.encode(offset, remaining_depth))

    def _substitute(self, exc: JSONEncodeError) -> str:
        logger.debug("Substituting null for unencodable value: %s", exc)
        return "null"

    def _render_path(self) -> str:
        parts = ["$"]
        for key in self._path:
            if isinstance(key, int):
                parts.append(f"[{key}]")
            elif _IDENTIFIER.fullmatch(key):
                parts.append(f".{key}")
            else:
                parts.append(f"[{key!r}]")
        return "".join(parts)

    def _clean_text(self, value: str | bytes | bytearray) -> str:
        """Returns valid Unicode text or fails per the invalid-UTF-8 flags."""
        if isinstance(value, bytes | bytearray):
            try:
                return bytes(value).decode("utf-8")
            except UnicodeDecodeError:
                if self._utf8_ignore:
                    return bytes(value).decode("utf-8", "ignore")
                if self._utf8_substitute:
                    return bytes(value).decode("utf-8", "replace")
                raise UnencodableValueError(
                    "Malformed UTF-8 characters, possibly incorrectly encoded",
                    self._render_path(),
                ) from None

        if value.isascii() or not _LONE_SURROGATE.search(value):
            return value
        if self._utf8_ignore:
            return _LONE_SURROGATE.sub("", value)
        if self._utf8_substitute:
            return _LONE_SURROGATE.sub("\ufffd", value)
        raise UnencodableValueError(
            "Lone surrogates have no UTF-8 encoding", self._render_path()
        )

    def _escape(self, match: re.Match[str]) -> str:
        char = match.group()
        escaped = self._escapes.get(char)
        if escaped is not None:
            return escaped
        return _unicode_escape(ord(char))

    def _quote(self, value: str | bytes | bytearray) -> str:
        text = self._clean_text(value)
        return '"' + self._escape_pattern.sub(self._escape, text) + '"'

    def _encode_float(self, value: float) -> str:
        if not math.isfinite(value):
            raise UnencodableValueError(
                "Inf and NaN cannot be JSON encoded", self._render_path()
            )
        text = float.__repr__(value)
        if not self._zero_fraction and text.endswith(".0"):
            return text[:-2]
        return text

    def _encode_numeric_string(self, value: str) -> str | None:
        """Renders a number-like string as a JSON number."""
        if not _NUMERIC_STRING.fullmatch(value):
            return None
        text = value.strip()
        if any(char in text for char in ".eE"):
            return self._encode_float(float(text))
        return self._encode_int(text)

    def _encode_int(self, value: int | str) -> str:
        """Renders an integer, or an integer literal, as a JSON number."""
        try:
            return int.__repr__(int(value))
        except ValueError:
            msg = "Integer has too many digits to be JSON encoded"
            raise UnencodableValueError(msg, self._render_path()) from None

    def _encode_key(self, key: Any) -> str:
        """Coerces a mapping key to text, as the stdlib json module does."""
        if isinstance(key, str):
            return key
        if key is True:
            return "true"
        if key is False:
            return "false"
        if key is None:
            return "null"
        if isinstance(key, int):
            return self._encode_int(key)
        if isinstance(key, float):
            if not math.isfinite(key):
                raise UnencodableValueError(
                    "Inf and NaN cannot be JSON encoded", self._render_path()
                )
            return float.__repr__(key)
        msg = (
            "keys must be str, int, float, bool or None, "
            f"not {type(key).__name__}"
        )
        raise UnencodableValueError(msg, self._render_path())

    def _mark(self, value: Any) -> int:
        marker = id(value)
        if marker in self._markers:
            raise UnencodableValueError(
                "Circular reference detected", self._render_path()
            )
        self._markers.add(marker)
        return marker

    def _release(self, markers: list[int]) -> None:
        for marker in markers:
            self._markers.discard(marker)

    def _enter(
        self,
        value: Any,
        members: Iterable[tuple[Any, Any]],
        sequence: bool,
        remaining_depth: int,
        level: int,
        converted: list[int],
    ) -> _Container:
        if remaining_depth < 1:
            raise DepthExceededError(
                "Maximum stack depth exceeded", self._render_path()
            )
        markers = [*converted, self._mark(value)]
        return _Container(
            iter(members), sequence, remaining_depth, level, markers
        )

    def _wrap(
        self, opener: str, closer: str, items: list[str], level: int
    ) -> str:
        if not items:
            return opener + closer
        if not self._pretty:
            return opener + ",".join(items) + closer
        inner = "\n" + " " * (self.indent_size * (level + 1))
        outer = "\n" + " " * (self.indent_size * level)
        return opener + inner + ("," + inner).join(items) + outer + closer

    def _close(self, container: _Container) -> str:
        self._release(container.markers)
        if container.sequence and not self._force_object:
            return self._wrap("[", "]", container.items, container.level)
        return self._wrap("{", "}", container.items, container.level)

    def _add(self, container: _Container, fragment: str) -> None:
        container.items.append(container.label + fragment)

    def _encode_scalar(self, value: Any) -> str | None:  # noqa: PLR0911
        """Encodes a non-container value; returns None for anything else."""
        if value is None:
            return "null"
        elif value is True:
            return "true"
        elif value is False:
            return "false"
        elif isinstance(value, str):
            if self._numeric_check:
                number = self._encode_numeric_string(value)
                if number is not None:
                    return number
            return self._quote(value)
        elif isinstance(value, int):
            return self._encode_int(value)
        elif isinstance(value, float):
            return self._encode_float(value)
        elif isinstance(value, decimal.Decimal):
            if not value.is_finite():
                raise UnencodableValueError(
                    "Inf and NaN cannot be JSON encoded", self._render_path()
                )
            return str(value)
        elif isinstance(value, bytes | bytearray):
            return self._quote(value)
        return None

    def _open(
        self, value: Any, remaining_depth: int, level: int
    ) -> str | _Container:
        """
        Encodes a scalar outright or starts encoding a container.

        Unsupported values go through the default hook until they reach a
        JSON type. Each converted object stays marked until its replacement
        is fully encoded, so a hook cannot loop back to it.
        """
        converted: list[int] = []
        try:
            while True:
                fragment = self._encode_scalar(value)
                if fragment is not None:
                    self._release(converted)
                    return fragment
                if isinstance(value, Mapping):
                    return self._enter(
                        value,
                        value.items(),
                        False,
                        remaining_depth,
                        level,
                        converted,
                    )
                if isinstance(value, Sequence):
                    return self._enter(
                        value,
                        enumerate(value),
                        True,
                        remaining_depth,
                        level,
                        converted,
                    )
                if self.default is None:
                    msg = f"Type is not supported: {type(value).__name__}"
                    raise UnencodableValueError(msg, self._render_path())
                converted.append(self._mark(value))
                value = self.default(value)
        except Exception:
            self._release(converted)
            raise

    def _descend(
        self, container: _Container, member: tuple[Any, Any]
    ) -> _Container | None:
        """Encodes the next member, returning it if it is a container."""
        key, child = member
        container.key = key if container.sequence else self._encode_key(key)
        if not container.sequence or self._force_object:
            colon = ": " if self._pretty else ":"
            container.label = self._quote(str(container.key)) + colon
        self._path.append(container.key)
        try:
            opened = self._open(
                child, container.remaining_depth - 1, container.level + 1
            )
        except JSONEncodeError as exc:
            if not self._partial:
                raise
            opened = self._substitute(exc)
        if isinstance(opened, _Container):
            return opened
        self._path.pop()
        self._add(container, opened)
        return None

    def _encode(self, value: Any, remaining_depth: int, level: int) -> str:
        """
        Encode any JSON-serializable value.

        Nested containers are walked with an explicit stack, so nesting is
        bounded by the depth budget alone. ``self._path`` holds one key per
        open container below the root.
        """
        opened = self._open(value, remaining_depth, level)
        if isinstance(opened, str):
            return opened

        stack = [opened]
        while True:
            container = stack[-1]
            member = next(container.members, None)
            if member is None:
                fragment = self._close(container)
            else:
                try:
                    child = self._descend(container, member)
                except JSONEncodeError as exc:
                    # With partial output only a bad key fails the container
                    self._release(container.markers)
                    if len(stack) == 1 or not self._partial:
                        raise
                    fragment = self._substitute(exc)
                else:
                    if child is not None:
                        stack.append(child)
                    continue

            stack.pop()
            if not stack:
                return fragment
            self._path.pop()
            self._add(stack[-1], fragment)
