"""Typed value kinds used by the daemon schema registry.

Purpose
-------
Parse operator supplied strings into typed leaves and format them back into the
canonical on-disk form. Every daemon key is declared with exactly one of the
kinds defined here.

Contents
--------
* :class:`ValueKind` – enumeration of the supported kinds.
* :class:`Duration` – absolute nanosecond count with human parsing/formatting.
* :func:`parse_duration` / :func:`format_duration` – the underlying codecs.
* :func:`parse_bool` / :func:`parse_string_list` / :func:`parse_bounded_string`.
* :func:`parse_value` / :func:`format_value` – dispatch on :class:`ValueKind`.

System Role
-----------
Pure functions without I/O; consumed by :mod:`mcpd_config.domain.schema` and the
document codec. Parsing failures raise :class:`InvalidValue`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Final

from .errors import InvalidValue

NANOSECOND: Final[int] = 1
MICROSECOND: Final[int] = 1_000 * NANOSECOND
MILLISECOND: Final[int] = 1_000 * MICROSECOND
SECOND: Final[int] = 1_000 * MILLISECOND
MINUTE: Final[int] = 60 * SECOND
HOUR: Final[int] = 60 * MINUTE

_UNITS: Final[dict[str, int]] = {
    "ns": NANOSECOND,
    "us": MICROSECOND,
    "µs": MICROSECOND,
    "μs": MICROSECOND,
    "ms": MILLISECOND,
    "s": SECOND,
    "m": MINUTE,
    "h": HOUR,
}

# Largest unit first so formatting picks the shortest exact rendering.
_FORMAT_UNITS: Final[tuple[tuple[str, int], ...]] = (
    ("h", HOUR),
    ("m", MINUTE),
    ("s", SECOND),
    ("ms", MILLISECOND),
    ("µs", MICROSECOND),
    ("ns", NANOSECOND),
)

_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)")

MAX_STRING_LENGTH: Final[int] = 4096


class ValueKind(str, Enum):
    """Closed set of leaf types a daemon key may carry."""

    STRING = "string"
    BOOL = "bool"
    DURATION = "duration"
    STRING_LIST = "[]string"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, order=True)
class Duration:
    """Absolute span of time measured in nanoseconds.

    Examples
    --------
    >>> Duration.parse("1m30s").nanoseconds
    90000000000
    >>> str(Duration.parse("90s"))
    '90s'
    >>> str(Duration.parse("1h"))
    '1h'
    """

    nanoseconds: int

    @classmethod
    def parse(cls, text: str) -> "Duration":
        return cls(parse_duration(text))

    @property
    def positive(self) -> bool:
        return self.nanoseconds > 0

    def __str__(self) -> str:
        return format_duration(self.nanoseconds)


def parse_duration(text: str) -> int:
    """Parse a human duration such as ``30s``, ``1h`` or ``1m30s`` into nanoseconds.

    Why
    ----
    Operators write durations the way the daemon reports them; storing the
    absolute count keeps comparisons and validation trivial.

    Parameters
    ----------
    text:
        Sequence of ``<number><unit>`` pairs, optionally signed. Units are
        ``ns``, ``us`` (``µs``), ``ms``, ``s``, ``m`` and ``h``. A bare ``0`` is
        accepted.

    Returns
    -------
    int
        Signed nanosecond count.

    Examples
    --------
    >>> parse_duration("500ms")
    500000000
    >>> parse_duration("1.5h") == 90 * MINUTE
    True
    >>> parse_duration("0")
    0
    >>> parse_duration("soon")
    Traceback (most recent call last):
    ...
    mcpd_config.domain.errors.InvalidValue: invalid duration "soon"
    """

    raw = text.strip()
    if not raw:
        raise InvalidValue("invalid duration \"\"", value=text)
    sign = 1
    body = raw
    if body[0] in "+-":
        sign = -1 if body[0] == "-" else 1
        body = body[1:]
    if body == "0":
        return 0
    if not body:
        raise InvalidValue(f"invalid duration \"{raw}\"", value=text)
    total = 0
    position = 0
    for match in _DURATION_PART.finditer(body):
        if match.start() != position:
            break
        total += _scale(match.group(1), _UNITS[match.group(2)])
        position = match.end()
    if position != len(body):
        raise InvalidValue(f"invalid duration \"{raw}\"", value=text)
    return sign * total


def _scale(number: str, unit: int) -> int:
    whole, _, fraction = number.partition(".")
    value = int(whole or "0") * unit
    if fraction:
        value += int(fraction) * unit // (10 ** len(fraction))
    return value


def format_duration(nanoseconds: int) -> str:
    """Render *nanoseconds* using the largest unit that divides it exactly.

    Examples
    --------
    >>> format_duration(30 * SECOND)
    '30s'
    >>> format_duration(90 * SECOND)
    '90s'
    >>> format_duration(2 * HOUR)
    '2h'
    >>> format_duration(1500 * MICROSECOND)
    '1500µs'
    >>> format_duration(0)
    '0s'
    """

    if nanoseconds == 0:
        return "0s"
    sign = "-" if nanoseconds < 0 else ""
    magnitude = abs(nanoseconds)
    for suffix, unit in _FORMAT_UNITS:
        if magnitude % unit == 0:
            return f"{sign}{magnitude // unit}{suffix}"
    return f"{sign}{magnitude}ns"  # pragma: no cover - ns always divides


def parse_bool(text: str) -> bool:
    """Parse ``true``/``false`` case-insensitively.

    Examples
    --------
    >>> parse_bool("TRUE")
    True
    >>> parse_bool(" false ")
    False
    """

    lowered = text.strip().lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    raise InvalidValue(f"invalid boolean \"{text.strip()}\" (expected true or false)", value=text)


def parse_string_list(text: str) -> tuple[str, ...]:
    """Split a comma-separated string, trimming items and dropping empties.

    Examples
    --------
    >>> parse_string_list(" GET, POST,,PUT ")
    ('GET', 'POST', 'PUT')
    >>> parse_string_list("")
    ()
    """

    return tuple(item.strip() for item in text.split(",") if item.strip())


def parse_bounded_string(text: str, *, max_length: int = MAX_STRING_LENGTH) -> str:
    """Trim *text* and enforce a non-empty value no longer than *max_length*."""

    value = text.strip()
    if not value:
        raise InvalidValue("value cannot be empty", value=text)
    if len(value) > max_length:
        raise InvalidValue(f"value exceeds maximum length of {max_length} characters", value=text)
    return value


def parse_value(kind: ValueKind, text: str) -> object:
    """Parse *text* according to *kind*; an empty string means "clear" and yields ``None``.

    Examples
    --------
    >>> parse_value(ValueKind.DURATION, "30s")
    Duration(nanoseconds=30000000000)
    >>> parse_value(ValueKind.BOOL, "") is None
    True
    >>> parse_value(ValueKind.STRING_LIST, "a,b")
    ('a', 'b')
    """

    if not text.strip():
        return None
    if kind is ValueKind.STRING:
        return parse_bounded_string(text)
    if kind is ValueKind.BOOL:
        return parse_bool(text)
    if kind is ValueKind.DURATION:
        return Duration.parse(text)
    parsed = parse_string_list(text)
    return parsed or None


def format_value(kind: ValueKind, value: object) -> object:
    """Return the TOML-friendly representation of a typed leaf."""

    if value is None:
        return None
    if kind is ValueKind.DURATION:
        return str(value)
    if kind is ValueKind.STRING_LIST:
        return list(value)  # type: ignore[call-overload]
    return value


def coerce_stored(kind: ValueKind, raw: object) -> object:
    """Convert a value read from disk into its typed form.

    Durations arrive as strings (or bare integers interpreted as nanoseconds),
    lists as TOML arrays. Mismatched types raise :class:`InvalidValue`.
    """

    if raw is None:
        return None
    if kind is ValueKind.STRING:
        if not isinstance(raw, str):
            raise InvalidValue(f"expected string, got {type(raw).__name__}", value=raw)
        return raw
    if kind is ValueKind.BOOL:
        if not isinstance(raw, bool):
            raise InvalidValue(f"expected boolean, got {type(raw).__name__}", value=raw)
        return raw
    if kind is ValueKind.DURATION:
        if isinstance(raw, bool):
            raise InvalidValue("expected duration, got bool", value=raw)
        if isinstance(raw, int):
            return Duration(raw)
        if isinstance(raw, str):
            return Duration(parse_duration(raw))
        raise InvalidValue(f"expected duration, got {type(raw).__name__}", value=raw)
    if not isinstance(raw, (list, tuple)) or not all(isinstance(item, str) for item in raw):
        raise InvalidValue("expected list of strings", value=raw)
    return tuple(raw) or None
