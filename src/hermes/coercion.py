"""Coercion of dynamic values into concrete Python types.

Every function here takes a single stored :data:`~hermes.values.Value` and
returns the converted value, or ``None`` when the value cannot be
represented. The checks run in a fixed order; callers may depend on it when
a value is ambiguous (a string that looks like a number is parsed before the
stored type is considered).
"""

from __future__ import annotations

import base64
import binascii
import datetime as dt
import math
import re
from typing import Any

import msgspec

from .serialization import json_decode
from .values import MAX_UINT64, Value, is_integer, is_number

DATE_ONLY = "%Y-%m-%d"
DATE_TIME = "%Y-%m-%d %H:%M:%S"
# Format produced by ``<input type="datetime-local">``.
HTML_DATETIME_LOCAL = "%Y-%m-%dT%H:%M"

_INT_LITERAL = re.compile(r"[+-]?\d+")
_FLOAT_LITERAL = re.compile(
    r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|[+-]?(?:inf|infinity|nan)",
    re.IGNORECASE,
)
_RFC3339 = re.compile(
    r"\d{4}-\d{2}-\d{2}[Tt]\d{2}:\d{2}(?::\d{2}(?:\.\d+)?)?(?:[Zz]|[+-]\d{2}:\d{2})"
)
# Fixed-width fields, as the layouts are written.
_LAYOUTS = (
    (re.compile(r"\d{4}-\d{2}-\d{2}"), DATE_ONLY),
    (re.compile(r"\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}"), DATE_TIME),
    (re.compile(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}"), HTML_DATETIME_LOCAL),
)


def parse_int(text: str) -> int | None:
    if _INT_LITERAL.fullmatch(text) is None:
        return None
    try:
        return int(text)
    except ValueError:
        # Longer than the interpreter's digit limit for str to int conversion.
        return None


def parse_float(text: str) -> float | None:
    if _FLOAT_LITERAL.fullmatch(text) is None:
        return None
    return float(text)


def parse_number(text: str) -> int | float | None:
    """Parse ``text`` as an integer literal, falling back to a float."""

    parsed = parse_int(text)
    if parsed is not None:
        return parsed
    return parse_float(text)


def _truncate(number: int | float) -> int | None:
    if isinstance(number, float):
        if not math.isfinite(number):
            return None
        return int(number)
    return number


def to_float(value: Value) -> float | None:
    if isinstance(value, str):
        return parse_float(value)
    if isinstance(value, float):
        return value
    if is_integer(value):
        try:
            return float(value)  # type: ignore[arg-type]
        except OverflowError:
            return None
    return None


def to_int(value: Value) -> int | None:
    if isinstance(value, str):
        parsed = parse_number(value)
        return None if parsed is None else _truncate(parsed)
    if is_integer(value):
        return value  # type: ignore[return-value]
    if isinstance(value, float):
        return _truncate(value)
    return None


def to_bool(value: Value) -> bool | None:
    if isinstance(value, bool):
        return value
    number = to_int(value)
    if number is None:
        return None
    return number != 0


def to_uint64(value: Value) -> int | None:
    number: int | None
    if isinstance(value, str):
        parsed = parse_number(value)
        number = None if parsed is None else _truncate(parsed)
    elif is_number(value):
        number = _truncate(value)  # type: ignore[arg-type]
    elif isinstance(value, bytes):
        parsed = parse_number(value.decode("ascii", errors="replace"))
        number = None if parsed is None else _truncate(parsed)
    else:
        number = None
    if number is None or not 0 <= number <= MAX_UINT64:
        return None
    return number


def to_string(value: Value) -> str | None:
    if isinstance(value, str):
        return value.strip(" ")
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace").strip(" ")
    return None


def to_bytes(value: Value) -> bytes | None:
    """Return raw bytes, decoding strict base64 text when needed."""

    if isinstance(value, bytes):
        return value
    if not isinstance(value, str):
        return None
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError):
        return None


def parse_rfc3339(text: str) -> dt.datetime | None:
    if _RFC3339.fullmatch(text) is None:
        return None
    try:
        return dt.datetime.fromisoformat(text.upper())
    except ValueError:
        return None


def to_time(value: Value, tz: dt.tzinfo = dt.timezone.utc) -> dt.datetime | None:
    """Return a timestamp from a stored datetime or one of the accepted layouts.

    Layouts are tried in order: RFC 3339, date only, date and time, then the
    HTML local datetime form. ``tz`` applies to the layouts without an offset.
    """

    if isinstance(value, dt.datetime):
        return value
    if not isinstance(value, str):
        return None
    parsed = parse_rfc3339(value)
    if parsed is not None:
        return parsed
    for pattern, layout in _LAYOUTS:
        if pattern.fullmatch(value) is None:
            continue
        try:
            return dt.datetime.strptime(value, layout).replace(tzinfo=tz)
        except ValueError:
            continue
    return None


def _float_element(item: Any) -> float:
    if isinstance(item, str):
        parsed = parse_float(item)
        return 0.0 if parsed is None else parsed
    if is_number(item):
        try:
            return float(item)
        except OverflowError:
            return 0.0
    return 0.0


def _int_element(item: Any) -> int:
    if is_integer(item):
        return item
    if isinstance(item, float):
        return _truncate(item) or 0
    if isinstance(item, str):
        return parse_int(item) or 0
    return 0


def _string_element(item: Any) -> str:
    if isinstance(item, str):
        return item
    if isinstance(item, bytes):
        return item.decode("utf-8", errors="replace")
    return ""


def to_float_list(value: Value) -> list[float] | None:
    if isinstance(value, (list, tuple)):
        return [_float_element(item) for item in value]
    if isinstance(value, str):
        return [_float_element(part) for part in value.split(",")]
    return None


def to_int_list(value: Value) -> list[int] | None:
    if isinstance(value, (list, tuple)):
        return [_int_element(item) for item in value]
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="replace")
        return [_int_element(part) for part in value.split(",")]
    if isinstance(value, str) and value:
        return [_int_element(part) for part in value.split(",")]
    return None


def to_uint64_list(value: Value) -> list[int] | None:
    numbers = to_int_list(value)
    if numbers is None:
        return None
    return [number if 0 <= number <= MAX_UINT64 else 0 for number in numbers]


def to_string_list(value: Value) -> list[str] | None:
    if isinstance(value, (list, tuple)):
        return [_string_element(item) for item in value]
    if isinstance(value, str):
        return value.split(",")
    return None


def to_json_object(value: Value) -> dict[str, Any] | None:
    """Return a nested mapping, decoding JSON text when the value is a string."""

    if isinstance(value, dict):
        return value
    if isinstance(value, str):
        text = value
    elif isinstance(value, bytes):
        text = value.decode("utf-8", errors="replace")
    else:
        return None
    try:
        decoded = json_decode(text)
    except msgspec.DecodeError:
        return None
    return decoded if isinstance(decoded, dict) else None
