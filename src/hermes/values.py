"""Dynamic value variants stored in a parameter store."""

from __future__ import annotations

import datetime as dt
from typing import Iterable, NewType, Union

from starlette.datastructures import UploadFile

Value = Union[
    None,
    bool,
    int,
    float,
    str,
    bytes,
    list["Value"],
    dict[str, "Value"],
    dt.datetime,
    UploadFile,
]

Int8 = NewType("Int8", int)
Int16 = NewType("Int16", int)
Int32 = NewType("Int32", int)
Int64 = NewType("Int64", int)
UInt64 = NewType("UInt64", int)
Float32 = NewType("Float32", float)

INT_BOUNDS: dict[int, tuple[int, int]] = {
    bits: (-(1 << (bits - 1)), (1 << (bits - 1)) - 1) for bits in (8, 16, 32, 64)
}
MAX_UINT64 = (1 << 64) - 1

# Zero value handed out by the time accessors on failure.
ZERO_TIME = dt.datetime(1, 1, 1, tzinfo=dt.timezone.utc)


def is_integer(value: object) -> bool:
    """Return ``True`` for ``int`` values that are not booleans."""

    return isinstance(value, int) and not isinstance(value, bool)


def is_number(value: object) -> bool:
    return is_integer(value) or isinstance(value, float)


def unique_uint64(values: Iterable[int]) -> list[int]:
    """Drop duplicates from ``values`` keeping the first occurrence of each."""

    return list(dict.fromkeys(values))


__all__ = [
    "INT_BOUNDS",
    "MAX_UINT64",
    "ZERO_TIME",
    "Float32",
    "Int16",
    "Int32",
    "Int64",
    "Int8",
    "UInt64",
    "UploadFile",
    "Value",
    "is_integer",
    "is_number",
    "unique_uint64",
]
