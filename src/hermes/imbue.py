"""Structural population of annotated objects from a parameter store."""

from __future__ import annotations

import datetime as dt
import enum
import logging
import math
import struct
import types
from dataclasses import dataclass
from functools import lru_cache
from typing import TYPE_CHECKING, Any, Callable, ClassVar, Mapping, Union, get_args, get_origin, get_type_hints

from .config import CustomTypeHandler
from .naming import snake_to_camel
from .values import Float32, Int8, Int16, Int32, Int64, UInt64

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .params import Params

logger = logging.getLogger(__name__)


class FieldKind(enum.Enum):
    BOOL = "bool"
    STRING = "string"
    INT = "int"
    INT8 = "int8"
    INT16 = "int16"
    INT32 = "int32"
    INT64 = "int64"
    UINT64 = "uint64"
    FLOAT = "float"
    FLOAT32 = "float32"
    STRING_SLICE = "string_slice"
    INT_SLICE = "int_slice"
    UINT64_SLICE = "uint64_slice"
    FLOAT_SLICE = "float_slice"
    TIME = "time"
    OPTIONAL_TIME = "optional_time"
    CUSTOM = "custom"


@dataclass(slots=True, frozen=True)
class FieldSpec:
    """One populatable attribute of a destination type."""

    name: str
    attribute: str
    kind: FieldKind
    annotation: Any


_SCALAR_KINDS: dict[Any, FieldKind] = {
    bool: FieldKind.BOOL,
    str: FieldKind.STRING,
    int: FieldKind.INT,
    float: FieldKind.FLOAT,
    Int8: FieldKind.INT8,
    Int16: FieldKind.INT16,
    Int32: FieldKind.INT32,
    Int64: FieldKind.INT64,
    UInt64: FieldKind.UINT64,
    Float32: FieldKind.FLOAT32,
    dt.datetime: FieldKind.TIME,
}

_SLICE_KINDS: dict[Any, FieldKind] = {
    str: FieldKind.STRING_SLICE,
    int: FieldKind.INT_SLICE,
    UInt64: FieldKind.UINT64_SLICE,
    float: FieldKind.FLOAT_SLICE,
}


def _float32(value: float) -> float:
    try:
        return struct.unpack("f", struct.pack("f", value))[0]
    except OverflowError:
        return math.copysign(math.inf, value)


_READERS: dict[FieldKind, Callable[["Params", str], Any]] = {
    FieldKind.BOOL: lambda params, key: params.get_bool(key),
    FieldKind.STRING: lambda params, key: params.get_string(key),
    FieldKind.INT: lambda params, key: params.get_int(key),
    FieldKind.INT8: lambda params, key: params.get_int8(key),
    FieldKind.INT16: lambda params, key: params.get_int16(key),
    FieldKind.INT32: lambda params, key: params.get_int32(key),
    FieldKind.INT64: lambda params, key: params.get_int64(key),
    FieldKind.UINT64: lambda params, key: params.get_uint64(key),
    FieldKind.FLOAT: lambda params, key: params.get_float(key),
    FieldKind.FLOAT32: lambda params, key: _float32(params.get_float(key)),
    FieldKind.STRING_SLICE: lambda params, key: params.get_string_slice(key),
    FieldKind.INT_SLICE: lambda params, key: params.get_int_slice(key),
    FieldKind.UINT64_SLICE: lambda params, key: params.get_uint64_slice(key),
    FieldKind.FLOAT_SLICE: lambda params, key: params.get_float_slice(key),
    FieldKind.TIME: lambda params, key: params.get_time(key),
    FieldKind.OPTIONAL_TIME: lambda params, key: _optional_time(params, key),
}


def _optional_time(params: "Params", key: str) -> dt.datetime | None:
    value, found = params.get_time_ok(key)
    return value if found else None


def field_kind(annotation: Any) -> FieldKind:
    """Classify a type annotation into the accessor family that fills it."""

    kind = _SCALAR_KINDS.get(annotation)
    if kind is not None:
        return kind
    origin = get_origin(annotation)
    args = get_args(annotation)
    if origin is list and len(args) == 1:
        return _SLICE_KINDS.get(args[0], FieldKind.CUSTOM)
    if origin in (Union, types.UnionType):
        options = [option for option in args if option is not type(None)]
        if len(options) == 1 and len(args) == 2 and options[0] is dt.datetime:
            return FieldKind.OPTIONAL_TIME
    return FieldKind.CUSTOM


@lru_cache(maxsize=None)
def field_table(model: type[Any]) -> Mapping[str, FieldSpec]:
    """Return the fields of ``model`` keyed by their ``CamelCase`` name.

    Built once per type from its annotations. Private and ``ClassVar``
    attributes are not populatable.
    """

    table: dict[str, FieldSpec] = {}
    for attribute, annotation in get_type_hints(model).items():
        if attribute.startswith("_") or get_origin(annotation) is ClassVar:
            continue
        name = snake_to_camel(attribute)
        table[name] = FieldSpec(
            name=name,
            attribute=attribute,
            kind=field_kind(annotation),
            annotation=annotation,
        )
    return table


def imbue(
    params: "Params",
    destination: Any,
    *,
    custom_type_handler: CustomTypeHandler | None = None,
) -> None:
    """Set the attributes of ``destination`` from ``params`` by name convention.

    Each top-level key is translated from ``snake_case`` to ``CamelCase`` and
    matched against the destination's fields. Unknown keys are skipped. Fields
    without a built-in accessor go to ``custom_type_handler`` (falling back to
    the store's configured handler) or are left untouched. Nested objects are
    not populated recursively.
    """

    handler = custom_type_handler or params.config.custom_type_handler
    table = field_table(type(destination))
    for key in list(params.values):
        name = snake_to_camel(key)
        field = table.get(name)
        if field is None:
            logger.debug("Skipping parameter %r: %s has no field %r", key, type(destination).__name__, name)
            continue
        if field.kind is FieldKind.CUSTOM:
            if handler is not None:
                handler(destination, field, params.get(key))
            continue
        setattr(destination, field.attribute, _READERS[field.kind](params, key))


__all__ = ["FieldKind", "FieldSpec", "field_kind", "field_table", "imbue"]
