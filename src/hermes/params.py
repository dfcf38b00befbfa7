"""Per-request parameter store and its typed accessors."""

from __future__ import annotations

import datetime as dt
import logging
from typing import Any, Iterable, Iterator, MutableMapping

from . import coercion
from .config import DEFAULT_CONFIG, CustomTypeHandler, ParamsConfig
from .imbue import imbue as populate
from .values import INT_BOUNDS, ZERO_TIME, UploadFile, Value

logger = logging.getLogger(__name__)

_MISSING = object()


class Params:
    """Normalized parameters of a single request.

    Keys are case sensitive. Dotted keys (``"coord.lat"``) address nested
    mappings. Accessors come in pairs: ``get_x_ok`` returns ``(value, found)``
    and ``get_x`` returns the value or its zero value. Neither raises.
    """

    __slots__ = ("config", "values")

    def __init__(
        self,
        values: MutableMapping[str, Value] | None = None,
        *,
        config: ParamsConfig = DEFAULT_CONFIG,
    ) -> None:
        self.values: MutableMapping[str, Value] = values if values is not None else {}
        self.config = config

    def __repr__(self) -> str:
        return f"Params({self.values!r})"

    def __len__(self) -> int:
        return len(self.values)

    def __iter__(self) -> Iterator[str]:
        return iter(self.values)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.get_ok(key)[1]

    def _resolve(self, key: str) -> tuple[MutableMapping[str, Value] | None, str, Any]:
        """Return ``(container, leaf, value)`` for ``key`` or ``(None, leaf, _MISSING)``."""

        *parents, leaf = key.split(".")
        node: Any = self.values
        for segment in parents:
            if not isinstance(node, dict) or segment not in node:
                return None, leaf, _MISSING
            node = node[segment]
        if not isinstance(node, dict) or leaf not in node:
            return None, leaf, _MISSING
        return node, leaf, node[leaf]

    def get_ok(self, key: str) -> tuple[Value, bool]:
        _, _, value = self._resolve(key)
        if value is _MISSING:
            return None, False
        return value, True

    def get(self, key: str, default: Any = None) -> Any:
        value, found = self.get_ok(key)
        return value if found else default

    def _coerce(self, key: str, convert: Any, zero: Any) -> tuple[Any, bool]:
        value, found = self.get_ok(key)
        if not found:
            return zero, False
        converted = convert(value)
        if converted is None:
            return zero, False
        return converted, True

    def get_float_ok(self, key: str) -> tuple[float, bool]:
        return self._coerce(key, coercion.to_float, 0.0)

    def get_float(self, key: str) -> float:
        return self.get_float_ok(key)[0]

    def get_bool_ok(self, key: str) -> tuple[bool, bool]:
        return self._coerce(key, coercion.to_bool, False)

    def get_bool(self, key: str) -> bool:
        return self.get_bool_ok(key)[0]

    def get_int_ok(self, key: str) -> tuple[int, bool]:
        return self._coerce(key, coercion.to_int, 0)

    def get_int(self, key: str) -> int:
        return self.get_int_ok(key)[0]

    def _get_sized_int_ok(self, key: str, bits: int) -> tuple[int, bool]:
        number, found = self.get_int_ok(key)
        low, high = INT_BOUNDS[bits]
        if not found or not low <= number <= high:
            return 0, False
        return number, True

    def get_int8_ok(self, key: str) -> tuple[int, bool]:
        return self._get_sized_int_ok(key, 8)

    def get_int8(self, key: str) -> int:
        return self.get_int8_ok(key)[0]

    def get_int16_ok(self, key: str) -> tuple[int, bool]:
        return self._get_sized_int_ok(key, 16)

    def get_int16(self, key: str) -> int:
        return self.get_int16_ok(key)[0]

    def get_int32_ok(self, key: str) -> tuple[int, bool]:
        return self._get_sized_int_ok(key, 32)

    def get_int32(self, key: str) -> int:
        return self.get_int32_ok(key)[0]

    def get_int64_ok(self, key: str) -> tuple[int, bool]:
        return self._get_sized_int_ok(key, 64)

    def get_int64(self, key: str) -> int:
        return self.get_int64_ok(key)[0]

    def get_uint64_ok(self, key: str) -> tuple[int, bool]:
        return self._coerce(key, coercion.to_uint64, 0)

    def get_uint64(self, key: str) -> int:
        return self.get_uint64_ok(key)[0]

    def get_string_ok(self, key: str) -> tuple[str, bool]:
        return self._coerce(key, coercion.to_string, "")

    def get_string(self, key: str) -> str:
        return self.get_string_ok(key)[0]

    def get_bytes_ok(self, key: str) -> tuple[bytes, bool]:
        """Return raw bytes for ``key``.

        Base64 text is decoded and the decoded bytes replace the text in the
        store, so later reads see the raw form.
        """

        container, leaf, value = self._resolve(key)
        if container is None:
            return b"", False
        decoded = coercion.to_bytes(value)
        if decoded is None:
            logger.warning("Error decoding bytes for %r: not valid base64", key)
            return b"", False
        if decoded is not value:
            container[leaf] = decoded
        return decoded, True

    def get_bytes(self, key: str) -> bytes:
        return self.get_bytes_ok(key)[0]

    def get_time_in_location_ok(self, key: str, tz: dt.tzinfo) -> tuple[dt.datetime, bool]:
        return self._coerce(key, lambda value: coercion.to_time(value, tz), ZERO_TIME)

    def get_time_in_location(self, key: str, tz: dt.tzinfo) -> dt.datetime:
        return self.get_time_in_location_ok(key, tz)[0]

    def get_time_ok(self, key: str) -> tuple[dt.datetime, bool]:
        return self.get_time_in_location_ok(key, self.config.default_timezone)

    def get_time(self, key: str) -> dt.datetime:
        return self.get_time_ok(key)[0]

    def get_float_slice_ok(self, key: str) -> tuple[list[float], bool]:
        return self._coerce(key, coercion.to_float_list, [])

    def get_float_slice(self, key: str) -> list[float]:
        return self.get_float_slice_ok(key)[0]

    def get_int_slice_ok(self, key: str) -> tuple[list[int], bool]:
        return self._coerce(key, coercion.to_int_list, [])

    def get_int_slice(self, key: str) -> list[int]:
        return self.get_int_slice_ok(key)[0]

    def get_uint64_slice_ok(self, key: str) -> tuple[list[int], bool]:
        return self._coerce(key, coercion.to_uint64_list, [])

    def get_uint64_slice(self, key: str) -> list[int]:
        return self.get_uint64_slice_ok(key)[0]

    def get_string_slice_ok(self, key: str) -> tuple[list[str], bool]:
        return self._coerce(key, coercion.to_string_list, [])

    def get_string_slice(self, key: str) -> list[str]:
        return self.get_string_slice_ok(key)[0]

    def get_json_ok(self, key: str) -> tuple[dict[str, Any], bool]:
        return self._coerce(key, coercion.to_json_object, {})

    def get_json(self, key: str) -> dict[str, Any]:
        return self.get_json_ok(key)[0]

    def get_file_ok(self, key: str) -> tuple[UploadFile | None, bool]:
        value, found = self.get_ok(key)
        if found and isinstance(value, UploadFile):
            return value, True
        return None, False

    def get_file(self, key: str) -> UploadFile | None:
        return self.get_file_ok(key)[0]

    def has_all(self, *keys: str) -> tuple[bool, list[str]]:
        """Report whether every key is present, with the missing ones in order."""

        missing = [key for key in keys if key not in self.values]
        return not missing, missing

    def permit(self, allowed_keys: Iterable[str]) -> None:
        """Drop every top-level key not in ``allowed_keys`` (case insensitive)."""

        allowed = {key.lower() for key in allowed_keys}
        for key in [key for key in self.values if key.lower() not in allowed]:
            dropped = self.values.pop(key)
            if isinstance(dropped, UploadFile):
                dropped.file.close()

    async def close(self) -> None:
        """Close every uploaded file held at the top level of the store."""

        for value in self.values.values():
            if isinstance(value, UploadFile):
                await value.close()

    def imbue(
        self,
        destination: Any,
        *,
        custom_type_handler: CustomTypeHandler | None = None,
    ) -> None:
        """Copy matching parameters onto ``destination``; see :func:`hermes.imbue.imbue`."""

        populate(self, destination, custom_type_handler=custom_type_handler)


__all__ = ["Params"]
