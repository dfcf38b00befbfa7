from __future__ import annotations

import logging
from typing import Any, Callable, Iterator, Protocol, cast

import msgpack
import msgspec

logger = logging.getLogger(__name__)


class _JSONModule(Protocol):
    def encode(self, obj: Any, *, enc_hook: Callable[[Any], Any] | None = None) -> bytes: ...

    def decode(self, data: bytes) -> Any: ...


class _MsgpackModule(Protocol):
    def encode(self, obj: Any) -> bytes: ...

    def decode(self, data: bytes) -> Any: ...


_json = cast(_JSONModule, getattr(msgspec, "json"))
_msgpack = cast(_MsgpackModule, getattr(msgspec, "msgpack"))

_MSGPACK_MAP16 = 0xDE
_MSGPACK_MAP32 = 0xDF


def _sanitize_for_json(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    if isinstance(value, dict):
        return {key: _sanitize_for_json(val) for key, val in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_sanitize_for_json(item) for item in value]
    return value


def json_encode(value: Any, *, enc_hook: Callable[[Any], Any] | None = None) -> bytes:
    """Serialize ``value`` to JSON bytes using msgspec.

    Raw byte strings are rendered as text so stores decoded from msgpack stay
    printable. ``enc_hook`` converts objects msgspec cannot encode.
    """

    return _json.encode(_sanitize_for_json(value), enc_hook=enc_hook)


def json_decode(data: bytes | str) -> Any:
    """Deserialize JSON ``data`` into native Python values."""

    return _json.decode(data)


def msgpack_encode(value: Any) -> bytes:
    """Serialize ``value`` to msgpack bytes using msgspec."""

    return _msgpack.encode(value)


def msgpack_decode(data: bytes) -> Any:
    """Deserialize msgpack ``data`` into native Python values."""

    return _msgpack.decode(data)


def is_msgpack_map(data: bytes) -> bool:
    """Return ``True`` when ``data`` starts with a msgpack map header."""

    if not data:
        return False
    first = data[0]
    return 0x80 <= first <= 0x8F or first in (_MSGPACK_MAP16, _MSGPACK_MAP32)


def iter_msgpack_objects(data: bytes) -> Iterator[Any]:
    """Yield every object of a stream of concatenated msgpack messages.

    Strings are left as raw ``bytes``. The stream ends on
    :class:`msgpack.OutOfData`; any other decode failure is logged and stops
    iteration, keeping whatever was yielded so far.
    """

    unpacker = msgpack.Unpacker(raw=True, strict_map_key=False)
    unpacker.feed(data)
    while True:
        try:
            yield unpacker.unpack()
        except msgpack.OutOfData:
            return
        except (msgpack.ExtraData, msgpack.FormatError, msgpack.StackError, TypeError, ValueError) as exc:
            logger.warning("Failed decoding msgpack stream: %s", exc)
            return
