"""Decoding of request sources into a single parameter store.

Sources are read in a fixed order for every request: the body decoder chosen
by the content type (JSON or msgpack), then form fields (query string,
URL-encoded or multipart body), then path variables from the router. Body
values win over form values; path variables win over both.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping, MutableMapping
from urllib.parse import parse_qsl

import msgspec
from starlette.datastructures import Headers, UploadFile
from starlette.formparsers import MultiPartException, MultiPartParser

from .config import DEFAULT_CONFIG, ParamsConfig
from .exceptions import IngestionError, ParamsNotParsedError
from .params import Params
from .requests import Request
from .serialization import is_msgpack_map, iter_msgpack_objects, json_decode, msgpack_decode
from .values import MAX_UINT64, Value

logger = logging.getLogger(__name__)

FORM_URLENCODED = "application/x-www-form-urlencoded"
MULTIPART_FORM = "multipart/form-data"
JSON_MEDIA_TYPE = "application/json"
MSGPACK_MEDIA_TYPE = "application/x-msgpack"

# Methods whose URL-encoded body is read as form fields.
_FORM_BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})

# Path variables whose name contains this marker are read as unsigned integers.
ID_MARKER = "id"
# Digits in the largest uint64.
_MAX_UINT64_DIGITS = len(str(MAX_UINT64))

FormField = tuple[str, str]
FileField = tuple[str, UploadFile]


def coerce_form_value(raw: str) -> bool | str:
    """Return ``True``/``False`` for boolean literals, otherwise ``raw``."""

    lowered = raw.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    return raw


def ingest_form(fields: Iterable[FormField], files: Iterable[FileField] = ()) -> dict[str, Value]:
    """Build a mapping from form fields keeping the first value of each name.

    Uploaded files replace text fields of the same name; only the first file
    of a field is kept and the others are closed.
    """

    values: dict[str, Value] = {}
    for name, raw in fields:
        if name not in values:
            values[name] = coerce_form_value(raw)
    seen_files: set[str] = set()
    for name, upload in files:
        if name in seen_files:
            upload.file.close()
            continue
        seen_files.add(name)
        values[name] = upload
    return values


async def read_multipart(request: Request, config: ParamsConfig) -> tuple[list[FormField], list[FileField]]:
    """Split a multipart body into text fields and uploaded files."""

    parser = MultiPartParser(
        Headers(headers={"content-type": request.headers.get("content-type", "")}),
        request.stream(),
        max_part_size=config.max_part_size,
    )
    try:
        form = await parser.parse()
    except (MultiPartException, KeyError, ValueError) as exc:
        raise IngestionError("multipart", str(exc) or type(exc).__name__) from exc
    fields: list[FormField] = []
    files: list[FileField] = []
    for name, item in form.multi_items():
        if isinstance(item, UploadFile):
            files.append((name, item))
        else:
            fields.append((name, item))
    return fields, files


def ingest_json(body: bytes) -> dict[str, Value]:
    """Decode a JSON object body."""

    try:
        decoded = json_decode(body)
    except msgspec.DecodeError as exc:
        raise IngestionError("json", str(exc)) from exc
    if not isinstance(decoded, dict):
        raise IngestionError("json", f"expected an object, got {type(decoded).__name__}")
    return decoded


def _text_key(key: Any) -> str:
    if isinstance(key, (bytes, bytearray)):
        return bytes(key).decode("utf-8", errors="replace")
    return key if isinstance(key, str) else str(key)


def _normalize_keys(value: Any) -> Any:
    if isinstance(value, dict):
        return {_text_key(key): _normalize_keys(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_normalize_keys(item) for item in value]
    return value


def apply_key_value_list(values: MutableMapping[str, Value], items: list[Any]) -> None:
    """Apply an alternating ``[key, value, key, value, ...]`` list.

    Pairs are applied from the end toward the front so the first occurrence
    of a repeated key is the one that remains.
    """

    for index in range(len(items) - 1, 0, -2):
        key = items[index - 1]
        if not isinstance(key, (bytes, str)):
            logger.warning("Skipping msgpack pair with non-text key %r", key)
            continue
        values[_text_key(key)] = _normalize_keys(items[index])


def ingest_msgpack(body: bytes) -> dict[str, Value]:
    """Decode a msgpack body: one map, or a stream of key/value arrays."""

    values: dict[str, Value] = {}
    if not body:
        return values
    if is_msgpack_map(body):
        try:
            decoded = msgpack_decode(body)
        except msgspec.DecodeError as exc:
            raise IngestionError("msgpack", str(exc)) from exc
        return _normalize_keys(decoded)
    for item in iter_msgpack_objects(body):
        if not isinstance(item, list):
            logger.warning("Failed decoding msgpack: expected a key/value array, got %s", type(item).__name__)
            break
        apply_key_value_list(values, item)
    return values


def merge_sources(body: Mapping[str, Value] | None, form: Mapping[str, Value]) -> dict[str, Value]:
    """Fill keys missing from the body-decoded mapping with form values."""

    merged: dict[str, Value] = dict(body or {})
    for key, value in form.items():
        if key not in merged:
            merged[key] = value
    return merged


def path_variable_value(name: str, raw: str) -> int | str:
    if ID_MARKER in name and raw.isascii() and raw.isdigit() and len(raw.lstrip("0")) <= _MAX_UINT64_DIGITS:
        number = int(raw.lstrip("0") or "0")
        if number <= MAX_UINT64:
            return number
    return raw


def merge_path_variables(values: MutableMapping[str, Value], path_vars: Mapping[str, str]) -> MutableMapping[str, Value]:
    """Overwrite ``values`` with router path variables.

    Variables whose name contains ``"id"`` are stored as integers when they
    are unsigned decimal numbers, otherwise as the raw string.
    """

    for name, raw in path_vars.items():
        values[name] = path_variable_value(name, raw)
    return values


def _form_fields(request: Request) -> list[FormField]:
    fields: list[FormField] = []
    if request.content_type == FORM_URLENCODED and request.method in _FORM_BODY_METHODS:
        body = request.body().decode("utf-8", errors="replace")
        fields.extend(parse_qsl(body, keep_blank_values=True))
    for name, raw_values in request.query_params.items():
        fields.extend((name, raw) for raw in raw_values)
    return fields


async def parse_params(request: Request, config: ParamsConfig = DEFAULT_CONFIG) -> Params:
    """Build the parameter store for ``request`` and attach it to the request."""

    content_type = request.content_type
    fields = _form_fields(request)
    files: list[FileField] = []
    if content_type == MULTIPART_FORM:
        try:
            multipart_fields, files = await read_multipart(request, config)
        except IngestionError as exc:
            logger.warning("Failed parsing multipart form for %s %s: %s", request.method, request.path, exc)
        else:
            fields.extend(multipart_fields)
    form = ingest_form(fields, files)

    body: dict[str, Value] | None = None
    try:
        if content_type == JSON_MEDIA_TYPE and request.content_length > 0:
            body = ingest_json(request.body())
        elif content_type == MSGPACK_MEDIA_TYPE:
            body = ingest_msgpack(request.body())
    except IngestionError as exc:
        logger.warning("Content-Type is %r but the body could not be decoded: %s", content_type, exc)
        body = {} if content_type == MSGPACK_MEDIA_TYPE else None

    values = merge_sources(body, form)
    merge_path_variables(values, request.path_params)
    params = Params(values, config=config)
    request.params = params
    return params


def get_params(request: Request) -> Params:
    """Return the store attached by :func:`parse_params`."""

    if request.params is None:
        raise ParamsNotParsedError(request.method, request.path)
    return request.params


__all__ = [
    "FORM_URLENCODED",
    "JSON_MEDIA_TYPE",
    "MSGPACK_MEDIA_TYPE",
    "MULTIPART_FORM",
    "apply_key_value_list",
    "coerce_form_value",
    "get_params",
    "ingest_form",
    "ingest_json",
    "ingest_msgpack",
    "merge_path_variables",
    "merge_sources",
    "parse_params",
    "path_variable_value",
]
