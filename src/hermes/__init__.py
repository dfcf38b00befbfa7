"""Hermes request parameter normalization and coercion."""

from .config import ParamsConfig
from .exceptions import HermesError, IngestionError, ParamsNotParsedError
from .handlers import general_json_response, general_response, send_cors
from .imbue import FieldKind, FieldSpec, imbue
from .ingestion import get_params, parse_params
from .naming import camel_to_snake, snake_to_camel
from .params import Params
from .requests import Request
from .responses import JSONResponse, PlainTextResponse, Response
from .routing import Router
from .testing import TestClient
from .values import Float32, Int8, Int16, Int32, Int64, UInt64, unique_uint64

__all__ = [
    "FieldKind",
    "FieldSpec",
    "Float32",
    "HermesError",
    "IngestionError",
    "Int16",
    "Int32",
    "Int64",
    "Int8",
    "JSONResponse",
    "Params",
    "ParamsConfig",
    "ParamsNotParsedError",
    "PlainTextResponse",
    "Request",
    "Response",
    "Router",
    "TestClient",
    "UInt64",
    "camel_to_snake",
    "general_json_response",
    "general_response",
    "get_params",
    "imbue",
    "parse_params",
    "send_cors",
    "snake_to_camel",
    "unique_uint64",
]
