"""Handler wrappers that surround request handling with parameter parsing.

The wrappers are middleware callables composed with
:func:`hermes.middleware.apply_middleware`. Only :func:`params_middleware`
touches the parameter store; the others decorate the outgoing response.
"""

from __future__ import annotations

import gzip
import logging
from http import HTTPStatus
from typing import Any, Callable

import zstandard

from .config import DEFAULT_CONFIG, ParamsConfig
from .ingestion import parse_params
from .middleware import Handler, MiddlewareCallable, apply_middleware
from .params import Params
from .requests import Request
from .responses import Response
from .serialization import json_encode
from .values import UploadFile

logger = logging.getLogger(__name__)

CompressFunc = Callable[[bytes], bytes]

_ZSTD_COMPRESSOR = zstandard.ZstdCompressor(level=6)


def _gzip_compress(data: bytes) -> bytes:
    return gzip.compress(data, compresslevel=6)


def _zstd_compress(data: bytes) -> bytes:
    return _ZSTD_COMPRESSOR.compress(data)


COMPRESSORS: dict[str, CompressFunc] = {"zstd": _zstd_compress, "gzip": _gzip_compress}


def params_middleware(config: ParamsConfig = DEFAULT_CONFIG) -> MiddlewareCallable:
    """Parse and attach the parameter store before the handler runs.

    Uploaded files of a store parsed here are closed once the handler returns.
    """

    async def middleware(request: Request, handler: Handler) -> Response:
        if request.params is not None:
            return await handler(request)
        params = await parse_params(request, config)
        try:
            return await handler(request)
        finally:
            await params.close()

    return middleware


def cors_headers(request: Request, config: ParamsConfig = DEFAULT_CONFIG) -> tuple[tuple[str, str], ...]:
    headers: list[tuple[str, str]] = []
    origin = request.header("origin")
    if origin:
        headers.append(("access-control-allow-origin", origin))
    headers.append(("access-control-allow-methods", ", ".join(config.cors_allow_methods)))
    headers.append(("access-control-allow-headers", ", ".join(config.cors_allow_headers)))
    if config.cors_allow_credentials:
        headers.append(("access-control-allow-credentials", "true"))
    return tuple(headers)


def cors_middleware(config: ParamsConfig = DEFAULT_CONFIG) -> MiddlewareCallable:
    """Add cross-origin headers to every response."""

    async def middleware(request: Request, handler: Handler) -> Response:
        response = await handler(request)
        for name, value in cors_headers(request, config):
            response = response.with_header(name, value)
        return response

    return middleware


def send_cors(request: Request, config: ParamsConfig = DEFAULT_CONFIG) -> Response:
    """Answer a preflight request with the cross-origin headers only."""

    return Response(status=int(HTTPStatus.OK), headers=cors_headers(request, config))


async def json_content_type_middleware(request: Request, handler: Handler) -> Response:
    response = await handler(request)
    if response.header("content-type") is None:
        return response.with_header("content-type", "application/json")
    return response


def negotiate_encoding(accept_encoding: str | None) -> str | None:
    """Pick the first supported coding the client accepts, in the client's order."""

    if not accept_encoding:
        return None
    for entry in accept_encoding.split(","):
        token, _, params = entry.strip().partition(";")
        token = token.strip().lower()
        quality = params.strip()
        if quality.startswith("q="):
            try:
                if float(quality[2:]) <= 0:
                    continue
            except ValueError:
                continue
        if token == "*":
            return "gzip"
        if token in COMPRESSORS:
            return token
    return None


def sniff_content_type(body: bytes) -> str:
    try:
        body.decode("utf-8")
    except UnicodeDecodeError:
        return "application/octet-stream"
    return "text/plain; charset=utf-8"


def compression_middleware(config: ParamsConfig = DEFAULT_CONFIG) -> MiddlewareCallable:
    """Compress response bodies when the client accepts ``zstd`` or ``gzip``."""

    async def middleware(request: Request, handler: Handler) -> Response:
        encoding = negotiate_encoding(request.header("accept-encoding"))
        response = await handler(request)
        if encoding is None or response.header("content-encoding") is not None:
            return response
        if len(response.body) < config.compression_min_bytes:
            return response
        if response.header("content-type") is None:
            response = response.with_header("content-type", sniff_content_type(response.body))
        response = response.with_body(COMPRESSORS[encoding](response.body))
        return response.with_header("content-encoding", encoding).with_header("vary", "accept-encoding")

    return middleware


def filter_params(params: Params, config: ParamsConfig = DEFAULT_CONFIG) -> dict[str, Any]:
    """Return a copy of the top-level store that is safe to log.

    Filtered keys are replaced, raw bytes are shown as text and uploaded files
    are summarized.
    """

    filtered: dict[str, Any] = {}
    for key, value in params.values.items():
        if config.is_filtered(key):
            filtered[key] = [config.filter_replacement]
        elif isinstance(value, bytes):
            filtered[key] = value.decode("utf-8", errors="replace")
        elif isinstance(value, UploadFile):
            filtered[key] = {"filename": value.filename, "size": value.size}
        else:
            filtered[key] = value
    return filtered


def request_logging_middleware(config: ParamsConfig = DEFAULT_CONFIG) -> MiddlewareCallable:
    """Log each request with its redacted parameters."""

    async def middleware(request: Request, handler: Handler) -> Response:
        if request.params is not None:
            logger.info(
                "%s %s params=%s",
                request.method,
                request.path,
                json_encode(filter_params(request.params, config), enc_hook=repr).decode("utf-8"),
            )
        return await handler(request)

    return middleware


def general_response(handler: Handler, config: ParamsConfig = DEFAULT_CONFIG) -> Handler:
    """Wrap ``handler`` with compression, parameter parsing, logging and CORS."""

    return apply_middleware(
        (
            compression_middleware(config),
            params_middleware(config),
            request_logging_middleware(config),
            cors_middleware(config),
        ),
        handler,
    )


def general_json_response(handler: Handler, config: ParamsConfig = DEFAULT_CONFIG) -> Handler:
    """Like :func:`general_response`, defaulting the response to JSON."""

    return apply_middleware(
        (
            compression_middleware(config),
            json_content_type_middleware,
            params_middleware(config),
            request_logging_middleware(config),
            cors_middleware(config),
        ),
        handler,
    )


__all__ = [
    "COMPRESSORS",
    "compression_middleware",
    "cors_headers",
    "cors_middleware",
    "filter_params",
    "general_json_response",
    "general_response",
    "json_content_type_middleware",
    "negotiate_encoding",
    "params_middleware",
    "request_logging_middleware",
    "send_cors",
    "sniff_content_type",
]
