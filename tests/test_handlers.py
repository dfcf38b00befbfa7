from __future__ import annotations

import gzip
import io
import logging

import msgpack
import pytest
import zstandard
from starlette.datastructures import UploadFile

from hermes.config import ParamsConfig
from hermes.handlers import (
    compression_middleware,
    cors_headers,
    filter_params,
    general_json_response,
    general_response,
    json_content_type_middleware,
    negotiate_encoding,
    params_middleware,
    send_cors,
    sniff_content_type,
)
from hermes.ingestion import get_params
from hermes.params import Params
from hermes.requests import Request
from hermes.responses import JSONResponse, PlainTextResponse, Response
from hermes.routing import Router
from hermes.testing import TestClient, build_request


async def show_item(request: Request) -> Response:
    params = get_params(request)
    return JSONResponse({"id": params.get_uint64("item_id"), "name": params.get_string("name")})


async def raw_text(request: Request) -> Response:
    return Response(body=b"hello " * 20)


def make_client(config: ParamsConfig | None = None) -> TestClient:
    config = config or ParamsConfig()
    router = Router()
    router.add_route("/items/{item_id:[0-9]+}", methods=("GET", "PUT"), endpoint=general_json_response(show_item, config))
    router.add_route("/raw", methods=("GET",), endpoint=general_response(raw_text, config))
    return TestClient(router)


@pytest.mark.asyncio
async def test_general_json_response_parses_params() -> None:
    client = make_client()
    response = await client.get("/items/42", query={"name": " Widget "}, headers={"origin": "https://example.com"})
    assert response.status == 200
    assert response.body == b'{"id":42,"name":"Widget"}'
    assert response.header("content-type") == "application/json"
    assert response.header("access-control-allow-origin") == "https://example.com"
    assert response.header("access-control-allow-credentials") == "true"
    assert response.header("content-encoding") is None


@pytest.mark.asyncio
async def test_general_json_response_gzip() -> None:
    client = make_client()
    response = await client.put("/items/7", json={"name": "Gadget"}, headers={"accept-encoding": "gzip"})
    assert response.header("content-encoding") == "gzip"
    assert response.header("vary") == "accept-encoding"
    assert gzip.decompress(response.body) == b'{"id":7,"name":"Gadget"}'


@pytest.mark.asyncio
async def test_general_response_zstd_sniffs_content_type() -> None:
    client = make_client()
    response = await client.get("/raw", headers={"accept-encoding": "zstd, gzip"})
    assert response.header("content-encoding") == "zstd"
    assert response.header("content-type") == "text/plain; charset=utf-8"
    assert zstandard.ZstdDecompressor().decompress(response.body) == b"hello " * 20


@pytest.mark.asyncio
async def test_compression_respects_minimum_size() -> None:
    client = make_client(ParamsConfig(compression_min_bytes=1024))
    response = await client.get("/raw", headers={"accept-encoding": "gzip"})
    assert response.header("content-encoding") is None
    assert response.body == b"hello " * 20


@pytest.mark.asyncio
async def test_compression_skips_already_encoded_responses() -> None:
    middleware = compression_middleware()

    async def handler(request: Request) -> Response:
        return Response(headers=(("content-encoding", "br"),), body=b"opaque")

    response = await middleware(build_request(headers={"accept-encoding": "gzip"}), handler)
    assert response.body == b"opaque"
    assert response.header("content-encoding") == "br"


@pytest.mark.asyncio
async def test_json_content_type_keeps_explicit_type() -> None:
    async def handler(request: Request) -> Response:
        return PlainTextResponse("ok")

    async def bare(request: Request) -> Response:
        return Response(body=b"{}")

    explicit = await json_content_type_middleware(build_request(), handler)
    assert explicit.header("content-type") == "text/plain; charset=utf-8"
    defaulted = await json_content_type_middleware(build_request(), bare)
    assert defaulted.header("content-type") == "application/json"


@pytest.mark.asyncio
async def test_request_logging_redacts_filtered_keys(caplog: pytest.LogCaptureFixture) -> None:
    client = make_client(ParamsConfig(filtered_keys=("Password",)))
    with caplog.at_level(logging.INFO, logger="hermes.handlers"):
        await client.get("/items/3", query={"name": "n", "password": "hunter2"})
    assert "GET /items/3" in caplog.text
    assert '"password":["FILTERED"]' in caplog.text
    assert "hunter2" not in caplog.text


def test_send_cors() -> None:
    request = build_request("OPTIONS", headers={"Origin": "https://app.example"})
    response = send_cors(request)
    assert response.status == 200
    assert response.body == b""
    assert response.header("access-control-allow-origin") == "https://app.example"
    assert response.header("access-control-allow-methods") == "POST, GET, OPTIONS, PUT, DELETE"
    assert response.header("access-control-allow-headers") == (
        "Content-Type, Content-Length, Accept-Encoding, X-CSRF-Token"
    )


def test_cors_headers_without_origin_or_credentials() -> None:
    config = ParamsConfig(cors_allow_methods=("GET",), cors_allow_credentials=False)
    headers = dict(cors_headers(build_request(), config))
    assert "access-control-allow-origin" not in headers
    assert "access-control-allow-credentials" not in headers
    assert headers["access-control-allow-methods"] == "GET"


@pytest.mark.parametrize(
    ("header", "expected"),
    [
        (None, None),
        ("", None),
        ("br", None),
        ("gzip", "gzip"),
        ("br, zstd;q=0.9, gzip", "zstd"),
        ("zstd;q=0, gzip", "gzip"),
        ("GZIP;q=0.5", "gzip"),
        ("*", "gzip"),
        ("zstd;q=abc", None),
    ],
)
def test_negotiate_encoding(header: str | None, expected: str | None) -> None:
    assert negotiate_encoding(header) == expected


def test_sniff_content_type() -> None:
    assert sniff_content_type("héllo".encode()) == "text/plain; charset=utf-8"
    assert sniff_content_type(b"\xff\xfe\x00") == "application/octet-stream"


def test_filter_params() -> None:
    upload = UploadFile(file=io.BytesIO(b"abc"), filename="a.txt", size=3)
    params = Params({"token": "secret", "raw": b"bytes", "upload": upload, "count": 3})
    filtered = filter_params(params, ParamsConfig(filtered_keys=("TOKEN",), filter_replacement="***"))
    assert filtered == {
        "token": ["***"],
        "raw": "bytes",
        "upload": {"filename": "a.txt", "size": 3},
        "count": 3,
    }
    assert params.get("token") == "secret"


@pytest.mark.asyncio
async def test_request_logging_renders_unencodable_values(caplog: pytest.LogCaptureFixture) -> None:
    seen: list[object] = []

    async def handler(request: Request) -> Response:
        seen.append(get_params(request).get("e"))
        return Response(body=b"ok")

    body = msgpack.packb({"e": msgpack.ExtType(5, b"xy"), "name": "widget"})
    request = build_request("POST", body=body, headers={"content-type": "application/x-msgpack"})
    with caplog.at_level(logging.INFO, logger="hermes.handlers"):
        response = await general_response(handler)(request)
    assert response.body == b"ok"
    assert len(seen) == 1
    assert "Ext" in caplog.text
    assert '"name":"widget"' in caplog.text


@pytest.mark.asyncio
async def test_params_middleware_closes_uploads_after_handler() -> None:
    uploads: list[UploadFile] = []

    async def handler(request: Request) -> Response:
        upload = get_params(request).get_file("doc")
        assert upload is not None
        uploads.append(upload)
        return Response(body=await upload.read())

    request = build_request("POST", files={"doc": ("a.txt", b"content", "text/plain")})
    response = await params_middleware()(request, handler)
    assert response.body == b"content"
    assert uploads[0].file.closed


@pytest.mark.asyncio
async def test_params_middleware_leaves_existing_store_open() -> None:
    upload = UploadFile(file=io.BytesIO(b"a"), filename="a.txt")
    request = build_request()
    request.params = Params({"doc": upload})

    async def handler(request: Request) -> Response:
        return Response()

    await params_middleware()(request, handler)
    assert not upload.file.closed
