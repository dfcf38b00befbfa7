"""Testing helpers."""

from __future__ import annotations

import secrets
from typing import Any, Mapping
from urllib.parse import urlencode

from .requests import Request
from .responses import Response
from .routing import Router
from .serialization import json_encode, msgpack_encode

UploadSpec = tuple[str, bytes, str]


def encode_multipart(
    fields: Mapping[str, str] | None = None,
    files: Mapping[str, UploadSpec] | None = None,
    *,
    boundary: str | None = None,
) -> tuple[bytes, str]:
    """Return ``(body, content_type)`` for a ``multipart/form-data`` payload.

    ``files`` maps a field name to ``(filename, content, content_type)``.
    """

    boundary = boundary or secrets.token_hex(16)
    chunks: list[bytes] = []
    for name, value in (fields or {}).items():
        chunks.append(
            f'--{boundary}\r\nContent-Disposition: form-data; name="{name}"\r\n\r\n{value}\r\n'.encode()
        )
    for name, (filename, content, content_type) in (files or {}).items():
        head = (
            f"--{boundary}\r\n"
            f'Content-Disposition: form-data; name="{name}"; filename="{filename}"\r\n'
            f"Content-Type: {content_type}\r\n\r\n"
        )
        chunks.append(head.encode() + content + b"\r\n")
    chunks.append(f"--{boundary}--\r\n".encode())
    return b"".join(chunks), f"multipart/form-data; boundary={boundary}"


def build_request(
    method: str = "GET",
    path: str = "/",
    *,
    query: Mapping[str, Any] | str | None = None,
    form: Mapping[str, Any] | None = None,
    json: Any | None = None,
    msgpack: Any | None = None,
    files: Mapping[str, UploadSpec] | None = None,
    body: bytes | None = None,
    headers: Mapping[str, str] | None = None,
    path_params: Mapping[str, str] | None = None,
) -> Request:
    """Create a :class:`Request` with the body encoded the way a client would."""

    request_headers = dict(headers or {})
    payload = body or b""
    if json is not None:
        payload = json_encode(json)
        request_headers.setdefault("content-type", "application/json")
    elif msgpack is not None:
        payload = msgpack_encode(msgpack)
        request_headers.setdefault("content-type", "application/x-msgpack")
    elif files is not None:
        payload, content_type = encode_multipart({k: str(v) for k, v in (form or {}).items()}, files)
        request_headers.setdefault("content-type", content_type)
    elif form is not None:
        payload = urlencode(form, doseq=True).encode()
        request_headers.setdefault("content-type", "application/x-www-form-urlencoded")
    query_string = query if isinstance(query, str) else urlencode(query or {}, doseq=True)
    return Request(
        method=method,
        path=path,
        headers=request_headers,
        path_params=path_params,
        query_string=query_string,
        body=payload,
    )


class TestClient:
    """Async test client that dispatches requests through a :class:`Router` in-process."""

    __test__ = False

    def __init__(self, router: Router) -> None:
        self.router = router

    async def request(self, method: str, path: str, **kwargs: Any) -> Response:
        return await self.router.dispatch(build_request(method, path, **kwargs))

    async def get(self, path: str, **kwargs: Any) -> Response:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, **kwargs: Any) -> Response:
        return await self.request("POST", path, **kwargs)

    async def put(self, path: str, **kwargs: Any) -> Response:
        return await self.request("PUT", path, **kwargs)


__all__ = ["TestClient", "build_request", "encode_multipart"]
