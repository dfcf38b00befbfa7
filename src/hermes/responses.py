"""Response primitives."""

from __future__ import annotations

from http import HTTPStatus
from typing import Any, Iterable

import msgspec

from .serialization import json_encode

Headers = tuple[tuple[str, str], ...]


class Response(msgspec.Struct, frozen=True):
    """Immutable response payload."""

    status: int = int(HTTPStatus.OK)
    headers: Headers = ()
    body: bytes = b""

    def header(self, name: str, default: str | None = None) -> str | None:
        """Return the last value set for ``name`` (case insensitive)."""

        lowered = name.lower()
        for key, value in reversed(self.headers):
            if key.lower() == lowered:
                return value
        return default

    def with_headers(self, headers: Iterable[tuple[str, str]]) -> "Response":
        """Return a new response with ``headers`` appended."""

        return Response(status=self.status, headers=self.headers + tuple(headers), body=self.body)

    def with_header(self, name: str, value: str) -> "Response":
        """Return a new response where ``name`` is set to ``value`` exactly once."""

        lowered = name.lower()
        kept = tuple((key, val) for key, val in self.headers if key.lower() != lowered)
        return Response(status=self.status, headers=kept + ((lowered, value),), body=self.body)

    def with_body(self, body: bytes) -> "Response":
        return Response(status=self.status, headers=self.headers, body=body)


def PlainTextResponse(
    text: str,
    *,
    status: int = int(HTTPStatus.OK),
    headers: Iterable[tuple[str, str]] | None = None,
) -> Response:
    """Create a plain text response."""

    default_headers = (("content-type", "text/plain; charset=utf-8"),)
    combined = default_headers + tuple(headers or ())
    return Response(status=status, headers=combined, body=text.encode("utf-8"))


def JSONResponse(
    data: Any,
    *,
    status: int = int(HTTPStatus.OK),
    headers: Iterable[tuple[str, str]] | None = None,
) -> Response:
    """Create a JSON response encoded via :mod:`msgspec`."""

    default_headers = (("content-type", "application/json"),)
    combined = default_headers + tuple(headers or ())
    return Response(status=status, headers=combined, body=json_encode(data))


__all__ = ["Headers", "JSONResponse", "PlainTextResponse", "Response"]
