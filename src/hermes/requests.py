"""Request primitives."""

from __future__ import annotations

from typing import TYPE_CHECKING, AsyncIterator, Mapping, MutableMapping
from urllib.parse import parse_qsl

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .params import Params


class Request:
    """View of an incoming request and the parameter store parsed from it."""

    __slots__ = (
        "_body",
        "_query_params",
        "_raw_query",
        "headers",
        "method",
        "params",
        "path",
        "path_params",
    )

    def __init__(
        self,
        *,
        method: str,
        path: str,
        headers: Mapping[str, str] | None = None,
        path_params: Mapping[str, str] | None = None,
        query_string: str | None = None,
        body: bytes | None = None,
    ) -> None:
        self.method = method.upper()
        self.path = path
        self.headers = {k.lower(): v for k, v in (headers or {}).items()}
        self.path_params = dict(path_params or {})
        self._raw_query = query_string or ""
        self._body = body or b""
        self._query_params: MutableMapping[str, list[str]] | None = None
        self.params: "Params | None" = None

    @staticmethod
    def _parse_query(raw: str) -> MutableMapping[str, list[str]]:
        parsed: MutableMapping[str, list[str]] = {}
        for key, value in parse_qsl(raw, keep_blank_values=True):
            parsed.setdefault(key, []).append(value)
        return parsed

    @property
    def query_string(self) -> str:
        return self._raw_query

    @property
    def query_params(self) -> MutableMapping[str, list[str]]:
        if self._query_params is None:
            self._query_params = self._parse_query(self._raw_query)
        return self._query_params

    @property
    def content_type(self) -> str:
        """Media type of the body without parameters such as ``charset``."""

        raw = self.headers.get("content-type", "")
        return raw.split(";", 1)[0].strip().lower()

    @property
    def content_length(self) -> int:
        return len(self._body)

    def header(self, name: str, default: str | None = None) -> str | None:
        return self.headers.get(name.lower(), default)

    def body(self) -> bytes:
        return self._body

    async def stream(self) -> AsyncIterator[bytes]:
        """Yield the body as a single chunk followed by the end marker."""

        if self._body:
            yield self._body
        yield b""
