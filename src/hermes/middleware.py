"""Middleware chaining primitives."""

from __future__ import annotations

from typing import Awaitable, Callable, Iterable

from .requests import Request
from .responses import Response

Handler = Callable[[Request], Awaitable[Response]]
MiddlewareCallable = Callable[[Request, Handler], Awaitable[Response]]


def apply_middleware(middlewares: Iterable[MiddlewareCallable], endpoint: Handler) -> Handler:
    """Compose middleware into a single handler.

    The first middleware is the outermost: it sees the request first and the
    response last.
    """

    handler = endpoint
    for middleware in reversed(tuple(middlewares)):
        handler = _Link(middleware, handler)
    return handler


class _Link:
    __slots__ = ("_middleware", "_next")

    def __init__(self, middleware: MiddlewareCallable, next_handler: Handler) -> None:
        self._middleware = middleware
        self._next = next_handler

    async def __call__(self, request: Request) -> Response:
        return await self._middleware(request, self._next)


__all__ = ["Handler", "MiddlewareCallable", "apply_middleware"]
