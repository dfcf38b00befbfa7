"""Routing utilities.

Only as much routing as is needed to extract path variables: templates such
as ``/items/{item_id}`` or ``/items/{item_id:[0-9]+}`` are compiled to
anchored patterns and matched per method.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Mapping, MutableMapping, Sequence

import rure
from rure.regex import RegexObject

from .middleware import Handler
from .requests import Request
from .responses import Response

# Constraints may hold one level of braces, as in ``{code:[0-9]{3}}``.
_PATH_PARAM_PATTERN = re.compile(r"{([a-zA-Z_][a-zA-Z0-9_]*)(?::((?:[^{}]|{[^{}]*})+))?}")


@dataclass(slots=True)
class Route:
    path: str
    methods: tuple[str, ...]
    endpoint: Handler
    pattern: RegexObject
    param_names: tuple[str, ...]
    name: str | None = None


@dataclass(slots=True)
class RouteMatch:
    route: Route
    params: Mapping[str, str]


class Router:
    def __init__(self) -> None:
        self._routes_by_method: dict[str, list[Route]] = {}

    def add_route(
        self,
        path: str,
        *,
        methods: Sequence[str],
        endpoint: Handler,
        name: str | None = None,
    ) -> Route:
        pattern, param_names = _compile_path(path)
        normalized_methods = tuple(dict.fromkeys(m.upper() for m in methods))
        route = Route(
            path=path,
            methods=normalized_methods,
            endpoint=endpoint,
            pattern=pattern,
            param_names=param_names,
            name=name,
        )
        for method in normalized_methods:
            self._routes_by_method.setdefault(method, []).append(route)
        return route

    def find(self, method: str, path: str) -> RouteMatch:
        method = method.upper()
        candidates = self._routes_by_method.get(method) or self._routes_by_method.get("*")
        if not candidates:
            raise LookupError(f"No route matches {method} {path}")
        for route in candidates:
            captures = route.pattern.match(path)
            if captures is None:
                continue
            params: MutableMapping[str, str] = {}
            for name in route.param_names:
                group = captures.group(name)
                if group is None:
                    continue
                params[name] = group
            return RouteMatch(route=route, params=params)
        raise LookupError(f"No route matches {method} {path}")

    async def dispatch(self, request: Request) -> Response:
        """Resolve ``request``, record its path variables and run the endpoint."""

        match = self.find(request.method, request.path)
        request.path_params = dict(match.params)
        return await match.route.endpoint(request)


def _compile_path(path: str) -> tuple[RegexObject, tuple[str, ...]]:
    param_names: list[str] = []

    def replace(match: re.Match[str]) -> str:
        name = match.group(1)
        constraint = match.group(2)
        param_names.append(name)
        if constraint is None:
            return f"(?P<{name}>[^/]+)"
        if constraint == "path":
            return f"(?P<{name}>.*)"
        return f"(?P<{name}>{constraint})"

    pattern = "^" + _PATH_PARAM_PATTERN.sub(replace, path) + "$"
    return rure.compile(pattern), tuple(param_names)


__all__ = ["Route", "RouteMatch", "Router"]
