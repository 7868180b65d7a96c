"""RouteRegistry over a Starlette/FastAPI router."""
from __future__ import annotations

from typing import Iterable, Sequence

from starlette.applications import Starlette
from starlette.routing import BaseRoute, Mount

from baseserver.constants import LISTED_METHODS


def _included_router(route: BaseRoute) -> tuple[Iterable[BaseRoute], str] | None:
    """Routes and prefix of a router kept unflattened by `include_router`, if `route` is one."""
    router = getattr(route, "original_router", None)
    if router is None:
        return None
    context = getattr(route, "include_context", None)
    return router.routes, getattr(context, "prefix", "") or ""


class StarletteRouteRegistry:
    def __init__(self, app: Starlette, methods: Sequence[str] = LISTED_METHODS) -> None:
        self._app = app
        self._methods = tuple(methods)

    def _walk(self, routes: Iterable[BaseRoute], prefix: str, result: dict[str, list[str]]) -> None:
        for route in routes:
            if isinstance(route, Mount):
                self._walk(route.routes, prefix + route.path, result)
                continue
            included = _included_router(route)
            if included is not None:
                child_routes, child_prefix = included
                self._walk(child_routes, prefix + child_prefix, result)
                continue
            methods = getattr(route, "methods", None)
            path = getattr(route, "path", None)
            if not methods or path is None:
                continue
            pattern = prefix + path
            for method in self._methods:
                if method in methods and pattern not in result[method]:
                    result[method].append(pattern)

    def list_by_method(self) -> dict[str, list[str]]:
        result: dict[str, list[str]] = {method: [] for method in self._methods}
        self._walk(self._app.router.routes, "", result)
        return result
