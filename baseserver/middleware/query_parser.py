"""Query string parsing into the unified parameter namespace."""
from __future__ import annotations

from typing import Any

from starlette.datastructures import QueryParams
from starlette.types import ASGIApp, Receive, Scope, Send

from baseserver.constants import TimerPhase
from baseserver.core.timers import phase_timer, request_state
from baseserver.middleware.responses import merge_params


def parse_query(query_string: bytes | str) -> dict[str, Any]:
    """Single-valued keys map to a string, repeated keys to a list."""
    params = QueryParams(query_string)
    parsed: dict[str, Any] = {}
    for key in params.keys():
        values = params.getlist(key)
        parsed[key] = values[0] if len(values) == 1 else values
    return parsed


class QueryParserMiddleware:
    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http":
            with phase_timer(scope, TimerPhase.QUERY_PARSER):
                query = parse_query(scope.get("query_string", b""))
                request_state(scope)["query"] = query
                merge_params(scope, query)
        await self.app(scope, receive, send)
