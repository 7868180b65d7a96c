"""
Request body parsing into the unified parameter namespace.

The body is read once, decoded by content type, and replayed to the route so
FastAPI body models still work.
"""
from __future__ import annotations

import json
import time
from typing import Any

from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from baseserver.constants import BODY_METHODS, TimerPhase
from baseserver.core.errors import HttpError, InvalidContentError, PayloadTooLargeError
from baseserver.core.timers import add_timer, request_state
from baseserver.middleware.query_parser import parse_query
from baseserver.middleware.responses import merge_params, send_error

BODY_KEY = "body"


def parse_body(body: bytes, content_type: str | None) -> Any:
    media = (content_type or "").split(";")[0].strip().lower()
    if media == "application/json" or media.endswith("+json"):
        try:
            return json.loads(body)
        except (ValueError, UnicodeDecodeError) as exc:
            raise InvalidContentError(f"Invalid JSON: {exc}") from exc
    if media == "application/x-www-form-urlencoded":
        try:
            return parse_query(body.decode("utf-8"))
        except UnicodeDecodeError as exc:
            raise InvalidContentError(f"Invalid form encoding: {exc}") from exc
    return body


class BodyParserMiddleware:
    def __init__(self, app: ASGIApp, max_body_size: int = 1_048_576) -> None:
        self.app = app
        self.max_body_size = max_body_size

    async def _read(self, scope: Scope, receive: Receive) -> tuple[bytes, list[Message]]:
        headers = Headers(scope=scope)
        declared = headers.get("content-length")
        if declared is not None and declared.isdigit() and int(declared) > self.max_body_size:
            raise PayloadTooLargeError(f"Request body exceeds {self.max_body_size} bytes")

        chunks: list[bytes] = []
        trailing: list[Message] = []
        size = 0
        while True:
            message = await receive()
            if message["type"] != "http.request":
                trailing.append(message)
                break
            chunk = message.get("body", b"")
            size += len(chunk)
            if size > self.max_body_size:
                raise PayloadTooLargeError(f"Request body exceeds {self.max_body_size} bytes")
            chunks.append(chunk)
            if not message.get("more_body", False):
                break
        return b"".join(chunks), trailing

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope["method"] not in BODY_METHODS:
            await self.app(scope, receive, send)
            return

        start = time.perf_counter_ns()
        try:
            body, trailing = await self._read(scope, receive)
            parsed = parse_body(body, Headers(scope=scope).get("content-type")) if body else None
        except HttpError as err:
            add_timer(scope, TimerPhase.BODY_PARSER, time.perf_counter_ns() - start)
            await send_error(scope, receive, send, err)
            return
        add_timer(scope, TimerPhase.BODY_PARSER, time.perf_counter_ns() - start)

        request_state(scope)[BODY_KEY] = parsed
        if isinstance(parsed, dict):
            merge_params(scope, parsed)

        pending: list[Message] = [{"type": "http.request", "body": body, "more_body": False}, *trailing]

        async def replay() -> Message:
            if pending:
                return pending.pop(0)
            return await receive()

        await self.app(scope, replay, send)
