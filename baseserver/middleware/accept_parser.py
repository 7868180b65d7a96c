"""Accept negotiation: reject requests whose Accept header we cannot satisfy."""
from __future__ import annotations

from typing import Iterable

from starlette.datastructures import Headers
from starlette.types import ASGIApp, Receive, Scope, Send

from baseserver.constants import ACCEPTABLE_MEDIA_TYPES, TimerPhase
from baseserver.core.errors import NotAcceptableError
from baseserver.core.timers import phase_timer
from baseserver.middleware.responses import send_error


def _media_ranges(accept: str) -> list[str]:
    ranges = []
    for part in accept.split(","):
        media, *params = [p.strip() for p in part.split(";")]
        if not media:
            continue
        q = 1.0
        for param in params:
            name, _, value = param.partition("=")
            if name.strip().lower() == "q":
                try:
                    q = float(value)
                except ValueError:
                    q = 0.0
        if q > 0:
            ranges.append(media.lower())
    return ranges


def is_acceptable(accept: str | None, acceptable: Iterable[str]) -> bool:
    if accept is None or not accept.strip():
        return True
    for media in _media_ranges(accept):
        if media in ("*", "*/*"):
            return True
        main_type, _, sub_type = media.partition("/")
        for candidate in acceptable:
            cand_main, _, cand_sub = candidate.partition("/")
            if main_type == cand_main and sub_type in ("*", cand_sub):
                return True
    return False


class AcceptParserMiddleware:
    def __init__(self, app: ASGIApp, acceptable: Iterable[str] = ACCEPTABLE_MEDIA_TYPES) -> None:
        self.app = app
        self.acceptable = tuple(acceptable)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        with phase_timer(scope, TimerPhase.ACCEPT_PARSER):
            ok = is_acceptable(Headers(scope=scope).get("accept"), self.acceptable)
        if not ok:
            err = NotAcceptableError("Server accepts: " + ", ".join(self.acceptable))
            await send_error(scope, receive, send, err)
            return
        await self.app(scope, receive, send)
