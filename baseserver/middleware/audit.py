"""Post-response audit hook as an outermost ASGI middleware."""
from __future__ import annotations

from typing import Any

from starlette.types import ASGIApp, Message, Receive, Scope, Send

from baseserver.core.audit import AuditLogger
from baseserver.core.timers import TIMERS_KEY, request_state
from baseserver.domain.models import RequestRecord, ResponseBody, ResponseRecord
from baseserver.middleware.responses import RESPONSE_BODY_KEY, decode_payload

REQUEST_RECORD_KEY = "audit_request"
ROUTE_KEY = "route"
ERROR_KEY = "error"


def request_url(scope: Scope) -> str:
    path = scope.get("root_path", "") + scope.get("path", "")
    query = scope.get("query_string", b"")
    if query:
        return f"{path}?{query.decode('latin-1')}"
    return path


class AuditMiddleware:
    """Calls the audit callback once per request, after the last body chunk went out.

    With `capture_body`, responses nobody tagged (framework 404s, `HTTPException`,
    validation errors) are recorded from the bytes actually sent.
    """

    def __init__(self, app: ASGIApp, audit: AuditLogger, capture_body: bool = False) -> None:
        self.app = app
        self.audit = audit
        self.capture_body = capture_body

    def _emit(
        self,
        scope: Scope,
        record: RequestRecord,
        response: ResponseRecord,
        err: Any = None,
        sent: bytearray | None = None,
    ) -> None:
        state = request_state(scope)
        response.body = state.get(RESPONSE_BODY_KEY)
        if response.body is None and sent:
            response.body = ResponseBody.plain(decode_payload(bytes(sent), response.get("content-type")))
        self.audit(record, response, state.get(ROUTE_KEY), err or state.get(ERROR_KEY))

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        state = request_state(scope)
        record = RequestRecord(
            method=scope["method"],
            url=request_url(scope),
            timers=state.setdefault(TIMERS_KEY, []),
        )
        state[REQUEST_RECORD_KEY] = record
        response: ResponseRecord | None = None
        audited = False
        sent = bytearray() if self.capture_body else None

        async def send_wrapper(message: Message) -> None:
            nonlocal response, audited
            if message["type"] == "http.response.start":
                response = ResponseRecord(
                    status_code=message["status"],
                    headers={
                        key.decode("latin-1").lower(): value.decode("latin-1")
                        for key, value in message.get("headers", [])
                    },
                )
            await send(message)
            if sent is not None and message["type"] == "http.response.body":
                sent.extend(message.get("body", b""))
            if (
                message["type"] == "http.response.body"
                and not message.get("more_body", False)
                and not audited
            ):
                audited = True
                self._emit(scope, record, response or ResponseRecord(status_code=500), sent=sent)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception as exc:
            if not audited:
                audited = True
                self._emit(scope, record, response or ResponseRecord(status_code=500), err=exc)
            raise
