"""
Route class carrying the request-scoped error boundary.

Every route built with `AuditedRoute` records a handler timing sample, tags the
request with its route pattern, keeps the response body for the audit entry,
and turns uncaught exceptions into error responses after logging them.
"""
from __future__ import annotations

from typing import Any, Callable, Coroutine

from fastapi import Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.routing import APIRoute, APIRouter
from loguru import logger as default_logger
from starlette.exceptions import HTTPException as StarletteHTTPException

from baseserver.constants import SERVICE_NAME, TimerPhase
from baseserver.core.errors import as_http_error
from baseserver.core.timers import phase_timer, request_state
from baseserver.domain.models import ResponseBody
from baseserver.middleware.audit import ERROR_KEY, ROUTE_KEY
from baseserver.middleware.responses import RESPONSE_BODY_KEY, decode_payload


def _decoded_body(response: Response) -> Any:
    return decode_payload(getattr(response, "body", None), response.media_type, response.charset)


def handle_route_exception(request: Request, route: str, exc: Exception) -> Response:
    log = getattr(request.app.state, "logger", None) or default_logger
    log.bind(service_name=SERVICE_NAME, event="uncaught_exception", route=route).opt(exception=exc).error(
        "uncaughtException"
    )
    err = as_http_error(exc)
    state = request_state(request.scope)
    state[ERROR_KEY] = exc
    state[RESPONSE_BODY_KEY] = ResponseBody.error(err, err.body)
    return JSONResponse(err.body, status_code=err.status_code)


class AuditedRoute(APIRoute):
    def get_route_handler(self) -> Callable[[Request], Coroutine[Any, Any, Response]]:
        original_route_handler = super().get_route_handler()
        route_path = self.path

        async def audited_route_handler(request: Request) -> Response:
            request_state(request.scope)[ROUTE_KEY] = route_path
            with phase_timer(request.scope, TimerPhase.HANDLER):
                try:
                    response = await original_route_handler(request)
                except (StarletteHTTPException, RequestValidationError):
                    raise
                except Exception as exc:
                    return handle_route_exception(request, route_path, exc)

            if getattr(request.app.state, "audit_body", False):
                request_state(request.scope)[RESPONSE_BODY_KEY] = ResponseBody.plain(_decoded_body(response))
            return response

        return audited_route_handler


def create_router(**kwargs: Any) -> APIRouter:
    """`APIRouter` whose routes carry the error boundary."""
    kwargs.setdefault("route_class", AuditedRoute)
    return APIRouter(**kwargs)
