"""
Composition root: builds the FastAPI application with its middleware chain,
admin routes, error boundary and audit hook. Opens no socket.

Middleware runs outermost first: audit -> CORS -> accept -> query -> body.
Starlette wraps the last added middleware around the others, so they are
added in reverse.
"""
from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from baseserver.config.settings import Settings
from baseserver.core.audit import AuditOptions, make_audit_logger
from baseserver.core.errors import ConfigurationError
from baseserver.core.server_info import ServerInfo
from baseserver.core.supervisor import current_process_supervisor
from baseserver.infrastructure.routing.starlette_registry import StarletteRouteRegistry
from baseserver.middleware.accept_parser import AcceptParserMiddleware
from baseserver.middleware.audit import AuditMiddleware
from baseserver.middleware.body_parser import BodyParserMiddleware
from baseserver.middleware.cors import cors_options
from baseserver.middleware.query_parser import QueryParserMiddleware
from baseserver.routers.admin import register_admin_routes
from baseserver.routers.route_class import AuditedRoute


@asynccontextmanager
async def supervised_lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Hands the serving event loop to the process supervisor, if one is installed."""
    supervisor = current_process_supervisor()
    if supervisor is not None:
        supervisor.watch_loop(asyncio.get_running_loop())
    yield


def create_app(app_name: str, logger: Any, settings: Settings | None = None) -> FastAPI:
    if not app_name:
        raise ConfigurationError("Require parameter app_name in create_app(app_name, logger)")
    if not logger:
        raise ConfigurationError("Require parameter logger in create_app(app_name, logger)")
    _settings = settings or Settings()

    docs: dict[str, Any] = {}
    if not _settings.enable_docs:
        docs = {"openapi_url": None, "docs_url": None, "redoc_url": None}
    app = FastAPI(title=app_name, lifespan=supervised_lifespan, **docs)
    # Routes declared on the app itself get the error boundary too.
    app.router.route_class = AuditedRoute

    registry = StarletteRouteRegistry(app)
    app.state.logger = logger
    app.state.settings = _settings
    app.state.audit_body = _settings.audit_body
    app.state.route_registry = registry
    app.state.server_info = ServerInfo(app_name, registry)
    app.state.audit = make_audit_logger(AuditOptions(log=logger, body=_settings.audit_body))

    app.add_middleware(BodyParserMiddleware, max_body_size=_settings.max_body_size)
    app.add_middleware(QueryParserMiddleware)
    app.add_middleware(AcceptParserMiddleware)
    app.add_middleware(CORSMiddleware, **cors_options(_settings))
    app.add_middleware(AuditMiddleware, audit=app.state.audit, capture_body=_settings.audit_body)

    register_admin_routes(app)
    return app
