from __future__ import annotations

from fastapi import FastAPI, Request

from baseserver.ports.route_registry import RouteRegistry
from baseserver.routers.route_class import AuditedRoute
from baseserver.schemas.admin import StatusResponse


async def get_server_status(request: Request) -> StatusResponse:
    return StatusResponse(status="OK", info=request.app.state.server_info.debug_info())


async def list_defined_routes(request: Request) -> dict[str, list[str]]:
    registry: RouteRegistry = request.app.state.route_registry
    return registry.list_by_method()


def register_admin_routes(app: FastAPI) -> None:
    """Admin routes go straight onto the app router so they sit in its route table."""
    app.router.add_api_route(
        "/_status",
        get_server_status,
        methods=["GET"],
        tags=["Admin"],
        summary="Server status",
        description="Returns OK with server introspection data (name, address, routes).",
        response_model=StatusResponse,
        responses={200: {"description": "Server is up."}},
        route_class_override=AuditedRoute,
    )
    app.router.add_api_route(
        "/api/admin/_routes",
        list_defined_routes,
        methods=["GET"],
        tags=["Admin"],
        summary="List registered routes",
        description="Path patterns registered for GET, PUT, DELETE and POST, in registration order.",
        responses={200: {"description": "Mapping of HTTP method to path patterns."}},
        route_class_override=AuditedRoute,
    )
