"""Introspection data served by the status endpoint."""
from __future__ import annotations

import os
from datetime import datetime, timezone
from typing import Any

from baseserver.constants import ACCEPTABLE_MEDIA_TYPES
from baseserver.ports.route_registry import RouteRegistry


class ServerInfo:
    def __init__(self, name: str, registry: RouteRegistry) -> None:
        self.name = name
        self._registry = registry
        self.address: str | None = None
        self.port: int | None = None
        self.started_at: datetime | None = None

    @property
    def url(self) -> str | None:
        if self.address is None or self.port is None:
            return None
        return f"http://{self.address}:{self.port}"

    def mark_listening(self, address: str, port: int) -> None:
        self.address = address
        self.port = port
        self.started_at = datetime.now(timezone.utc)

    def debug_info(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "pid": os.getpid(),
            "url": self.url,
            "address": self.address,
            "port": self.port,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "acceptable": list(ACCEPTABLE_MEDIA_TYPES),
            "routes": self._registry.list_by_method(),
        }
