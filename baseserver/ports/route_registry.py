"""Port: read access to the live route table. Implementations live in infrastructure."""
from __future__ import annotations

from typing import Protocol


class RouteRegistry(Protocol):
    """Interface for listing registered path patterns by HTTP method."""

    def list_by_method(self) -> dict[str, list[str]]: ...
