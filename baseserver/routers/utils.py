from __future__ import annotations

from typing import Any

from fastapi import Request


def get_params(request: Request) -> dict[str, Any]:
    """Unified parameter namespace: query string first, then decoded body, then path params."""
    params = dict(getattr(request.state, "params", None) or {})
    for key, value in request.path_params.items():
        params.setdefault(key, value)
    return params


__all__ = ["get_params"]
