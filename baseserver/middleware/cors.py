"""Cross-origin policy built from settings."""
from __future__ import annotations

from typing import Any

from baseserver.config.settings import Settings

CORS_METHODS = ["GET", "HEAD", "PUT", "PATCH", "POST", "DELETE", "OPTIONS"]


def cors_options(settings: Settings) -> dict[str, Any]:
    """Keyword arguments for Starlette's CORSMiddleware (preflight and actual requests)."""
    return {
        "allow_origins": list(settings.cors_origins),
        "allow_methods": CORS_METHODS,
        "allow_headers": list(settings.cors_allow_headers),
        "expose_headers": list(settings.cors_expose_headers),
        "max_age": settings.cors_preflight_max_age,
    }
