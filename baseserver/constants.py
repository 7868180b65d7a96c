"""Service-level constants shared across modules."""
from __future__ import annotations

SERVICE_NAME = "baseserver"

RESPONSE_TIME_HEADER = "response-time"


class HttpMethod:
    GET = "GET"
    PUT = "PUT"
    DELETE = "DELETE"
    POST = "POST"
    PATCH = "PATCH"


# Key order of the admin route listing.
LISTED_METHODS = (HttpMethod.GET, HttpMethod.PUT, HttpMethod.DELETE, HttpMethod.POST)

BODY_METHODS = frozenset({HttpMethod.POST, HttpMethod.PUT, HttpMethod.PATCH, HttpMethod.DELETE})


class TimerPhase:
    ACCEPT_PARSER = "accept_parser"
    QUERY_PARSER = "query_parser"
    BODY_PARSER = "body_parser"
    HANDLER = "handler"


ACCEPTABLE_MEDIA_TYPES = (
    "application/json",
    "text/plain",
    "application/octet-stream",
    "application/javascript",
)
