"""Shared helpers for middleware that answer a request themselves."""
from __future__ import annotations

import json
from typing import Any, MutableMapping

from starlette.responses import JSONResponse
from starlette.types import Receive, Send

from baseserver.core.errors import HttpError
from baseserver.core.timers import request_state
from baseserver.domain.models import ResponseBody

PARAMS_KEY = "params"
RESPONSE_BODY_KEY = "response_body"


def merge_params(scope: MutableMapping[str, Any], values: dict[str, Any], *, override: bool = False) -> dict[str, Any]:
    """Merge into the unified parameter namespace; existing keys win unless `override`."""
    params = request_state(scope).setdefault(PARAMS_KEY, {})
    for key, value in values.items():
        if override or key not in params:
            params[key] = value
    return params


def decode_payload(raw: bytes | None, content_type: str | None, charset: str = "utf-8") -> Any:
    """Body bytes as the client would read them: JSON when declared, else text."""
    if raw is None:
        return None
    media_type = (content_type or "").lower()
    if "json" in media_type:
        try:
            return json.loads(raw)
        except ValueError:
            pass
    try:
        return raw.decode(charset)
    except (UnicodeDecodeError, LookupError):
        return raw


async def send_error(scope: MutableMapping[str, Any], receive: Receive, send: Send, err: HttpError) -> None:
    request_state(scope)[RESPONSE_BODY_KEY] = ResponseBody.error(err, err.body)
    response = JSONResponse(err.body, status_code=err.status_code)
    await response(scope, receive, send)
