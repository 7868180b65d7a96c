"""Error taxonomy and the standard error serializer."""
from __future__ import annotations

import traceback
from typing import Any


class ConfigurationError(TypeError):
    """A required construction parameter is missing or invalid."""


class ServerStartError(RuntimeError):
    """The HTTP listener could not be brought up."""


class HttpError(Exception):
    """An error that maps to an HTTP response.

    `body` is the payload sent to the client; the exception itself is the
    wrapper and never reaches the wire.
    """

    status_code = 500
    code = "Internal"

    def __init__(self, message: str = "", *, status_code: int | None = None, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if code is not None:
            self.code = code

    @property
    def body(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message}


class BadRequestError(HttpError):
    status_code = 400
    code = "BadRequest"


class InvalidContentError(HttpError):
    status_code = 400
    code = "InvalidContent"


class NotAcceptableError(HttpError):
    status_code = 406
    code = "NotAcceptable"


class PayloadTooLargeError(HttpError):
    status_code = 413
    code = "PayloadTooLarge"


class InternalError(HttpError):
    status_code = 500
    code = "Internal"


def as_http_error(exc: BaseException) -> HttpError:
    """Return `exc` when it already is an HttpError, else wrap it as InternalError."""
    if isinstance(exc, HttpError):
        return exc
    wrapped = InternalError(str(exc) or exc.__class__.__name__)
    wrapped.__cause__ = exc
    return wrapped


_BASE_EXCEPTION_ATTRS = frozenset({"args", "message", "__cause__", "__context__", "__traceback__"})


def serialize_error(err: BaseException | None) -> dict[str, Any] | None:
    """Standard error serializer: name, message, stack and extra public attributes."""
    if err is None:
        return None
    payload: dict[str, Any] = {
        "name": err.__class__.__name__,
        "message": str(err),
        "stack": "".join(traceback.format_exception(type(err), err, err.__traceback__)),
    }
    for key, value in vars(err).items():
        if key.startswith("_") or key in _BASE_EXCEPTION_ATTRS or key in payload:
            continue
        payload[key] = value
    return payload
