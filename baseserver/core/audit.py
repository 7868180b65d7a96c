"""
Audit logger: one structured INFO entry per completed request.

`make_audit_logger` derives a child logger tagged `audit=True` and returns a
callable `audit(req, res, route, err)` suitable as a post-response hook.
Serialized request, response, error and latency are bound as loguru `extra`
fields, so JSON sinks emit them as structured data.
"""
from __future__ import annotations

import math
import time
from dataclasses import dataclass
from typing import Any, Callable

from baseserver.constants import RESPONSE_TIME_HEADER
from baseserver.core.errors import ConfigurationError, serialize_error
from baseserver.domain.models import BodyKind, RequestRecord, ResponseRecord

ErrorSerializer = Callable[[BaseException | None], Any]


@dataclass(frozen=True)
class AuditOptions:
    log: Any
    body: bool = False
    err_serializer: ErrorSerializer | None = None


def timer_to_ms(seconds: int, nanoseconds: int) -> int:
    return math.floor(seconds * 1000 + nanoseconds / 1_000_000)


def _numeric(value: Any) -> int | float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, str):
        for cast in (int, float):
            try:
                return _numeric(cast(value.strip()))
            except ValueError:
                continue
    return None


class AuditLogger:
    def __init__(self, options: AuditOptions) -> None:
        if options is None or options.log is None:
            raise ConfigurationError("Require options.log in make_audit_logger(options)")
        self._capture_body = options.body is True
        self._serializers: dict[str, Callable[[Any], Any]] = {
            "err": options.err_serializer or serialize_error,
            "req": self.serialize_request,
            "res": self.serialize_response,
        }
        self._log = options.log.bind(audit=True)

    def serialize_request(self, req: RequestRecord | None) -> dict[str, Any] | bool:
        if not req:
            return False
        timers: dict[str, int] = {}
        for sample in req.timers or ():
            seconds, nanoseconds = sample.time
            timers[sample.name] = timer_to_ms(seconds, nanoseconds)
        return {"method": req.method, "url": req.url, "timers": timers}

    def serialize_response(self, res: ResponseRecord | None) -> dict[str, Any] | bool:
        if not res:
            return False
        payload: dict[str, Any] = {"statusCode": res.status_code}
        if self._capture_body:
            body = res.body
            if body is None:
                payload["body"] = None
            elif body.kind is BodyKind.ERROR_WRAPPER:
                payload["body"] = body.inner_payload
            else:
                payload["body"] = body.payload
        return payload

    def serialize(self, field: str, value: Any) -> Any:
        return self._serializers[field](value)

    @staticmethod
    def latency(req: RequestRecord | None, res: ResponseRecord | None) -> int | float | None:
        """Milliseconds; a numeric Response-Time value wins over wall clock."""
        explicit = _numeric(res.get(RESPONSE_TIME_HEADER)) if res else None
        if explicit is not None:
            return explicit
        if req is None:
            return None
        return round(time.time() * 1000 - req.start_time_ms, 3)

    def __call__(
        self,
        req: RequestRecord | None,
        res: ResponseRecord | None,
        route: str | None = None,
        err: BaseException | None = None,
    ) -> bool:
        fields: dict[str, Any] = {
            "req": self.serialize("req", req),
            "res": self.serialize("res", res),
            "latency": self.latency(req, res),
        }
        if err is not None:
            fields["err"] = self.serialize("err", err)
        self._log.bind(**fields).info("handled: {}", res.status_code if res else None)
        return True


def make_audit_logger(options: AuditOptions) -> AuditLogger:
    return AuditLogger(options)
