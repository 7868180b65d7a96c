"""Domain models for request auditing."""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


@dataclass(frozen=True)
class TimerSample:
    """A named high-resolution duration as (seconds, nanoseconds)."""

    name: str
    time: tuple[int, int]

    @staticmethod
    def from_ns(name: str, elapsed_ns: int) -> "TimerSample":
        seconds, nanoseconds = divmod(max(elapsed_ns, 0), 1_000_000_000)
        return TimerSample(name=name, time=(seconds, nanoseconds))


@dataclass
class RequestRecord:
    """Per-request record, lives until the audit line is emitted."""

    method: str
    url: str
    start_time_ms: float = field(default_factory=lambda: time.time() * 1000)
    timers: list[TimerSample] = field(default_factory=list)


class BodyKind(str, Enum):
    PLAIN = "plain"
    ERROR_WRAPPER = "error_wrapper"


@dataclass(frozen=True)
class ResponseBody:
    """Response payload tagged with how it was produced.

    PLAIN carries the value sent to the client in `payload`. ERROR_WRAPPER
    carries the error object in `payload` and the body the client received in
    `inner_payload`.
    """

    kind: BodyKind
    payload: Any = None
    inner_payload: Any = None

    @staticmethod
    def plain(payload: Any) -> "ResponseBody":
        return ResponseBody(kind=BodyKind.PLAIN, payload=payload)

    @staticmethod
    def error(wrapper: Any, inner_payload: Any) -> "ResponseBody":
        return ResponseBody(kind=BodyKind.ERROR_WRAPPER, payload=wrapper, inner_payload=inner_payload)


@dataclass
class ResponseRecord:
    status_code: int
    headers: dict[str, str] = field(default_factory=dict)
    body: ResponseBody | None = None

    def get(self, name: str) -> str | None:
        return self.headers.get(name.lower())
