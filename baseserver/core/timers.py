"""Phase timing samples kept on the ASGI request state."""
from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Any, Iterator, MutableMapping

from baseserver.domain.models import TimerSample

TIMERS_KEY = "timers"


def request_state(scope: MutableMapping[str, Any]) -> dict[str, Any]:
    """Shared per-request state dict; the same object backs `request.state`."""
    return scope.setdefault("state", {})


def add_timer(scope: MutableMapping[str, Any], name: str, elapsed_ns: int) -> TimerSample:
    sample = TimerSample.from_ns(name, elapsed_ns)
    request_state(scope).setdefault(TIMERS_KEY, []).append(sample)
    return sample


@contextmanager
def phase_timer(scope: MutableMapping[str, Any], name: str) -> Iterator[None]:
    start = time.perf_counter_ns()
    try:
        yield
    finally:
        add_timer(scope, name, time.perf_counter_ns() - start)
