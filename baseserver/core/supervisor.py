"""
Process supervisor: fail-fast handling of exceptions raised outside any request.

Installs itself into `sys.excepthook` and `threading.excepthook` once per
process, and into the exception handler of each event loop it is asked to
watch. An uncaught exception is logged at CRITICAL and the process exits with
status 1; state after such a failure is not trusted.
"""
from __future__ import annotations

import asyncio
import os
import sys
import threading
from types import TracebackType
from typing import Any, Callable

from baseserver.core.errors import ConfigurationError

FATAL_MESSAGE = "Uncaught fatal exception, process will exit now."

_PASSTHROUGH = (KeyboardInterrupt, SystemExit)


class ProcessSupervisor:
    def __init__(self, logger: Any, *, exit_func: Callable[[int], Any] = os._exit) -> None:
        if not logger:
            raise ConfigurationError("Require parameter logger in ProcessSupervisor(logger)")
        self._logger = logger
        self._exit = exit_func
        self._lock = threading.Lock()
        self._installed = False
        self._previous_excepthook = sys.excepthook
        self._previous_threading_excepthook = threading.excepthook
        self._watched_loops: list[tuple[asyncio.AbstractEventLoop, Any]] = []

    @property
    def installed(self) -> bool:
        return self._installed

    def install(self) -> "ProcessSupervisor":
        with self._lock:
            if self._installed:
                return self
            self._previous_excepthook = sys.excepthook
            self._previous_threading_excepthook = threading.excepthook
            sys.excepthook = self._on_uncaught
            threading.excepthook = self._on_thread_uncaught
            self._installed = True
        return self

    def uninstall(self) -> None:
        with self._lock:
            if not self._installed:
                return
            if sys.excepthook == self._on_uncaught:
                sys.excepthook = self._previous_excepthook
            if threading.excepthook == self._on_thread_uncaught:
                threading.excepthook = self._previous_threading_excepthook
            for loop, previous in self._watched_loops:
                if not loop.is_closed() and loop.get_exception_handler() == self._on_loop_exception:
                    loop.set_exception_handler(previous)
            self._watched_loops = []
            self._installed = False

    def watch_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        """Route exceptions nobody awaited on `loop` (callbacks, orphan tasks) here."""
        with self._lock:
            if loop.get_exception_handler() == self._on_loop_exception:
                return
            self._watched_loops.append((loop, loop.get_exception_handler()))
            loop.set_exception_handler(self._on_loop_exception)

    def handle(self, exc: BaseException) -> None:
        self._logger.opt(exception=exc).critical(FATAL_MESSAGE)
        self._exit(1)

    def _on_uncaught(
        self,
        exc_type: type[BaseException],
        exc: BaseException,
        tb: TracebackType | None,
    ) -> None:
        if issubclass(exc_type, _PASSTHROUGH):
            self._previous_excepthook(exc_type, exc, tb)
            return
        self.handle(exc)

    def _on_thread_uncaught(self, args: threading.ExceptHookArgs) -> None:
        if args.exc_type is None or issubclass(args.exc_type, _PASSTHROUGH):
            self._previous_threading_excepthook(args)
            return
        self.handle(args.exc_value if args.exc_value is not None else args.exc_type())

    def _on_loop_exception(self, loop: asyncio.AbstractEventLoop, context: dict[str, Any]) -> None:
        exc = context.get("exception")
        if exc is None or isinstance(exc, _PASSTHROUGH):
            loop.default_exception_handler(context)
            return
        self.handle(exc)


_supervisor: ProcessSupervisor | None = None
_supervisor_lock = threading.Lock()


def install_process_supervisor(logger: Any, **kwargs: Any) -> ProcessSupervisor:
    """Single registration point; later calls return the supervisor already installed."""
    global _supervisor
    with _supervisor_lock:
        if _supervisor is None or not _supervisor.installed:
            _supervisor = ProcessSupervisor(logger, **kwargs).install()
        return _supervisor


def current_process_supervisor() -> ProcessSupervisor | None:
    with _supervisor_lock:
        if _supervisor is not None and _supervisor.installed:
            return _supervisor
        return None


def reset_process_supervisor() -> None:
    global _supervisor
    with _supervisor_lock:
        if _supervisor is not None:
            _supervisor.uninstall()
        _supervisor = None
