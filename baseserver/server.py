"""
Server bootstrap: validate, build the application, listen, return a handle.

uvicorn runs in a background thread so `start_server` can return once the
socket is bound; `ServerHandle.wait` blocks the caller until shutdown.
"""
from __future__ import annotations

import threading
import time
from typing import Any

import uvicorn
from fastapi import FastAPI

from baseserver.composition import create_app
from baseserver.config.settings import Settings
from baseserver.constants import SERVICE_NAME
from baseserver.core.errors import ConfigurationError, ServerStartError
from baseserver.core.supervisor import install_process_supervisor

_POLL_INTERVAL_SECONDS = 0.05
MAX_PORT = 65535


class ServerHandle:
    """Live server: the FastAPI app plus the uvicorn server driving it."""

    def __init__(self, app: FastAPI, server: uvicorn.Server, logger: Any, *, host: str, port: int) -> None:
        self.app = app
        self._server = server
        self._logger = logger
        self._host = host
        self._port = port
        self._thread: threading.Thread | None = None
        self._startup_error: Exception | None = None

    @property
    def name(self) -> str:
        return self.app.title

    @property
    def port(self) -> int:
        return self._port

    @property
    def url(self) -> str:
        return f"http://{self._host}:{self._port}"

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def debug_info(self) -> dict[str, Any]:
        return self.app.state.server_info.debug_info()

    def _resolve_address(self) -> None:
        try:
            sockname = self._server.servers[0].sockets[0].getsockname()
        except (AttributeError, IndexError):
            return
        self._host, self._port = sockname[0], sockname[1]

    def _serve(self) -> None:
        try:
            self._server.run()
        except Exception as exc:
            if getattr(self._server, "started", False):
                raise
            # Reported by start() as ServerStartError; not a fatal uncaught error.
            self._startup_error = exc

    def start(self, timeout: float) -> "ServerHandle":
        self._thread = threading.Thread(target=self._serve, name=f"{self.name}-http", daemon=True)
        self._thread.start()

        deadline = time.monotonic() + timeout
        while not getattr(self._server, "started", False):
            if not self._thread.is_alive():
                raise ServerStartError(f"Server {self.name} failed to listen on {self.url}") from self._startup_error
            if time.monotonic() > deadline:
                self._server.should_exit = True
                raise ServerStartError(f"Server {self.name} did not start within {timeout}s")
            time.sleep(_POLL_INTERVAL_SECONDS)

        self._resolve_address()
        self.app.state.server_info.mark_listening(self._host, self._port)
        self._logger.info("Server started {}", self.url)
        return self

    def wait(self, timeout: float | None = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    def shutdown(self, timeout: float = 10.0) -> None:
        if self._thread is None:
            return
        self._server.should_exit = True
        self._thread.join(timeout)
        if self._thread.is_alive():
            self._server.force_exit = True
            self._thread.join(timeout)
        self._logger.bind(service_name=SERVICE_NAME, event="server_stopped").info("")


def start_server(
    app_name: str,
    port: int,
    logger: Any,
    *,
    settings: Settings | None = None,
    host: str | None = None,
    supervise: bool = True,
) -> ServerHandle:
    """Start the HTTP server; raises ConfigurationError before opening any socket.

    With `supervise`, the process-level fatal handler is registered for `logger`
    unless one is already installed.
    """
    if not app_name:
        raise ConfigurationError("Require parameter app_name in start_server(app_name, port, logger)")
    if not logger:
        raise ConfigurationError("Require parameter logger in start_server(app_name, port, logger)")
    if not port:
        raise ConfigurationError("Require parameter port in start_server(app_name, port, logger)")
    if isinstance(port, bool) or not isinstance(port, int) or port < 0 or port > MAX_PORT:
        raise ConfigurationError(f"port must be an integer between 1 and {MAX_PORT}, got {port!r}")

    if supervise:
        install_process_supervisor(logger)

    _settings = settings or Settings()
    _host = host or _settings.host
    app = create_app(app_name, logger, _settings)
    config = uvicorn.Config(app, host=_host, port=port, log_config=None, access_log=False)
    handle = ServerHandle(app, uvicorn.Server(config), logger, host=_host, port=port)
    return handle.start(_settings.startup_timeout_seconds)
