from loguru import logger

from baseserver.config.settings import Settings
from baseserver.constants import SERVICE_NAME
from baseserver.core.logging import configure_logging
from baseserver.core.supervisor import install_process_supervisor
from baseserver.server import start_server


def _log(event: str, **kwargs) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).info("")


def main() -> None:
    settings = Settings()
    configure_logging(settings)
    install_process_supervisor(logger)

    _log("server_starting", app_name=settings.app_name, port=settings.port)
    handle = start_server(settings.app_name, settings.port, logger, settings=settings)
    try:
        handle.wait()
    except KeyboardInterrupt:
        _log("server_interrupted")
        handle.shutdown()


if __name__ == "__main__":
    main()
