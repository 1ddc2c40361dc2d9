import logging
import os

LOGGER_NAME = "mail-alive-exporter"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _env_debug() -> bool:
    return os.environ.get("DEBUG", "false").lower() in ("1", "true", "yes")


def configure_logging(debug: bool | None = None) -> logging.Logger:
    """(Re)configure the exporter logger with a single stream handler.

    Safe to call repeatedly; handlers are replaced rather than stacked.
    """
    if debug is None:
        debug = _env_debug()
    log = logging.getLogger(LOGGER_NAME)
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    log.handlers.clear()
    log.addHandler(handler)
    log.setLevel(logging.DEBUG if debug else logging.INFO)
    log.propagate = False
    return log


DEBUG = _env_debug()
logger = configure_logging(DEBUG)
