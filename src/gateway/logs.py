# Logging helpers for the gateway package.
# Every module takes a named logger; the handler is installed once.

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
ROOT_LOGGER = "src"


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Attach a single stream handler to the package root logger."""
    logger = logging.getLogger(ROOT_LOGGER)
    if not logger.handlers:
        h = logging.StreamHandler()
        h.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(h)
    logger.setLevel(level.upper())
    return logger
