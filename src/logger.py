import logging
import sys

from src.config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_handler = None


def _root_handler() -> logging.Handler:
    global _handler
    if _handler is None:
        _handler = logging.StreamHandler(sys.stdout)
        _handler.setFormatter(logging.Formatter(LOG_FORMAT))
    return _handler


def get_logger(name: str) -> logging.Logger:
    """Returns a module logger writing to stdout at the configured level."""
    logger = logging.getLogger(name)
    if not logger.handlers:
        logger.addHandler(_root_handler())
        logger.setLevel(settings.LOG_LEVEL)
    return logger
