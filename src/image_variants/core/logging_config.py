"""
Logging setup for the image variants service.

A single stdout handler lives on the ``image-variants`` logger. Component
loggers (``image-variants.vector``, ``image-variants.cli``, ...) carry no
handlers of their own and propagate to it, so every record is written
exactly once whichever component emitted it.
"""

import os
import sys
import logging
from typing import Optional


DEFAULT_LOGGER_NAME = "image-variants"

_FORMATS = {
    "structured": (
        "%(asctime)s | %(name)s | %(levelname)-8s | "
        "%(filename)s:%(lineno)d | %(funcName)s() | %(message)s",
        "%Y-%m-%d %H:%M:%S",
    ),
    "simple": ("%(asctime)s - %(name)s - %(levelname)s - %(message)s", None),
}


def _parse_level(value: Optional[str]) -> int:
    level = logging.getLevelName((value or "INFO").upper())
    return level if isinstance(level, int) else logging.INFO


def setup_logger(
    name: str = DEFAULT_LOGGER_NAME,
    level: Optional[str] = None,
    format_type: str = "structured",
) -> logging.Logger:
    """
    Configure a logger with a stdout handler.

    Args:
        name: Logger name (defaults to "image-variants")
        level: Log level override (defaults to env var or INFO)
        format_type: Logging format ("structured" or "simple")

    Returns:
        Configured logger instance

    Environment Variables:
        LOG_LEVEL: Set logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        LOG_FORMAT: Set format type ("structured" or "simple")
    """
    logger = logging.getLogger(name)
    logger.setLevel(_parse_level(level or os.getenv("LOG_LEVEL")))

    # Warm Lambda containers import this module once but call us per invocation
    if not logger.handlers:
        format_name = os.getenv("LOG_FORMAT", format_type).lower()
        fmt, datefmt = _FORMATS.get(format_name, _FORMATS["simple"])
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))
        logger.addHandler(handler)

    logger.propagate = False
    return logger


def get_logger(name: str = DEFAULT_LOGGER_NAME) -> logging.Logger:
    """
    Component logger under the service logger.

    ``get_logger("vector")`` returns ``image-variants.vector``; names that
    are already qualified are used as they are.
    """
    service_logger = logging.getLogger(DEFAULT_LOGGER_NAME)
    if not service_logger.handlers:
        setup_logger()
    if name == DEFAULT_LOGGER_NAME:
        return service_logger
    if not name.startswith(DEFAULT_LOGGER_NAME + "."):
        name = f"{DEFAULT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)


def set_debug(enabled: bool = True) -> None:
    """Switch the whole service logger tree to DEBUG (or back to INFO)."""
    logging.getLogger(DEFAULT_LOGGER_NAME).setLevel(
        logging.DEBUG if enabled else logging.INFO
    )
    # Explicit component levels would shadow the service level
    for name, candidate in logging.Logger.manager.loggerDict.items():
        if name.startswith(DEFAULT_LOGGER_NAME + ".") and isinstance(
            candidate, logging.Logger
        ):
            candidate.setLevel(logging.NOTSET)


logger = setup_logger()
