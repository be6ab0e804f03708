"""Logging helpers shared by all frec modules."""

from __future__ import annotations

import logging

from .config import LOG_FORMAT
from .config import LOG_LEVEL

ROOT_LOGGER_NAME = "frec"


def get_logger(name: str) -> logging.Logger:
    """Return a logger namespaced under the package root logger.

    Args:
        name: Dotted module name, e.g. "engine.standard"

    Returns:
        Logger named ``frec.<name>``
    """
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def setup_logging(level: int | str | None = None, fmt: str | None = None) -> logging.Logger:
    """Attach a stream handler to the package root logger.

    Calling this more than once only updates the level; handlers are not
    duplicated.

    Args:
        level: Logging level (name or number). Defaults to FREC_LOG_LEVEL.
        fmt: Log record format. Defaults to FREC_LOG_FORMAT.

    Returns:
        The configured root logger for the package.
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    if level is None:
        level = LOG_LEVEL
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.WARNING

    if not any(getattr(h, "_frec_handler", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(fmt or LOG_FORMAT))
        handler._frec_handler = True
        logger.addHandler(handler)

    logger.setLevel(level)
    return logger
