"""Logging setup for the command-line entry point."""

import logging

from rich.console import Console
from rich.logging import RichHandler

PACKAGE_LOGGER = "macos_catalog"


def setup_logging(level: str | int = logging.WARNING) -> logging.Logger:
    """
    Route package log records to stderr through Rich.

    Safe to call more than once; the handler is replaced, not duplicated.
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    logger.setLevel(level)

    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)

    handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
        markup=False
    )
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    logger.addHandler(handler)
    logger.propagate = False
    return logger
