"""Logging setup for the command line and the HTTP server."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "flatbridge"


def setup_logging(level: str = "INFO", console: Console | None = None) -> logging.Logger:
    """Send flatbridge log records to stderr through rich.

    Calling it again replaces the previous handler, so the level can be
    changed at runtime.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR)
        console: Console to render to (defaults to stderr)

    Returns:
        The package logger

    Raises:
        ValueError: If the level name is unknown
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown log level: {level}")

    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        log_time_format="%Y-%m-%dT%H:%M:%S",
    )
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(numeric_level)
    return logger
