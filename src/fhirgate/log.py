"""Logging setup for the fhirgate CLI."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

from fhirgate.normalize.redaction import RedactingFilter

__all__ = ["LOGGER_NAME", "RedactingFilter", "configure_logging"]

LOGGER_NAME = "fhirgate"


def configure_logging(
    level: str | int = logging.INFO,
    verbose: bool = False,
    console: Console | None = None,
) -> logging.Logger:
    """Install a RichHandler on the package logger.

    Repeated calls only adjust the level.

    Args:
        level: Log level name or number
        verbose: Force DEBUG regardless of ``level``
        console: Console to log to (stderr if None)

    Returns:
        The configured package logger
    """
    logger = logging.getLogger(LOGGER_NAME)
    resolved = logging.DEBUG if verbose else level
    if isinstance(resolved, str):
        resolved = logging.getLevelName(resolved.upper())
        if not isinstance(resolved, int):
            resolved = logging.INFO

    logger.setLevel(resolved)

    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        handler = RichHandler(
            console=console or Console(stderr=True),
            show_path=False,
            rich_tracebacks=False,
        )
        handler.addFilter(RedactingFilter())
        logger.addHandler(handler)

    return logger
