"""Logging setup for srcvault and the uvicorn server it runs under."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

LOGGERS = ("srcvault", "uvicorn", "uvicorn.error", "uvicorn.access")


def setup_logging(log_level: str = "INFO", console: Console | None = None) -> None:
    """Route srcvault and uvicorn logs through a single rich handler on stderr."""
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
        log_time_format="[%Y-%m-%d %H:%M:%S]",
    )
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))

    for name in LOGGERS:
        logger = logging.getLogger(name)
        logger.handlers.clear()
        logger.addHandler(handler)
        logger.setLevel(level)
        logger.propagate = False
