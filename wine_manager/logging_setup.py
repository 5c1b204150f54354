"""Logging configuration for the command-line entry point.

Library modules only create module-level loggers; handlers are installed
once here.
"""

import logging

from rich.console import Console
from rich.logging import RichHandler


def configure_logging(level: str = "INFO") -> None:
    """Route log records to stderr through a rich handler.

    Args:
        level: Name of the root log level.
    """
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )
    # Keep per-request noise out of INFO output
    logging.getLogger("httpx").setLevel(max(logging.WARNING, logging.getLevelName(level)))


__all__ = ["configure_logging"]
