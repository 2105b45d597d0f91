"""Logging configuration for the mintforge CLI.

Library modules only create loggers (``logging.getLogger(__name__)``);
handlers are installed here, once per CLI invocation.
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

# Chatty third-party loggers kept at WARNING unless debugging.
_NOISY_LOGGERS = ("httpx", "httpcore")


def configure_logging(level: str = "INFO", *, console: Console | None = None) -> None:
    """Route all records through a Rich handler on stderr.

    Safe to call more than once; each call replaces the previous handlers.

    Parameters
    ----------
    level:
        Level name (``DEBUG``, ``INFO``, ...), case-insensitive.
    console:
        Console to render to; defaults to a new stderr console.
    """
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        raise ValueError(f"Unknown log level {level!r}")

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=numeric <= logging.DEBUG,
        rich_tracebacks=True,
        markup=False,
    )
    logging.basicConfig(
        level=numeric,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[handler],
        force=True,
    )
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric, logging.WARNING))
