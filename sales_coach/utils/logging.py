"""Logging configuration for Sales Coach."""

import logging

from rich.console import Console
from rich.logging import RichHandler

# Client libraries that log every request at INFO
NOISY_LOGGERS = ("google", "google_genai", "httpx", "httpcore", "urllib3")


def setup_logging(level: str = "INFO", show_path: bool = False) -> None:
    """
    Route engine logs through rich on stderr.

    Safe to call more than once: the CLI callback and the API factory both
    call it, and the last level wins.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)
        show_path: Include the emitting module path on each line
    """
    handler = RichHandler(
        console=Console(stderr=True),
        rich_tracebacks=True,
        tracebacks_show_locals=False,
        show_path=show_path,
    )
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[handler],
        force=True,
    )

    quiet_level = logging.DEBUG if level.upper() == "DEBUG" else logging.WARNING
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(quiet_level)
