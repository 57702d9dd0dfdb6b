"""
Logging configuration for scanwatch.

Diagnostics go to stderr through a rich handler; stdout is reserved for the
status table and SARIF output so it can be piped.
"""

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER = "scanwatch"

# SyncConfig.verbosity -> level for scanwatch's own loggers
_LEVELS = {
    "quiet": logging.ERROR,
    "normal": logging.WARNING,
    "verbose": logging.DEBUG,
}

# Third-party loggers that log every request or filesystem poll at INFO
_CHATTY_LOGGERS = ("httpx", "httpcore", "watchfiles")


def setup_logging(verbosity: str = "normal", log_file: Optional[str] = None) -> logging.Logger:
    """
    Route scanwatch logging to stderr (and optionally a file).

    Args:
        verbosity: ``quiet``, ``normal`` or ``verbose``; unknown values
                   fall back to ``normal``
        log_file: Append a plain-text copy of every record to this path

    Returns:
        The ``scanwatch`` root logger
    """
    level = _LEVELS.get(verbosity, logging.WARNING)
    verbose = level == logging.DEBUG

    handlers: list[logging.Handler] = [
        RichHandler(
            console=Console(stderr=True),
            rich_tracebacks=True,
            tracebacks_show_locals=verbose,
            markup=False,  # messages carry URLs and SARIF text with brackets
            show_path=verbose,
        )
    ]
    if log_file:
        file_handler = logging.FileHandler(log_file, mode="a")
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)-7s %(name)s: %(message)s")
        )
        handlers.append(file_handler)

    logging.basicConfig(level=level, format="%(message)s", datefmt="[%X]", handlers=handlers, force=True)

    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if verbose else logging.WARNING)

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level)
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Logger under the ``scanwatch`` namespace; ``__name__`` passes through."""
    if name is None:
        return logging.getLogger(ROOT_LOGGER)
    if not name.startswith(ROOT_LOGGER):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)
