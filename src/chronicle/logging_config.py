"""
Logging configuration for Chronicle.

Provides rich-formatted logging on stderr so progress output on stdout stays clean.
"""

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

_CHATTY_LIBRARIES = ("httpx", "httpcore")

CONSOLE_FORMAT = "%(message)s"
CONSOLE_FORMAT_VERBOSE = "[%(threadName)s] %(message)s"
FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(threadName)s - %(message)s"


def setup_logging(
    verbose: bool = False, quiet: bool = False, log_file: Optional[str] = None
) -> logging.Logger:
    """
    Configure logging with rich handler for colored output.

    Args:
        verbose: Enable DEBUG level logging
        quiet: Suppress all but ERROR level logging
        log_file: Optional file path to write logs to

    Returns:
        Configured logger instance for chronicle
    """
    if quiet:
        level = logging.ERROR
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.WARNING

    console = Console(stderr=True)

    rich_handler = RichHandler(
        console=console,
        rich_tracebacks=True,
        tracebacks_show_locals=verbose,
        markup=False,
        show_time=True,
        show_path=verbose,
    )
    # Period jobs and timed calls run on named pool threads
    rich_handler.setFormatter(
        logging.Formatter(CONSOLE_FORMAT_VERBOSE if verbose else CONSOLE_FORMAT, datefmt="[%X]")
    )
    handlers: list[logging.Handler] = [rich_handler]

    if log_file:
        file_handler = logging.FileHandler(log_file, mode="a")
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        handlers.append(file_handler)

    logging.basicConfig(level=level, handlers=handlers, force=True)

    # httpx logs every request at INFO; only show it when debugging
    for noisy in _CHATTY_LIBRARIES:
        logging.getLogger(noisy).setLevel(logging.DEBUG if verbose else logging.WARNING)

    logger = logging.getLogger("chronicle")
    logger.setLevel(level)

    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Get a logger instance for a specific module.

    Args:
        name: Module name (e.g., 'chronicle.planning.planner')
              If None, returns the root chronicle logger

    Returns:
        Logger instance
    """
    if name is None:
        return logging.getLogger("chronicle")

    if not name.startswith("chronicle"):
        name = f"chronicle.{name}"

    return logging.getLogger(name)
