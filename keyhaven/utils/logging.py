"""Logging configuration for keyhaven.

Everything logs under the ``keyhaven`` logger:
- Console output through Rich, on stderr so command output stays clean
- An optional plain-text file that records every level

Log records identify vault entries and groups by id only. Passphrases and
decrypted secrets are never passed to a logger.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler


console = Console(stderr=True)

PACKAGE_LOGGER = "keyhaven"
FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# httpx logs every request URL at INFO; REST URLs carry owner and record ids
NOISY_LOGGERS = ("httpx", "httpcore")


def _console_handler(level: int, rich_output: bool) -> logging.Handler:
    if rich_output:
        handler: logging.Handler = RichHandler(
            console=console,
            show_time=True,
            show_path=False,
            rich_tracebacks=True,
        )
        handler.setFormatter(logging.Formatter("%(message)s"))
    else:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(FILE_FORMAT))
    handler.setLevel(level)
    return handler


def _file_handler(log_file: Path) -> logging.Handler:
    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_file, encoding="utf-8")
    handler.setFormatter(logging.Formatter(FILE_FORMAT))
    handler.setLevel(logging.DEBUG)
    return handler


def setup_logging(
    level: str = "WARNING",
    log_file: Optional[Path] = None,
    rich_output: bool = True,
) -> logging.Logger:
    """
    Configure the keyhaven logger.

    Calling it again replaces the handlers from the previous call.

    Args:
        level: Console log level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional file that receives all levels
        rich_output: Whether to use Rich for console output

    Returns:
        The package logger
    """
    console_level = getattr(logging, level.upper(), logging.WARNING)

    logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()

    logger.addHandler(_console_handler(console_level, rich_output))
    logger.setLevel(console_level)

    if log_file:
        logger.addHandler(_file_handler(Path(log_file)))
        logger.setLevel(logging.DEBUG)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(console_level, logging.WARNING))

    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for a specific module.

    Args:
        name: Module name (e.g., "keyhaven.vault.entries")
    """
    return logging.getLogger(name)
