"""Utility modules for keyhaven.

Provides common utilities:
- Logging configuration
"""

from .logging import (
    console,
    get_logger,
    setup_logging,
)


__all__ = [
    # Logging
    "setup_logging",
    "get_logger",
    "console",
]
