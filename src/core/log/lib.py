"""Core logging implementation for sitecomposer."""

import logging
import sys
from typing import Optional

__all__ = ["get_logger", "resolve_level", "setup_logging"]

DEFAULT_LOGGER_NAME = "sitecomposer"


def resolve_level(level: int | str) -> int:
    """Turn a level name ("debug", "INFO") or number into a logging level.

    Unrecognized names fall back to INFO.
    """
    if isinstance(level, int):
        return level
    value = logging.getLevelName(level.strip().upper())
    return value if isinstance(value, int) else logging.INFO


def setup_logging(level: int | str = logging.INFO, stream=sys.stderr) -> None:
    """Configure basic logging.

    Args:
        level: Logging level, as a number or a level name.
        stream: Output stream.
    """
    logging.basicConfig(
        level=resolve_level(level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=stream,
    )


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get a logger instance.

    Args:
        name: Name of the logger.

    Returns:
        Logger instance.
    """
    return logging.getLogger(name or DEFAULT_LOGGER_NAME)
