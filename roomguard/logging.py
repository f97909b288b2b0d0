"""Logging configuration utilities."""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterable
from typing import Optional

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# HTTP client libraries log every request at INFO.
_NOISY_LOGGERS: tuple[str, ...] = ("httpx", "httpcore")


def configure_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    *,
    quiet: Iterable[str] = _NOISY_LOGGERS,
) -> None:
    """Configure process wide logging handlers for the bot and health server."""
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    resolved = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(level=resolved, format=LOG_FORMAT, handlers=handlers, force=True)
    for name in quiet:
        logging.getLogger(name).setLevel(max(resolved, logging.WARNING))


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
