"""
Logging setup.

All modules import ``logger`` from loguru directly; this module only configures
the sinks once for the process.
"""

import sys
from typing import Optional

from loguru import logger

from .config import get_settings

_configured = False


def setup_logging(level: Optional[str] = None, log_file: Optional[str] = None) -> None:
    """Install the stderr sink and, if requested, a rotating file sink."""
    global _configured

    settings = get_settings()
    level = (level or settings.log_level).upper()
    log_file = log_file if log_file is not None else settings.log_file

    logger.remove()

    if sys.stderr is not None:
        logger.add(
            sys.stderr,
            format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>",
            level=level,
            colorize=True,
        )

    if log_file:
        logger.add(
            log_file,
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function} | {message}",
            level="DEBUG",
            rotation="1 day",
            retention="7 days",
            compression="zip",
            encoding="utf-8",
        )

    _configured = True


def ensure_logging() -> None:
    """Configure logging unless the application already did."""
    if not _configured:
        setup_logging()
