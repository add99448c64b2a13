"""
Loguru sink configuration shared by the API and the CLI.
"""

from __future__ import annotations

import sys
from pathlib import Path

from loguru import logger

from config import Settings, get_settings

CONSOLE_FORMAT = "<dim>{time:HH:mm:ss}</dim> | <level>{level: <8}</level> | {message}"


def setup_logging(settings: Settings | None = None, level: str | None = None) -> None:
    """
    Replace the default loguru sink with the configured ones.

    Args:
        settings: Settings to read log level and file from (defaults to cached settings)
        level: Override for the stderr level (the CLI passes WARNING)
    """
    settings = settings or get_settings()
    logger.remove()
    logger.add(sys.stderr, level=level or settings.log_level, format=CONSOLE_FORMAT)

    if settings.log_file:
        Path(settings.log_file).parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            settings.log_file,
            level=settings.log_level,
            rotation="10 MB",
            retention="14 days",
            enqueue=True,
        )
