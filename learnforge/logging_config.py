"""Loguru sink configuration for applications embedding learnforge."""
from __future__ import annotations

import sys

from loguru import logger

from learnforge.config import Settings, get_settings


def configure_logging(
    level: str | None = None,
    log_file: str | None = None,
    settings: Settings | None = None,
) -> None:
    """
    Replace loguru's default sink with the project's stderr (and optional file) sinks.

    Args:
        level: Minimum level (defaults to settings.log_level)
        log_file: Optional path for a rotating file sink (defaults to settings.log_file)
        settings: Settings to read defaults from
    """
    settings = settings or get_settings()
    level = level or settings.log_level
    log_file = log_file if log_file is not None else settings.log_file

    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        format="<dim>{time:HH:mm:ss}</dim> | <level>{level: <8}</level> | {message}",
    )
    if log_file:
        logger.add(
            log_file,
            level=level,
            rotation="10 MB",
            retention=5,
            encoding="utf-8",
        )
