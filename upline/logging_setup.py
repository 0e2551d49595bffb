"""
Logging setup.

Configures loguru sinks from settings. Call once at process start
(application entry point or worker boot).
"""

import sys

from loguru import logger

from upline.config.settings import settings


def setup_logging() -> None:
    """Configure stderr and optional file sink with rotation."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=settings.log_level,
        format="{time:YYYY-MM-DD HH:mm:ss} | {level} | {name} | {message}",
    )

    if settings.log_file:
        logger.add(
            settings.log_file,
            rotation="1 day",
            retention="7 days",
            level=settings.log_level,
            encoding="utf-8",
        )

    logger.info(
        f"Logging configured: level={settings.log_level}, "
        f"environment={settings.environment}"
    )
