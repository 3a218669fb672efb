"""
Logging configuration.

Configures loguru sinks from settings.
"""

import sys

from loguru import logger

from accrual.config.settings import Settings, settings as default_settings


def configure_logging(settings: Settings | None = None) -> None:
    """
    Replace default loguru sinks with stderr and optional file sink.

    Args:
        settings: Settings to read level and file path from
    """
    settings = settings or default_settings

    logger.remove()
    logger.add(sys.stderr, level=settings.log_level)

    if settings.log_file:
        logger.add(
            settings.log_file,
            rotation="1 day",
            retention="7 days",
            level=settings.log_level,
        )

    logger.debug(
        f"Logging configured (level={settings.log_level}, "
        f"file={settings.log_file or '-'})"
    )
