"""
Logging setup for the command line shell and embedding applications.
"""

import logging
import os
from typing import Optional

from sovereign_attention.core.config.models import LoggingConfig


DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def setup_logging(config: Optional[LoggingConfig] = None) -> None:
    """
    Set up logging configuration for the application.

    Console logging is configured through ``logging.basicConfig``; when the
    configuration names a log file a ``FileHandler`` with the same format is
    attached to the package logger.

    Args:
        config: Logging configuration (defaults are used if None)
    """
    config = config or LoggingConfig()
    level = logging.getLevelName(config.level)

    logging.basicConfig(
        level=level,
        format=config.format,
        datefmt=DATE_FORMAT
    )
    logging.getLogger().setLevel(level)

    if config.log_file:
        package_logger = logging.getLogger("sovereign_attention")
        log_path = os.path.abspath(config.log_file)
        for handler in package_logger.handlers:
            if isinstance(handler, logging.FileHandler) and handler.baseFilename == log_path:
                return

        config.log_file.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(config.log_file, encoding='utf-8')
        handler.setFormatter(logging.Formatter(config.format, datefmt=DATE_FORMAT))
        handler.setLevel(level)
        package_logger.addHandler(handler)
