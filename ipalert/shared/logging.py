"""Logging configuration utilities."""

import logging
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import List, Optional

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Daily log files, one week kept
LOG_BACKUP_COUNT = 7


def setup_logging(
    level: str = "INFO",
    format_string: Optional[str] = None,
    quiet_loggers: Optional[List[str]] = None,
    log_file: Optional[str] = None,
) -> None:
    """Configure logging for IP Alert.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        format_string: Custom format string for log messages.
        quiet_loggers: List of logger names to set to WARNING level.
        log_file: Optional path of a log file rotated at midnight.
    """
    if format_string is None:
        format_string = DEFAULT_FORMAT

    log_level = getattr(logging, level.upper(), logging.INFO)

    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            TimedRotatingFileHandler(
                str(log_path),
                when="midnight",
                backupCount=LOG_BACKUP_COUNT,
                encoding="utf-8",
            )
        )

    logging.basicConfig(
        level=log_level,
        format=format_string,
        handlers=handlers,
    )

    # Quiet down verbose third-party loggers
    default_quiet = ["asyncio", "aiohttp", "paho"]
    quiet_loggers = (quiet_loggers or []) + default_quiet

    for logger_name in quiet_loggers:
        logging.getLogger(logger_name).setLevel(logging.WARNING)
