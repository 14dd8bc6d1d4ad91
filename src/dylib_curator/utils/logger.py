"""
Logging setup for DylibCurator.

One named logger is shared by every module. It always has a plain-text
rotating file handler when a log file is configured, and a colored stdout
handler unless console output is turned off. The two are configured
independently.

© 2026 MBP LLC. All rights reserved.
"""

import logging
import sys
from pathlib import Path
from typing import Optional, Union
from logging.handlers import RotatingFileHandler

FILE_FORMAT = '%(asctime)s | %(name)s | %(levelname)s | %(message)s'
CONSOLE_FORMAT = '%(asctime)s | %(levelname)s | %(message)s'


class ColoredFormatter(logging.Formatter):
    """Formatter that colors the level name for terminal output."""

    COLORS = {
        'DEBUG': '\033[36m',      # Cyan
        'INFO': '\033[32m',       # Green
        'WARNING': '\033[33m',    # Yellow
        'ERROR': '\033[31m',      # Red
        'CRITICAL': '\033[35m',   # Magenta
        'RESET': '\033[0m'
    }

    def format(self, record: logging.LogRecord) -> str:
        # Work on a copy so file handlers sharing the record stay uncolored
        record = logging.makeLogRecord(record.__dict__)
        log_color = self.COLORS.get(record.levelname, self.COLORS['RESET'])
        record.levelname = f"{log_color}{record.levelname}{self.COLORS['RESET']}"
        return super().format(record)


def _file_handler(log_file: Path, level: int) -> logging.Handler:
    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        log_file,
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=5,
        encoding='utf-8'
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))
    return handler


def _console_handler(level: int) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(ColoredFormatter(CONSOLE_FORMAT, datefmt='%H:%M:%S'))
    return handler


def setup_logger(
    name: str = "DylibCurator",
    log_file: Optional[Path] = None,
    level: Union[int, str] = logging.INFO,
    console: bool = True
) -> logging.Logger:
    """
    Set up a logger with optional rotating file and colored console handlers.

    Calling it again replaces (and closes) the handlers of an earlier call,
    so reconfiguring never leaks open log files.

    Args:
        name: Logger name
        log_file: Path to log file (optional)
        level: Logging level, as a number or a name such as "DEBUG"
        console: Whether to add console handler

    Returns:
        Configured logger instance
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    logger = logging.getLogger(name)
    logger.setLevel(level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if log_file:
        logger.addHandler(_file_handler(Path(log_file), level))
    if console:
        logger.addHandler(_console_handler(level))

    return logger


def configure_logging(settings) -> logging.Logger:
    """Re-apply level, log file and console output from a CuratorSettings instance."""
    return setup_logger(
        name=logger.name,
        log_file=settings.log_file,
        level=settings.log_level,
        console=settings.log_to_console,
    )


# Global logger instance
logger = setup_logger()
