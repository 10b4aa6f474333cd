"""
bootstrap/log_setup.py - Logging configuration for embedding applications

The library only creates module loggers; handlers are installed here, on
request, by the application that embeds the engine.
"""

from __future__ import annotations
from typing import Optional
import json
import logging
import sys

from .config import LoggingConfig

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class JSONFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload)


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    json_format: bool = False,
    fmt: str = DEFAULT_FORMAT,
) -> logging.Logger:
    """
    Configure the "statchain" logger hierarchy.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional log file path
        json_format: Use JSON format for logs
        fmt: Format string for plain-text output

    Returns:
        The configured package logger
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    formatter = JSONFormatter() if json_format else logging.Formatter(fmt)

    package_logger = logging.getLogger("statchain")
    package_logger.setLevel(log_level)

    # Re-running setup replaces our handlers instead of stacking them
    for handler in list(package_logger.handlers):
        if getattr(handler, "_statchain_handler", False):
            package_logger.removeHandler(handler)
            handler.close()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    console_handler.setLevel(log_level)
    console_handler._statchain_handler = True
    package_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        file_handler.setLevel(log_level)
        file_handler._statchain_handler = True
        package_logger.addHandler(file_handler)

    return package_logger


def setup_logging_from_config(config: LoggingConfig) -> logging.Logger:
    """Apply a LoggingConfig."""
    return setup_logging(
        level=config.level,
        log_file=config.log_file,
        json_format=config.json_logs,
        fmt=config.format,
    )
