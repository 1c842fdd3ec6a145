"""
Structured Logging Utilities for rolegraph

JSON log output for the package logger. Embedders that manage logging
themselves can ignore this module; every rolegraph module logs through
logging.getLogger(__name__).
"""

import json
import logging
from datetime import datetime, timezone
from typing import Optional

from .config import get_settings

PACKAGE_LOGGER = "rolegraph"


class StructuredLogFormatter(logging.Formatter):
    """
    JSON formatter for structured logging

    Usage:
        handler = logging.StreamHandler()
        handler.setFormatter(StructuredLogFormatter())
        logger.addHandler(handler)
    """

    def format(self, record: logging.LogRecord) -> str:
        log_obj = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_obj)


def setup_logging(level: Optional[str] = None) -> logging.Logger:
    """
    Install a JSON handler on the package logger

    Args:
        level: Log level name (default: RBACSettings.log_level)

    Returns:
        The configured package logger
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel((level or get_settings().log_level).upper())

    for handler in logger.handlers:
        if isinstance(handler.formatter, StructuredLogFormatter):
            return logger

    handler = logging.StreamHandler()
    handler.setFormatter(StructuredLogFormatter())
    logger.addHandler(handler)
    return logger
