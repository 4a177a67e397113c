"""Logging configuration utilities."""

import logging
import time
import json
from typing import Optional

__all__ = ["JsonFormatter", "setup_logger", "component_logger"]

TEXT_FORMAT = "[%(levelname)s] %(message)s"


class JsonFormatter(logging.Formatter):
    """Format log records as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON string.

        Args:
            record: LogRecord to format

        Returns:
            JSON object with level, logger name, message and UTC time
        """
        payload = {
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "time": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime(record.created)),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def setup_logger(
    name: str,
    level: Optional[str] = None,
    format_type: str = "text",
    verbose: bool = True,
) -> logging.Logger:
    """Configure and return the application logger.

    A single stream handler is attached on first use; later calls only
    change the level.

    Args:
        name: Logger name
        level: Logging level (DEBUG, INFO, WARNING, ERROR) or None for default
        format_type: Output format: "text" or "json"
        verbose: Default to INFO when True, WARNING otherwise

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    if not logger.handlers:
        handler = logging.StreamHandler()
        if format_type == "json":
            handler.setFormatter(JsonFormatter())
        else:
            handler.setFormatter(logging.Formatter(TEXT_FORMAT))
        logger.addHandler(handler)
        logger.propagate = False

    level_name = (level or ("INFO" if verbose else "WARNING")).upper()
    logger.setLevel(getattr(logging, level_name, logging.INFO))
    return logger


def component_logger(parent: logging.Logger, component: str) -> logging.Logger:
    """Child logger sharing the parent's handler and level, e.g. ``hapscan.scanner``."""
    return parent.getChild(component)
