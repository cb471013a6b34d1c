"""Structured key=value logging for refinement runs."""

import logging
import sys
from enum import Enum
from typing import Any

from pydantic import ValidationError

# Context fields printed right after the message, ahead of other extras
PROMOTED_FIELDS = ("template", "current_layer", "next_layer")


def _format_value(value: Any) -> str:
    if isinstance(value, Enum):
        value = value.value
    if isinstance(value, (list, tuple, set)):
        value = ",".join(str(item) for item in value)
    text = str(value)
    if not text or any(ch.isspace() for ch in text) or "=" in text:
        return f'"{text}"'
    return text


class StructuredFormatter(logging.Formatter):
    """key=value formatter; promoted refinement fields come first."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "module": record.module,
            "function": record.funcName,
            "message": record.getMessage(),
        }

        extra_data = dict(getattr(record, "extra_data", {}))
        for field in PROMOTED_FIELDS:
            if field in extra_data:
                log_data[field] = extra_data.pop(field)
        log_data.update(extra_data)

        line = " ".join(f"{key}={_format_value(value)}" for key, value in log_data.items())
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def _level_from_settings() -> int:
    from refinery.core.config import get_settings

    try:
        settings = get_settings()
    except ValidationError:
        return logging.INFO

    if settings.LOG_LEVEL:
        return getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    return logging.DEBUG if settings.REFINERY_ENV == "dev" else logging.INFO


def get_logger(name: str) -> logging.Logger:
    """
    Get a configured logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger writing structured lines to stdout
    """
    logger = logging.getLogger(name)

    # Only configure if not already configured
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(StructuredFormatter())
        logger.addHandler(handler)
        logger.setLevel(_level_from_settings())

    return logger


def log_with_context(logger: logging.Logger, level: int, msg: str, **kwargs: Any) -> None:
    """
    Log with additional context fields.

    Args:
        logger: Logger instance
        level: Log level (logging.INFO, etc.)
        msg: Log message
        **kwargs: Context fields (e.g., template, current_layer, used_fallback)
    """
    logger.log(level, msg, extra={"extra_data": kwargs})
