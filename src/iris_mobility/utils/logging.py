"""Centralized JSON formatter and handler setup for structured logging."""

import json
import logging
import sys
from datetime import datetime
from typing import Any, Dict, Union

PACKAGE_LOGGER = "iris_mobility"

_RESERVED = {
    "msg", "args", "levelname", "levelno", "pathname", "filename",
    "module", "exc_info", "exc_text", "stack_info", "lineno",
    "funcName", "created", "msecs", "relativeCreated", "thread",
    "threadName", "processName", "process", "name", "message",
    "taskName",
}


class JsonFormatter(logging.Formatter):
    """Emit log records as single-line JSON objects.

    Merges any `extra=` kwargs directly into the payload.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created).isoformat() + "Z",
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }

        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)

        # Merge any extra fields passed via logger.info(..., extra={...})
        for key, value in getattr(record, "__dict__", {}).items():
            if key not in _RESERVED:
                payload[key] = value

        # safe fallback for non-serializable objects
        return json.dumps(payload, default=str)


def configure_logging(
    level: Union[int, str] = logging.WARNING,
    json_format: bool = False,
) -> logging.Logger:
    """Install a single stderr handler on the package logger.

    Calling it again replaces the previous handler instead of stacking a
    second one.

    Args:
        level: Logging level name or number.
        json_format: Use ``JsonFormatter`` instead of the plain text format.

    Returns:
        The configured ``iris_mobility`` logger.
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    if isinstance(level, str):
        name = level
        level = logging.getLevelName(name.upper())
        if not isinstance(level, int):
            raise ValueError(f"Unknown log level: {name}")
    logger.setLevel(level)

    for handler in list(logger.handlers):
        if getattr(handler, "_iris_handler", False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    if json_format:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)-7s %(name)s: %(message)s")
        )
    handler._iris_handler = True
    logger.addHandler(handler)
    return logger
