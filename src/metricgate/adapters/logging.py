"""Python logging configuration for metricgate.

Provides a JSON formatter that emits one object per line, carrying any
structured fields passed through ``extra=`` alongside the message.
"""

import json
import logging
import sys
import traceback
from datetime import UTC, datetime
from typing import Any, TextIO

from metricgate.core.config import LoggingConfig

# Standard LogRecord attributes that should not be treated as extra fields
_STANDARD_LOGRECORD_ATTRS = frozenset(
    {
        "args",
        "asctime",
        "created",
        "exc_info",
        "exc_text",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "message",
        "module",
        "msecs",
        "msg",
        "name",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "taskName",
        "thread",
        "threadName",
    }
)

TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class JsonLogFormatter(logging.Formatter):
    """Formats log records as single-line JSON objects.

    Example:
        ```python
        handler = logging.StreamHandler()
        handler.setFormatter(JsonLogFormatter())
        logging.getLogger("metricgate").addHandler(handler)
        ```
    """

    def format(self, record: logging.LogRecord) -> str:
        """Render the record as JSON.

        Args:
            record: The log record to format.
        """
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        # Add any extra attributes passed via logging call
        for key, value in record.__dict__.items():
            if key not in _STANDARD_LOGRECORD_ATTRS and key not in payload:
                payload[key] = value

        if record.exc_info:
            exc_type, exc_value, exc_tb = record.exc_info
            if exc_type is not None:
                payload["exc_type"] = exc_type.__name__
            if exc_value is not None:
                payload["exc_message"] = str(exc_value)
            if exc_tb is not None:
                payload["exc_traceback"] = "".join(
                    traceback.format_exception(exc_type, exc_value, exc_tb)
                )

        return json.dumps(payload, default=str)


def configure_logging(
    config: LoggingConfig, stream: TextIO | None = None
) -> logging.Logger:
    """Install a stream handler on the metricgate logger.

    Calling it again replaces the handler installed previously.

    Args:
        config: Level and format settings.
        stream: Output stream (default: stderr).

    Returns:
        The configured package logger.
    """
    logger = logging.getLogger("metricgate")
    for handler in list(logger.handlers):
        if getattr(handler, "_metricgate", False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    if config.format == "json":
        handler.setFormatter(JsonLogFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))
    handler._metricgate = True  # type: ignore[attr-defined]

    logger.addHandler(handler)
    logger.setLevel(config.level)
    return logger
