r"""Structured logging utilities for machine-readable log output.

The execution engine attaches request fields (``method``, ``url``,
``route``, ``attempt``, ``kind``) to its log records. With the
``StructuredFormatter`` installed, each record is emitted as one JSON
object, with the correlation id of the current context when one is set.

Example:
    ```python
    import logging

    from aresbind.utils.structured_logging import StructuredFormatter, set_correlation_id

    handler = logging.StreamHandler()
    handler.setFormatter(StructuredFormatter())
    logger = logging.getLogger("aresbind")
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)

    set_correlation_id("request-123")
    ```
"""

from __future__ import annotations

__all__ = [
    "StructuredFormatter",
    "clear_correlation_id",
    "get_correlation_id",
    "log_structured",
    "set_correlation_id",
]

import contextvars
import json
import logging
import time
from typing import Any

_correlation_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "aresbind_correlation_id", default=None
)

# Attributes every LogRecord has; anything else came from ``extra``.
_RECORD_ATTRIBUTES = frozenset(
    logging.LogRecord("", logging.NOTSET, "", 0, "", (), None).__dict__
) | {"message", "asctime", "taskName"}


def get_correlation_id() -> str | None:
    """Get the correlation id of the current context.

    Returns:
        The correlation id, or None if not set.

    Example:
        ```pycon
        >>> from aresbind.utils.structured_logging import get_correlation_id, set_correlation_id
        >>> set_correlation_id("req-123")
        >>> get_correlation_id()
        'req-123'

        ```
    """
    return _correlation_id.get()


def set_correlation_id(correlation_id: str) -> None:
    """Set the correlation id of the current context.

    The id lives in a context variable, so concurrent threads and tasks
    keep their own value.

    Args:
        correlation_id: The correlation id (request id, trace id, ...).
    """
    _correlation_id.set(correlation_id)


def clear_correlation_id() -> None:
    """Clear the correlation id of the current context."""
    _correlation_id.set(None)


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging.

    Each record becomes a JSON object with the fields ``timestamp``,
    ``level``, ``logger``, ``message``, ``module``, ``function``,
    ``line``, ``thread``, the optional ``correlation_id`` and
    ``exception``, plus any field passed through ``extra``. Values that
    are not JSON serializable are rendered with ``str``.

    Example:
        ```pycon
        >>> import json
        >>> import logging
        >>> from io import StringIO
        >>> from aresbind.utils.structured_logging import StructuredFormatter
        >>> stream = StringIO()
        >>> handler = logging.StreamHandler(stream)
        >>> handler.setFormatter(StructuredFormatter())
        >>> logger = logging.getLogger("structured_example")
        >>> logger.addHandler(handler)
        >>> logger.setLevel(logging.INFO)
        >>> logger.info("Request completed", extra={"status_code": 200})
        >>> json.loads(stream.getvalue())["status_code"]
        200

        ```
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "thread": record.threadName,
        }
        correlation_id = get_correlation_id()
        if correlation_id is not None:
            log_data["correlation_id"] = correlation_id
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        for key, value in record.__dict__.items():
            if key not in _RECORD_ATTRIBUTES:
                log_data[key] = value
        return json.dumps(log_data, default=str)

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:  # noqa: ARG002
        """Format the record time as an ISO 8601 UTC timestamp with
        millisecond precision."""
        return (
            time.strftime("%Y-%m-%dT%H:%M:%S", time.gmtime(record.created))
            + f".{int(record.msecs):03d}Z"
        )


def log_structured(logger: logging.Logger, level: int, message: str, **extra: Any) -> None:
    """Log a message with structured fields.

    Args:
        logger: Logger to use.
        level: Log level (e.g., logging.DEBUG).
        message: Log message.
        **extra: Structured fields attached to the record.
    """
    if logger.isEnabledFor(level):
        logger.log(level, message, extra=extra)
