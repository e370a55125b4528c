"""Logging helpers for sqlrunner.

Every logger handed out by :func:`get_logger` lives under the ``sqlrunner``
namespace. Records that carry query context (the error log's warnings, the
tracer's snapshots) attach it through :func:`log_with_context`, and
:class:`QueryLogFormatter` renders those fields as one JSON document per line.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Final

from sqlrunner._serialization import encode_json

if TYPE_CHECKING:
    from logging import LogRecord

__all__ = ("QUERY_FIELDS", "QueryLogFormatter", "configure_logging", "get_logger", "log_with_context")

ROOT_LOGGER_NAME: Final = "sqlrunner"
CONTEXT_ATTRIBUTE: Final = "query_context"

# Fields emitted by the error log and the tracer, in output order.
QUERY_FIELDS: Final = (
    "query",
    "error_type",
    "last_query",
    "num_queries",
    "num_rows",
    "rows_affected",
    "last_insert_id",
    "columns",
    "rows_preview",
    "last_error",
    "from_cache",
)

logging.getLogger(ROOT_LOGGER_NAME).addHandler(logging.NullHandler())


class QueryLogFormatter(logging.Formatter):
    """Render records as JSON lines with a fixed query schema.

    Known query fields are lifted to the top level in :data:`QUERY_FIELDS`
    order and only when present; any other context lands under ``"context"``.
    """

    def format(self, record: LogRecord) -> str:
        document: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        context = dict(getattr(record, CONTEXT_ATTRIBUTE, None) or {})
        for name in QUERY_FIELDS:
            if name in context:
                document[name] = context.pop(name)
        if context:
            document["context"] = context
        if record.exc_info:
            document["exception"] = self.formatException(record.exc_info)
        return encode_json(document)


def get_logger(name: str | None = None) -> logging.Logger:
    """Return the ``sqlrunner`` logger, or a child of it.

    Args:
        name: Dotted suffix such as ``"driver"``; names already under the
            ``sqlrunner`` namespace are used as given.
    """
    if name is None or name == ROOT_LOGGER_NAME:
        return logging.getLogger(ROOT_LOGGER_NAME)
    if not name.startswith(f"{ROOT_LOGGER_NAME}."):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)


def configure_logging(level: int | str = logging.INFO, handler: logging.Handler | None = None) -> logging.Handler:
    """Send sqlrunner records to ``handler`` (stderr by default) as JSON lines.

    Calling it again replaces the handler installed by the previous call.

    Returns:
        The installed handler.
    """
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    for existing in list(root_logger.handlers):
        if getattr(existing, "_sqlrunner_handler", False):
            root_logger.removeHandler(existing)
    handler = handler if handler is not None else logging.StreamHandler()
    handler.setFormatter(QueryLogFormatter())
    handler._sqlrunner_handler = True  # type: ignore[attr-defined]
    root_logger.addHandler(handler)
    root_logger.setLevel(level.upper() if isinstance(level, str) else level)
    return handler


def log_with_context(logger: logging.Logger, level: int, message: str, **context: Any) -> None:
    """Log ``message`` with query context attached to the record.

    Nothing is built when ``level`` is disabled for ``logger``.
    """
    if not logger.isEnabledFor(level):
        return
    logger.log(level, message, extra={CONTEXT_ATTRIBUTE: context})
