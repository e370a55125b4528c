"""Error log shared by the connection manager and the executor."""

import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional

from sqlrunner.utils.logging import get_logger, log_with_context

if TYPE_CHECKING:
    from sqlrunner.exceptions import SQLRunnerError

__all__ = ("ErrorLog", "ErrorRecord")

logger = get_logger("errors")


@dataclass(frozen=True, slots=True)
class ErrorRecord:
    """One captured failure.

    Attributes:
        error_type: Name of the exception class that describes the failure.
        message: Human readable error text, usually the driver's own.
        query: The statement being run, empty for connection failures.
        timestamp: When the error was registered (UTC).
    """

    error_type: str
    message: str
    query: str = ""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class ErrorLog:
    """Append-only log of captured errors.

    Errors are recorded here instead of being raised; callers poll the log.
    """

    __slots__ = ("_records", "show_errors")

    def __init__(self, show_errors: bool = True) -> None:
        self._records: list[ErrorRecord] = []
        self.show_errors = show_errors

    def register(self, error: "SQLRunnerError", query: str = "") -> ErrorRecord:
        record = ErrorRecord(type(error).__name__, str(error), query)
        self._records.append(record)
        if self.show_errors:
            log_with_context(logger, logging.WARNING, record.message, error_type=record.error_type, query=record.query)
        return record

    @property
    def records(self) -> "tuple[ErrorRecord, ...]":
        return tuple(self._records)

    @property
    def last(self) -> "Optional[ErrorRecord]":
        return self._records[-1] if self._records else None

    def clear(self) -> None:
        self._records.clear()

    def __iter__(self) -> "Iterator[ErrorRecord]":
        return iter(tuple(self._records))

    def __len__(self) -> int:
        return len(self._records)

    def __repr__(self) -> str:
        return f"ErrorLog(count={len(self._records)})"
