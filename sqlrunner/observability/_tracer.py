"""Query history and debug snapshots."""

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Final, Optional

from sqlrunner.config import DEFAULT_TRACE_HISTORY
from sqlrunner.utils.logging import get_logger, log_with_context

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlrunner.observability._errors import ErrorRecord

__all__ = ("QueryTracer", "TraceSnapshot")

logger = get_logger("trace")

PREVIEW_ROWS: Final = 10


@dataclass(slots=True)
class TraceSnapshot:
    """State of an executor right after a call."""

    last_query: "Optional[str]"
    num_queries: int
    num_rows: int = 0
    rows_affected: int = 0
    last_insert_id: Any = None
    columns: "Sequence[str]" = ()
    rows: "Sequence[dict[str, Any]]" = ()
    last_error: "Optional[ErrorRecord]" = None
    from_cache: bool = False
    extra: "dict[str, Any]" = field(default_factory=dict)

    def as_fields(self) -> "dict[str, Any]":
        return {
            "last_query": self.last_query,
            "num_queries": self.num_queries,
            "num_rows": self.num_rows,
            "rows_affected": self.rows_affected,
            "last_insert_id": self.last_insert_id,
            "columns": list(self.columns),
            "rows_preview": list(self.rows[:PREVIEW_ROWS]),
            "last_error": self.last_error.message if self.last_error is not None else None,
            "from_cache": self.from_cache,
            **self.extra,
        }


class QueryTracer:
    """Keeps a bounded history of issued queries and emits debug snapshots."""

    __slots__ = ("_history", "debug_count")

    def __init__(self, history_size: int = DEFAULT_TRACE_HISTORY) -> None:
        self._history: deque[str] = deque(maxlen=history_size)
        self.debug_count = 0

    def log_query(self, sql: str) -> None:
        self._history.append(sql)
        logger.debug("query(%r)", sql)

    @property
    def history(self) -> "tuple[str, ...]":
        return tuple(self._history)

    def debug(self, snapshot: TraceSnapshot) -> None:
        self.debug_count += 1
        log_with_context(logger, logging.DEBUG, "Executor state", **snapshot.as_fields())

    def clear(self) -> None:
        self._history.clear()
        self.debug_count = 0
