"""Synchronous query executor.

:class:`QueryExecutor` is the public entry point. One call to
:meth:`QueryExecutor.execute` runs the whole pipeline: placeholder
normalization, flush of per-call state, cache lookup, connection check,
direct or prepared execution, materialization, error capture, cache write
and tracing. Instances hold mutable per-connection state and are not safe to
share between threads.
"""

from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, Optional, Union

from sqlrunner.config import DatabaseConfig, ExecutionConfig
from sqlrunner.core.cache import QueryCache
from sqlrunner.core.classifier import StatementKind, classify
from sqlrunner.core.parameters import bind_parameters, count_placeholders, normalize_placeholders
from sqlrunner.core.result import ColumnInfo, ExecutionFailure, MutationResult, SelectResult
from sqlrunner.driver._common import fetch_batches, fetch_each, materialize
from sqlrunner.driver.connection import ConnectionManager
from sqlrunner.exceptions import NotConnectedError, PreparedBindError, SQLRunnerError
from sqlrunner.observability import ErrorLog, QueryTracer, TraceSnapshot
from sqlrunner.utils.logging import get_logger

if TYPE_CHECKING:
    from sqlrunner.adapters.dbapi import DBAPIAdapter
    from sqlrunner.core.cache import CacheStore
    from sqlrunner.core.result import QueryOutcome, Row
    from sqlrunner.observability import ErrorRecord

__all__ = ("QueryExecutor",)

logger = get_logger("driver")

StatementOutcome = Union[MutationResult, SelectResult]


class QueryExecutor:
    """Runs raw SQL against one connection and keeps the bookkeeping.

    Args:
        adapter: Driver adapter used to open connections and run statements.
        database_config: Fallback connection settings.
        execution_config: Prepared-statement, cache and trace toggles.
        error_log: Error log to record into; a new one by default.
        cache_store: Cache backend overriding the one chosen from the config.
    """

    __slots__ = (
        "_cache",
        "_from_cache",
        "_last_outcome",
        "config",
        "connection_manager",
        "error_log",
        "last_insert_id",
        "last_query",
        "num_queries",
        "num_rows",
        "rows_affected",
        "tracer",
    )

    def __init__(
        self,
        adapter: "DBAPIAdapter",
        database_config: "Optional[DatabaseConfig]" = None,
        execution_config: "Optional[ExecutionConfig]" = None,
        error_log: "Optional[ErrorLog]" = None,
        cache_store: "Optional[CacheStore]" = None,
    ) -> None:
        self.config = execution_config if execution_config is not None else ExecutionConfig()
        self.error_log = error_log if error_log is not None else ErrorLog(show_errors=self.config.show_errors)
        self.connection_manager = ConnectionManager(adapter, database_config, self.error_log)
        self.tracer = QueryTracer(self.config.trace_history)
        self._cache = QueryCache(self.config, cache_store)
        self.num_queries = 0
        self.num_rows = 0
        self.rows_affected = 0
        self.last_insert_id: Any = None
        self.last_query: Optional[str] = None
        self._last_outcome: Optional[QueryOutcome] = None
        self._from_cache = False

    @property
    def adapter(self) -> "DBAPIAdapter":
        return self.connection_manager.adapter

    @property
    def cache(self) -> QueryCache:
        return self._cache

    # connection lifecycle

    def connect(self, user: str = "", password: str = "", host: str = "", charset: str = "") -> bool:
        return self.connection_manager.connect(user, password, host, charset)

    def select(self, name: str = "", charset: str = "") -> bool:
        return self.connection_manager.select(name, charset)

    def quick_connect(
        self, user: str = "", password: str = "", name: str = "", host: str = "", charset: str = ""
    ) -> bool:
        return self.connection_manager.quick_connect(user, password, name, host, charset)

    def disconnect(self) -> None:
        self.connection_manager.disconnect()

    @property
    def is_connected(self) -> bool:
        return self.connection_manager.is_connected

    # per-call state

    @property
    def last_result(self) -> "list[Row]":
        """Rows of the last row-returning call (empty otherwise)."""
        if isinstance(self._last_outcome, SelectResult):
            return self._last_outcome.rows
        return []

    @property
    def col_info(self) -> ColumnInfo:
        if isinstance(self._last_outcome, SelectResult):
            return self._last_outcome.columns
        return ColumnInfo()

    @property
    def last_error(self) -> "Optional[ErrorRecord]":
        return self.error_log.last

    @property
    def captured_errors(self) -> "tuple[ErrorRecord, ...]":
        return self.error_log.records

    @property
    def from_cache(self) -> bool:
        """Whether the last call was answered from the cache."""
        return self._from_cache

    def flush(self) -> None:
        """Clear per-call transient state. Counters and the cache are kept."""
        self._last_outcome = None
        self.last_query = None
        self.num_rows = 0
        self._from_cache = False

    def reset(self) -> None:
        """Return the executor to its freshly constructed state, keeping the connection."""
        self.flush()
        self.num_queries = 0
        self.rows_affected = 0
        self.last_insert_id = None
        self.error_log.clear()
        self.tracer.clear()

    # execution

    def execute(self, sql: str, parameters: "Optional[Sequence[Any]]" = None) -> "QueryOutcome":
        """Run ``sql`` and materialize its result.

        Args:
            sql: Statement text with optional ``?`` or ``%s`` positional placeholders.
            parameters: Values for the placeholders.

        Returns:
            A :class:`MutationResult` or :class:`SelectResult` on success, or a
            falsy :class:`ExecutionFailure` whose error is also in the error log.
        """
        sql = normalize_placeholders(sql, self.adapter.parameter_style)
        self.flush()
        sql = sql.strip()
        self.tracer.log_query(sql)
        self.last_query = sql
        self.num_queries += 1

        kind = classify(sql)
        params = tuple(parameters) if parameters else ()

        cached = self._cache.get(sql, params, kind)
        if cached is not None:
            self._from_cache = True
            self._record_outcome(cached)  # type: ignore[arg-type]
            self._trace()
            return cached  # type: ignore[return-value]

        if not self.connection_manager.ensure_connected():
            return self._failure(sql, NotConnectedError())

        try:
            if params and self.config.use_prepare:
                outcome = self._execute_prepared(sql, kind, params)
            else:
                outcome = self._execute_direct(sql, kind, params)
        except SQLRunnerError as e:
            return self._failure(sql, e)

        self._record_outcome(outcome)
        self._cache.put(sql, params, outcome, kind)
        self._trace()
        return outcome

    def _execute_direct(self, sql: str, kind: StatementKind, params: "tuple[Any, ...]") -> StatementOutcome:
        connection = self._require_connection()
        with self.adapter.handle_database_exceptions(sql), self.adapter.cursor(connection) as cursor:
            if params:
                cursor.execute(sql, bind_parameters(params).values)
            else:
                cursor.execute(sql)
            return materialize(cursor, sql, kind, fetch_batches(cursor, self.config.fetch_batch_size))

    def _execute_prepared(self, sql: str, kind: StatementKind, params: "tuple[Any, ...]") -> StatementOutcome:
        expected = count_placeholders(sql)
        if expected != len(params):
            msg = f"Statement expects {expected} parameter(s), {len(params)} given"
            raise PreparedBindError(msg, sql)
        try:
            bound = bind_parameters(params)
            values = bound.values
        except (TypeError, ValueError) as e:
            msg = f"Could not bind parameters: {e}"
            raise PreparedBindError(msg, sql) from e
        logger.debug("Binding %d parameter(s) as %r", len(values), bound.type_tags)

        connection = self._require_connection()
        with self.adapter.handle_database_exceptions(sql), self.adapter.prepared_cursor(connection) as statement:
            statement.execute(sql, values)
            return materialize(statement, sql, kind, fetch_each(statement))

    def _require_connection(self) -> Any:
        connection = self.connection_manager.connection
        if connection is None:
            raise NotConnectedError
        return connection

    def _record_outcome(self, outcome: StatementOutcome) -> None:
        self._last_outcome = outcome
        if isinstance(outcome, MutationResult):
            self.rows_affected = outcome.rows_affected
            if outcome.kind.returns_insert_id:
                self.last_insert_id = outcome.last_inserted_id
        else:
            self.num_rows = outcome.num_rows

    def _failure(self, sql: str, error: SQLRunnerError) -> ExecutionFailure:
        record = self.error_log.register(error, sql)
        failure = ExecutionFailure(sql, record)
        self._last_outcome = failure
        self._trace()
        return failure

    def snapshot(self) -> TraceSnapshot:
        return TraceSnapshot(
            last_query=self.last_query,
            num_queries=self.num_queries,
            num_rows=self.num_rows,
            rows_affected=self.rows_affected,
            last_insert_id=self.last_insert_id,
            columns=self.col_info.names,
            rows=self.last_result,
            last_error=self.last_error,
            from_cache=self._from_cache,
        )

    def _trace(self) -> None:
        if self.config.tracing:
            self.tracer.debug(self.snapshot())

    # convenience readers

    def _rows_for(self, sql: "Optional[str]", parameters: "Optional[Sequence[Any]]") -> "list[Row]":
        if sql:
            outcome = self.execute(sql, parameters)
            if not isinstance(outcome, SelectResult):
                return []
        return self.last_result

    def get_results(self, sql: "Optional[str]" = None, parameters: "Optional[Sequence[Any]]" = None) -> "list[Row]":
        """All rows of ``sql``, or of the last query when ``sql`` is None."""
        return list(self._rows_for(sql, parameters))

    def get_row(
        self, sql: "Optional[str]" = None, y: int = 0, parameters: "Optional[Sequence[Any]]" = None
    ) -> "Optional[Row]":
        """Row ``y`` of the result, or None when there is no such row."""
        rows = self._rows_for(sql, parameters)
        return rows[y] if 0 <= y < len(rows) else None

    def get_col(
        self, sql: "Optional[str]" = None, x: int = 0, parameters: "Optional[Sequence[Any]]" = None
    ) -> "list[Any]":
        """Values of column ``x`` across all rows."""
        rows = self._rows_for(sql, parameters)
        return [list(row.values())[x] for row in rows if x < len(row)]

    def get_var(
        self, sql: "Optional[str]" = None, x: int = 0, y: int = 0, parameters: "Optional[Sequence[Any]]" = None
    ) -> Any:
        """Single value at column ``x`` of row ``y``, or None."""
        row = self.get_row(sql, y, parameters)
        if row is None or x >= len(row):
            return None
        return list(row.values())[x]

    # driver helpers

    def escape(self, value: str) -> str:
        return self.adapter.escape(value)

    def sys_date(self) -> str:
        return self.adapter.sys_date()

    def get_insert_id(self) -> Any:
        return self.last_insert_id

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(adapter={self.adapter!r}, connected={self.is_connected}, "
            f"num_queries={self.num_queries})"
        )
