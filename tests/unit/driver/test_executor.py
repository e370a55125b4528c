from pathlib import Path
from unittest.mock import MagicMock

from sqlrunner.config import DatabaseConfig, ExecutionConfig
from sqlrunner.core.classifier import StatementKind
from sqlrunner.core.result import ExecutionFailure, MutationResult, SelectResult
from sqlrunner.driver import QueryExecutor

CREATE_TABLE = "CREATE TABLE t (a INTEGER PRIMARY KEY, b TEXT)"


def test_insert_then_select_end_to_end(executor: QueryExecutor) -> None:
    executor.execute(CREATE_TABLE)

    inserted = executor.execute("INSERT INTO t (b) VALUES (?)", ["x"])
    assert isinstance(inserted, MutationResult)
    assert inserted.rows_affected == 1
    assert inserted.last_inserted_id == 1
    assert executor.get_insert_id() == 1

    selected = executor.execute("SELECT a FROM t")
    assert isinstance(selected, SelectResult)
    assert selected.rows == [{"a": 1}]
    assert executor.num_rows == 1
    assert executor.col_info.names == ("a",)
    assert executor.num_queries == 3


def test_lazy_connect_on_first_query(executor: QueryExecutor, sqlite_adapter) -> None:
    assert not executor.is_connected
    assert executor.execute("SELECT 1 AS one").rows == [{"one": 1}]
    assert executor.is_connected
    assert sqlite_adapter.open_calls == 1


def test_row_keys_follow_column_order(executor: QueryExecutor) -> None:
    result = executor.execute("SELECT 3 AS z, 1 AS a, 2 AS m")
    assert list(result.rows[0]) == ["z", "a", "m"]
    assert result.num_rows == len(result.rows)


def test_mutation_result_shape(executor: QueryExecutor) -> None:
    executor.execute(CREATE_TABLE)
    executor.execute("INSERT INTO t (b) VALUES ('x'), ('y')")
    result = executor.execute("UPDATE t SET b = 'z'")
    assert result.kind is StatementKind.UPDATE
    assert result.rows_affected == 2
    assert result.last_inserted_id is None
    assert executor.rows_affected == 2
    assert executor.last_result == []


def test_prepared_and_direct_paths_agree(sqlite_adapter, database_config: DatabaseConfig) -> None:
    outcomes = []
    for use_prepare in (True, False):
        runner = QueryExecutor(sqlite_adapter, database_config, ExecutionConfig(use_prepare=use_prepare))
        runner.execute(CREATE_TABLE)
        runner.execute("INSERT INTO t (b) VALUES (?), (?)", ["x", "y"])
        outcomes.append(runner.execute("SELECT a, b FROM t WHERE b <> ? ORDER BY a", ["q"]))
        runner.disconnect()
    prepared, direct = outcomes
    assert prepared == direct
    assert prepared.rows == [{"a": 1, "b": "x"}, {"a": 2, "b": "y"}]
    assert sqlite_adapter.prepared_calls == 2


def test_pyformat_placeholders_are_normalized(executor: QueryExecutor) -> None:
    assert executor.execute("SELECT %s AS v", [5]).rows == [{"v": 5}]
    assert executor.last_query == "SELECT ? AS v"


def test_cache_hit_skips_the_connection(caching_executor: QueryExecutor, sqlite_adapter) -> None:
    first = caching_executor.execute("SELECT 1 AS a")
    cursors = sqlite_adapter.cursor_calls
    second = caching_executor.execute("SELECT 1 AS a")

    assert second == first
    assert caching_executor.from_cache
    assert sqlite_adapter.cursor_calls == cursors
    assert caching_executor.num_queries == 2
    assert caching_executor.last_result == [{"a": 1}]


def test_cache_is_keyed_by_parameters(caching_executor: QueryExecutor, sqlite_adapter) -> None:
    assert caching_executor.get_var("SELECT ? AS v", parameters=[1]) == 1
    assert caching_executor.get_var("SELECT ? AS v", parameters=[2]) == 2
    assert not caching_executor.from_cache
    assert sqlite_adapter.prepared_calls == 2


def test_cached_query_works_without_connection(sqlite_adapter, database_config: DatabaseConfig) -> None:
    runner = QueryExecutor(sqlite_adapter, database_config, ExecutionConfig(cache_queries=True))
    runner.execute("SELECT 1 AS a")
    runner.disconnect()
    assert runner.execute("SELECT 1 AS a").rows == [{"a": 1}]
    assert sqlite_adapter.open_calls == 1


def test_mutations_always_reach_the_database(caching_executor: QueryExecutor) -> None:
    caching_executor.execute(CREATE_TABLE)
    caching_executor.execute("INSERT INTO t (b) VALUES ('x')")
    caching_executor.execute("INSERT INTO t (b) VALUES ('x')")
    assert not caching_executor.from_cache
    assert caching_executor.get_var("SELECT COUNT(*) FROM t") == 2


def test_driver_error_returns_failure(executor: QueryExecutor) -> None:
    outcome = executor.execute("SELECT * FROM missing")
    assert isinstance(outcome, ExecutionFailure)
    assert not outcome
    assert executor.last_error is not None
    assert executor.last_error.error_type == "DriverExecutionError"
    assert "no such table" in executor.last_error.message
    assert executor.last_error.query == "SELECT * FROM missing"
    assert executor.last_result == []


def test_failures_are_not_cached(caching_executor: QueryExecutor) -> None:
    assert not caching_executor.execute("SELECT * FROM t")
    caching_executor.execute("CREATE TABLE t (a INTEGER)")
    assert caching_executor.execute("SELECT * FROM t")
    assert not caching_executor.from_cache


def test_placeholder_count_mismatch(executor: QueryExecutor) -> None:
    outcome = executor.execute("SELECT ? AS a, ? AS b", [1])
    assert not outcome
    assert executor.last_error.error_type == "PreparedBindError"


def test_prepared_cursor_is_closed_after_failure(fake_adapter_factory) -> None:
    adapter = fake_adapter_factory()
    runner = QueryExecutor(
        adapter, DatabaseConfig(user="app", database="shop"), ExecutionConfig(show_errors=False)
    )
    assert runner.quick_connect()
    statement = MagicMock()
    statement.execute.side_effect = adapter.error_types[0]("boom")
    adapter.connections[0].cursor = lambda **_: statement

    outcome = runner.execute("SELECT * FROM t WHERE a = ?", [1])

    assert not outcome
    statement.close.assert_called_once()
    assert runner.last_error.message == "boom"


def test_failed_reconnect_returns_failure(fake_adapter_factory) -> None:
    runner = QueryExecutor(fake_adapter_factory(fail_open=True), DatabaseConfig(user="app"))
    outcome = runner.execute("SELECT 1")
    assert not outcome
    assert [record.error_type for record in runner.captured_errors] == [
        "DatabaseConnectionError",
        "NotConnectedError",
    ]


def test_readers(executor: QueryExecutor) -> None:
    executor.execute(CREATE_TABLE)
    executor.execute("INSERT INTO t (b) VALUES ('x'), ('y')")

    assert executor.get_var("SELECT b FROM t ORDER BY a") == "x"
    assert executor.get_var(x=1, y=1) is None
    assert executor.get_var(x=0, y=1) == "y"
    assert executor.get_row("SELECT a, b FROM t ORDER BY a", y=1) == {"a": 2, "b": "y"}
    assert executor.get_row(y=5) is None
    assert executor.get_col("SELECT a, b FROM t ORDER BY a", x=1) == ["x", "y"]
    assert executor.get_results() == [{"a": 1, "b": "x"}, {"a": 2, "b": "y"}]
    assert executor.get_results("DELETE FROM t") == []


def test_flush_keeps_counters(executor: QueryExecutor) -> None:
    executor.execute("SELECT 1 AS a")
    executor.flush()
    assert executor.last_result == []
    assert executor.last_query is None
    assert executor.num_queries == 1


def test_reset(executor: QueryExecutor) -> None:
    executor.execute("SELECT * FROM missing")
    executor.reset()
    assert executor.num_queries == 0
    assert executor.captured_errors == ()
    assert executor.tracer.history == ()


def test_tracing_emits_snapshots(sqlite_adapter, database_config: DatabaseConfig) -> None:
    runner = QueryExecutor(sqlite_adapter, database_config, ExecutionConfig(debug_all=True))
    runner.execute("SELECT 1 AS a")
    runner.execute("SELECT * FROM missing")
    assert runner.tracer.debug_count == 2
    assert runner.tracer.history == ("SELECT 1 AS a", "SELECT * FROM missing")
    snapshot = runner.snapshot()
    assert snapshot.last_error is not None
    runner.disconnect()


def test_escape_and_sys_date(executor: QueryExecutor) -> None:
    assert executor.escape("it's") == "it''s"
    assert executor.sys_date() == "CURRENT_TIMESTAMP"



def test_prepared_parameters_match_literal_sql(executor: QueryExecutor) -> None:
    executor.execute(CREATE_TABLE)
    executor.execute("INSERT INTO t (b) VALUES ('x'), ('y')")
    bound = executor.execute("SELECT a, b FROM t WHERE a = ?", [1])
    literal = executor.execute("SELECT a, b FROM t WHERE a = 1")
    assert bound.rows == literal.rows == [{"a": 1, "b": "x"}]
    assert bound.column_names == literal.column_names


def _disk_executor(adapter, config: DatabaseConfig, cache_dir: Path) -> QueryExecutor:
    return QueryExecutor(
        adapter,
        config,
        ExecutionConfig(cache_queries=True, use_disk_cache=True, cache_dir=str(cache_dir), show_errors=False),
    )


def test_disk_cache_serves_repeated_query(sqlite_adapter, database_config: DatabaseConfig, tmp_path: Path) -> None:
    runner = _disk_executor(sqlite_adapter, database_config, tmp_path)
    first = runner.execute("SELECT 1 AS a")
    cursors = sqlite_adapter.cursor_calls
    second = runner.execute("SELECT 1 AS a")
    runner.disconnect()

    assert second == first
    assert runner.from_cache
    assert sqlite_adapter.cursor_calls == cursors
    assert len(list(tmp_path.glob("*.cache"))) == 1


def test_corrupt_disk_cache_entry_falls_back_to_database(
    sqlite_adapter, database_config: DatabaseConfig, tmp_path: Path
) -> None:
    runner = _disk_executor(sqlite_adapter, database_config, tmp_path)
    runner.execute("SELECT 1 AS a")
    (entry,) = tmp_path.glob("*.cache")
    entry.write_bytes(b"\xc1garbage")

    outcome = runner.execute("SELECT 1 AS a")
    runner.disconnect()

    assert outcome.rows == [{"a": 1}]
    assert not runner.from_cache
    assert runner.captured_errors == ()


def test_unusable_cache_dir_does_not_fail_execute(
    sqlite_adapter, database_config: DatabaseConfig, tmp_path: Path
) -> None:
    not_a_dir = tmp_path / "not_a_dir"
    not_a_dir.write_text("")
    runner = _disk_executor(sqlite_adapter, database_config, not_a_dir)

    first = runner.execute("SELECT 1 AS a")
    second = runner.execute("SELECT 1 AS a")
    runner.disconnect()

    assert first.rows == second.rows == [{"a": 1}]
    assert not runner.from_cache
    assert runner.captured_errors == ()
