from unittest.mock import MagicMock

from sqlrunner.core.classifier import StatementKind
from sqlrunner.core.result import MutationResult, SelectResult
from sqlrunner.driver._common import fetch_batches, fetch_each, materialize, resolve_last_insert_id, resolve_rowcount


def _cursor(**attrs: object) -> MagicMock:
    cursor = MagicMock()
    for name, value in attrs.items():
        setattr(cursor, name, value)
    return cursor


def test_mutation_reads_rowcount_and_insert_id_without_fetching() -> None:
    cursor = _cursor(rowcount=2, lastrowid=11)
    result = materialize(cursor, "INSERT INTO t VALUES (1), (2)", StatementKind.INSERT, iter(()))
    assert isinstance(result, MutationResult)
    assert (result.rows_affected, result.last_inserted_id) == (2, 11)
    cursor.fetchone.assert_not_called()
    cursor.fetchmany.assert_not_called()


def test_update_ignores_lastrowid() -> None:
    result = materialize(_cursor(rowcount=1, lastrowid=11), "UPDATE t SET a = 1", StatementKind.UPDATE, iter(()))
    assert result.last_inserted_id is None


def test_statement_without_result_set_gives_empty_rows() -> None:
    result = materialize(_cursor(description=None), "CREATE TABLE t (a INT)", StatementKind.OTHER, iter(()))
    assert isinstance(result, SelectResult)
    assert result.rows == []
    assert result.num_rows == 0


def test_rows_follow_delivery_order() -> None:
    cursor = _cursor(description=(("a",), ("b",)))
    result = materialize(cursor, "SELECT a, b FROM t", StatementKind.SELECT, iter([(2, "y"), (1, "x")]))
    assert result.rows == [{"a": 2, "b": "y"}, {"a": 1, "b": "x"}]
    assert list(result.rows[0]) == ["a", "b"]


def test_fetch_each_and_batches_yield_the_same_rows() -> None:
    rows = [(1,), (2,), (3,)]
    single = MagicMock()
    single.fetchone.side_effect = [*rows, None]
    batched = MagicMock()
    batched.fetchmany.side_effect = [rows[:2], rows[2:], []]
    assert list(fetch_each(single)) == list(fetch_batches(batched, 2)) == rows


def test_resolvers_normalize_unknown_values() -> None:
    assert resolve_rowcount(_cursor(rowcount=-1)) == 0
    assert resolve_rowcount(object()) == 0
    assert resolve_last_insert_id(_cursor(lastrowid=-1)) is None
    assert resolve_last_insert_id(_cursor(lastrowid=0)) == 0
    assert resolve_last_insert_id(_cursor(lastrowid=None)) is None
    assert resolve_last_insert_id(_cursor(lastrowid=5)) == 5
