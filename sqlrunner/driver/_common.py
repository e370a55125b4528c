"""Cursor-level helpers shared by the direct and prepared execution paths.

Both paths end in :func:`materialize`, which is what keeps their results
identical in shape: only the row iterator handed to it differs.
"""

from collections.abc import Iterator, Sequence
from typing import Any, Optional, Union

from sqlrunner.core.classifier import StatementKind
from sqlrunner.core.result import MutationResult, SelectResult, build_select_result

__all__ = (
    "build_mutation_result",
    "fetch_batches",
    "fetch_each",
    "materialize",
    "resolve_last_insert_id",
    "resolve_rowcount",
)


def resolve_rowcount(cursor: Any) -> int:
    """Resolve rowcount from a DB-API cursor.

    Args:
        cursor: Cursor with optional rowcount metadata.

    Returns:
        Positive rowcount value or 0 when unknown.
    """
    try:
        rowcount = cursor.rowcount
    except AttributeError:
        return 0

    if isinstance(rowcount, int) and rowcount > 0:
        return rowcount
    return 0


def resolve_last_insert_id(cursor: Any) -> "Optional[Union[int, str]]":
    """Identifier generated by the last INSERT/REPLACE, if the driver reports one."""
    last_id = getattr(cursor, "lastrowid", None)
    if last_id is None or last_id == -1:
        return None
    return last_id  # type: ignore[no-any-return]


def fetch_each(cursor: Any) -> "Iterator[Sequence[Any]]":
    """Yield rows one ``fetchone`` call at a time."""
    while True:
        row = cursor.fetchone()
        if row is None:
            return
        yield row


def fetch_batches(cursor: Any, batch_size: int) -> "Iterator[Sequence[Any]]":
    """Yield rows pulled from the cursor in ``fetchmany`` batches."""
    while True:
        batch = cursor.fetchmany(batch_size)
        if not batch:
            return
        yield from batch


def build_mutation_result(cursor: Any, statement: str, kind: StatementKind) -> MutationResult:
    last_id = resolve_last_insert_id(cursor) if kind.returns_insert_id else None
    return MutationResult(statement, kind, resolve_rowcount(cursor), last_id)


def materialize(
    cursor: Any, statement: str, kind: StatementKind, rows: "Iterator[Sequence[Any]]"
) -> "Union[MutationResult, SelectResult]":
    """Turn an executed cursor into a result.

    Mutating statements only read the affected-row count (and the generated
    id for INSERT/REPLACE); rows are never fetched for them. Everything else
    is materialized as rows; a statement without a result set, such as DDL,
    gives an empty :class:`SelectResult`.
    """
    if kind.is_mutating:
        return build_mutation_result(cursor, statement, kind)
    description = cursor.description
    if not description:
        return SelectResult(statement, kind)
    return build_select_result(statement, kind, description, rows)
