"""Result classes produced by the executor.

Architecture:
- StatementResult: ABC base class shared by both result shapes
- MutationResult: INSERT/UPDATE/DELETE/REPLACE bookkeeping
- SelectResult: column metadata plus the materialized rows
- ExecutionFailure: falsy sentinel carrying the recorded error

Exactly one shape is produced per execution. Results are plain values: they
can be cached, compared and serialized without touching a connection.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable, Iterator, Sequence
from typing import TYPE_CHECKING, Any, NamedTuple, Optional, Union

from mypy_extensions import mypyc_attr

from sqlrunner.core.classifier import StatementKind

if TYPE_CHECKING:
    from sqlrunner.observability import ErrorRecord

__all__ = (
    "Column",
    "ColumnInfo",
    "ExecutionFailure",
    "MutationResult",
    "QueryOutcome",
    "SelectResult",
    "StatementResult",
    "build_select_result",
    "result_from_payload",
)

Row = dict[str, Any]


class Column(NamedTuple):
    """Metadata for one result column."""

    position: int
    name: str
    type_code: Any = None


@mypyc_attr(allow_interpreted_subclasses=False)
class ColumnInfo:
    """Ordered, read-only column metadata shared by every row of a result."""

    __slots__ = ("_columns", "_names")

    def __init__(self, columns: "Iterable[Column]" = ()) -> None:
        self._columns = tuple(columns)
        self._names = tuple(column.name for column in self._columns)

    @classmethod
    def from_description(cls, description: "Optional[Sequence[Sequence[Any]]]") -> "ColumnInfo":
        """Capture column metadata from a DB-API ``cursor.description``."""
        if not description:
            return cls()
        return cls(
            Column(position, str(entry[0]), entry[1] if len(entry) > 1 else None)
            for position, entry in enumerate(description)
        )

    @property
    def names(self) -> "tuple[str, ...]":
        return self._names

    def __getitem__(self, position: int) -> Column:
        return self._columns[position]

    def __iter__(self) -> "Iterator[Column]":
        return iter(self._columns)

    def __len__(self) -> int:
        return len(self._columns)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ColumnInfo):
            return False
        return self._columns == other._columns

    def __hash__(self) -> int:
        return hash(self._columns)

    def __repr__(self) -> str:
        return f"ColumnInfo({list(self._names)!r})"


@mypyc_attr(allow_interpreted_subclasses=True)
class StatementResult(ABC):
    """Base class for statement execution results.

    Args:
        statement: The SQL text that was executed.
        kind: The classified statement kind.
    """

    __slots__ = ("kind", "statement")

    def __init__(self, statement: str, kind: StatementKind) -> None:
        self.statement = statement
        self.kind = kind

    def is_success(self) -> bool:
        return True

    def __bool__(self) -> bool:
        return self.is_success()

    @abstractmethod
    def get_data(self) -> Any:
        """Get the processed data from the result."""

    @abstractmethod
    def to_payload(self) -> "dict[str, Any]":
        """Plain-data form used by the disk cache."""


@mypyc_attr(allow_interpreted_subclasses=True)
class MutationResult(StatementResult):
    """Outcome of an INSERT, UPDATE, DELETE or REPLACE.

    ``last_inserted_id`` is only ever set for INSERT and REPLACE.
    """

    __slots__ = ("last_inserted_id", "rows_affected")

    def __init__(
        self,
        statement: str,
        kind: StatementKind,
        rows_affected: int = 0,
        last_inserted_id: "Optional[Union[int, str]]" = None,
    ) -> None:
        super().__init__(statement, kind)
        self.rows_affected = rows_affected
        self.last_inserted_id = last_inserted_id if kind.returns_insert_id else None

    def get_data(self) -> int:
        return self.rows_affected

    def to_payload(self) -> "dict[str, Any]":
        return {
            "shape": "mutation",
            "statement": self.statement,
            "kind": self.kind.value,
            "rows_affected": self.rows_affected,
            "last_inserted_id": self.last_inserted_id,
        }

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MutationResult):
            return False
        return (
            self.statement == other.statement
            and self.kind is other.kind
            and self.rows_affected == other.rows_affected
            and self.last_inserted_id == other.last_inserted_id
        )

    def __repr__(self) -> str:
        return (
            f"MutationResult(kind={self.kind.value!r}, rows_affected={self.rows_affected!r}, "
            f"last_inserted_id={self.last_inserted_id!r})"
        )


@mypyc_attr(allow_interpreted_subclasses=True)
class SelectResult(StatementResult):
    """Rows produced by a row-returning statement.

    ``num_rows`` always equals ``len(rows)`` and every row's keys follow
    ``columns.names``.
    """

    __slots__ = ("columns", "num_rows", "rows")

    def __init__(
        self,
        statement: str,
        kind: StatementKind,
        columns: "Optional[ColumnInfo]" = None,
        rows: "Optional[list[Row]]" = None,
        num_rows: "Optional[int]" = None,
    ) -> None:
        super().__init__(statement, kind)
        self.columns = columns if columns is not None else ColumnInfo()
        self.rows = rows if rows is not None else []
        self.num_rows = num_rows if num_rows is not None else len(self.rows)

    @property
    def column_names(self) -> "tuple[str, ...]":
        return self.columns.names

    def get_data(self) -> "list[Row]":
        return self.rows

    def get_first(self) -> "Optional[Row]":
        return self.rows[0] if self.rows else None

    def __iter__(self) -> "Iterator[Row]":
        return iter(self.rows)

    def to_payload(self) -> "dict[str, Any]":
        return {
            "shape": "select",
            "statement": self.statement,
            "kind": self.kind.value,
            "columns": [[column.name, column.type_code] for column in self.columns],
            "rows": [[row[name] for name in self.column_names] for row in self.rows],
        }

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SelectResult):
            return False
        return (
            self.statement == other.statement
            and self.kind is other.kind
            and self.columns == other.columns
            and self.rows == other.rows
            and self.num_rows == other.num_rows
        )

    def __repr__(self) -> str:
        return f"SelectResult(columns={list(self.column_names)!r}, num_rows={self.num_rows!r})"


class ExecutionFailure:
    """Falsy outcome of a failed call; the error has already been recorded."""

    __slots__ = ("error", "statement")

    def __init__(self, statement: str, error: "Optional[ErrorRecord]" = None) -> None:
        self.statement = statement
        self.error = error

    def is_success(self) -> bool:
        return False

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        message = self.error.message if self.error is not None else None
        return f"ExecutionFailure(statement={self.statement!r}, error={message!r})"


QueryOutcome = Union[MutationResult, SelectResult, ExecutionFailure]


def build_select_result(
    statement: str, kind: StatementKind, description: Any, rows: "Iterable[Sequence[Any]]"
) -> SelectResult:
    """Materialize fetched tuples into a :class:`SelectResult`.

    Column metadata is captured once; each tuple becomes one row keyed by the
    captured column names, in delivery order. The row count grows as rows are
    consumed.
    """
    columns = ColumnInfo.from_description(description)
    names = columns.names
    materialized: list[Row] = []
    num_rows = 0
    for values in rows:
        materialized.append(dict(zip(names, values)))
        num_rows += 1
    return SelectResult(statement, kind, columns, materialized, num_rows)


def result_from_payload(payload: "dict[str, Any]") -> "Union[MutationResult, SelectResult]":
    """Rebuild a result from :meth:`StatementResult.to_payload` output."""
    kind = StatementKind(payload["kind"])
    if payload["shape"] == "mutation":
        return MutationResult(payload["statement"], kind, payload["rows_affected"], payload["last_inserted_id"])
    columns = ColumnInfo(
        Column(position, name, type_code) for position, (name, type_code) in enumerate(payload["columns"])
    )
    rows = [dict(zip(columns.names, values)) for values in payload["rows"]]
    return SelectResult(payload["statement"], kind, columns, rows)
