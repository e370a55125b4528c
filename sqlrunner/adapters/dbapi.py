"""Base adapter for DB-API 2.0 drivers.

An adapter hides everything driver specific from the connection manager and
the executor: how a handle is opened, how a catalog is selected, how the
charset is applied, which placeholder marker the driver expects and how
driver exceptions are turned into sqlrunner exceptions.
"""

import contextlib
from abc import ABC, abstractmethod
from collections.abc import Generator
from contextlib import contextmanager
from typing import Any, ClassVar, Optional

from sqlrunner.core.parameters import ParameterStyle
from sqlrunner.exceptions import DriverExecutionError

__all__ = ("DBAPIAdapter", "DBAPICursor")


class DBAPICursor:
    """Context manager for DB-API cursor management.

    The cursor is closed on exit whether or not the body raised.
    """

    __slots__ = ("connection", "cursor", "cursor_kwargs")

    def __init__(self, connection: Any, **cursor_kwargs: Any) -> None:
        self.connection = connection
        self.cursor: Optional[Any] = None
        self.cursor_kwargs = cursor_kwargs

    def __enter__(self) -> Any:
        self.cursor = self.connection.cursor(**self.cursor_kwargs)
        return self.cursor

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self.cursor is not None:
            with contextlib.suppress(Exception):
                self.cursor.close()
            self.cursor = None


class DBAPIAdapter(ABC):
    """Driver-specific operations needed by the connection manager and executor."""

    __slots__ = ()

    dialect: ClassVar[str] = "generic"
    parameter_style: ClassVar[ParameterStyle] = ParameterStyle.QMARK
    error_types: ClassVar["tuple[type[BaseException], ...]"] = ()

    @abstractmethod
    def open(self, *, host: str, user: str, password: str, database: str, port: "Optional[int]" = None) -> Any:
        """Open and return a new connection handle."""

    def close(self, connection: Any) -> None:
        connection.close()

    @abstractmethod
    def set_charset(self, connection: Any, charset: str) -> None:
        """Apply ``charset`` right after the connection was opened."""

    @abstractmethod
    def select_database(self, connection: Any, name: str) -> None:
        """Make ``name`` the active catalog of ``connection``."""

    @abstractmethod
    def list_charsets(self, connection: Any) -> "list[str]":
        """Return the character sets the server supports."""

    @abstractmethod
    def set_names(self, connection: Any, encoding: str) -> None:
        """Switch the session encoding to ``encoding``."""

    def cursor(self, connection: Any) -> DBAPICursor:
        return DBAPICursor(connection)

    def prepared_cursor(self, connection: Any) -> DBAPICursor:
        """Cursor used by the prepared-statement path.

        Drivers without server-side statements bind parameters client side,
        so the default is a regular cursor.
        """
        return DBAPICursor(connection)

    def error_message(self, error: BaseException) -> str:
        """Driver error text for ``error``."""
        return str(error)

    @contextmanager
    def handle_database_exceptions(self, sql: "Optional[str]" = None) -> Generator[None, None, None]:
        """Translate driver exceptions raised in the body into sqlrunner exceptions."""
        try:
            yield
        except self.error_types as e:
            raise DriverExecutionError(self.error_message(e), sql) from e

    def escape(self, value: str) -> str:
        """Escape ``value`` for inclusion in a single-quoted SQL literal."""
        return value.replace("'", "''")

    def sys_date(self) -> str:
        return "CURRENT_TIMESTAMP"

    def __repr__(self) -> str:
        return f"{type(self).__name__}(dialect={self.dialect!r})"
