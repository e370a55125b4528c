"""SQLite adapter built on the standard library ``sqlite3`` module."""

import sqlite3
from typing import Any, ClassVar, Final, Optional

from sqlrunner.adapters.dbapi import DBAPIAdapter
from sqlrunner.core.parameters import ParameterStyle
from sqlrunner.utils.logging import get_logger

__all__ = ("SQLITE_ENCODINGS", "SqliteAdapter")

logger = get_logger("adapters.sqlite")

MEMORY_DATABASE: Final = ":memory:"

# normalized charset name -> PRAGMA encoding value
SQLITE_ENCODINGS: Final = {
    "utf8": "UTF-8",
    "utf16": "UTF-16",
    "utf16le": "UTF-16le",
    "utf16be": "UTF-16be",
}


class SqliteAdapter(DBAPIAdapter):
    """SQLite has no server, users or catalogs to switch between.

    ``host`` is ignored and ``database`` is the file path (``:memory:`` when
    empty). Selecting a database succeeds only for a schema already attached
    to the connection, or for the path the connection was opened with.
    Connections run in autocommit mode.
    """

    __slots__ = ("_path", "timeout")

    dialect: ClassVar[str] = "sqlite"
    parameter_style: ClassVar[ParameterStyle] = ParameterStyle.QMARK
    error_types: ClassVar["tuple[type[BaseException], ...]"] = (sqlite3.Error,)

    def __init__(self, timeout: float = 5.0) -> None:
        self.timeout = timeout
        self._path = MEMORY_DATABASE

    def open(self, *, host: str, user: str, password: str, database: str, port: "Optional[int]" = None) -> Any:
        self._path = database or MEMORY_DATABASE
        logger.debug("Opening SQLite database %s", self._path)
        return sqlite3.connect(self._path, timeout=self.timeout, isolation_level=None)

    def set_charset(self, connection: Any, charset: str) -> None:
        # the encoding of an existing SQLite database is fixed at creation
        return None

    def select_database(self, connection: Any, name: str) -> None:
        attached = connection.execute("PRAGMA database_list").fetchall()
        if name in {MEMORY_DATABASE, self._path} or any(name in (schema, path) for _, schema, path in attached):
            return
        msg = f"unknown database {name}"
        raise sqlite3.OperationalError(msg)

    def list_charsets(self, connection: Any) -> "list[str]":
        return list(SQLITE_ENCODINGS)

    def set_names(self, connection: Any, encoding: str) -> None:
        connection.execute(f"PRAGMA encoding = '{SQLITE_ENCODINGS[encoding]}'")
