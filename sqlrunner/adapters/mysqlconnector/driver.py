"""MySQL adapter built on mysql-connector-python.

Provides MySQL/MariaDB connectivity with server-side prepared statements,
charset negotiation and error text extraction.
"""

from typing import Any, ClassVar, Final, Optional

from sqlrunner.adapters.dbapi import DBAPIAdapter, DBAPICursor
from sqlrunner.core.parameters import ParameterStyle
from sqlrunner.exceptions import MissingDependencyError
from sqlrunner.utils.logging import get_logger

try:
    import mysql.connector
except ImportError as e:
    raise MissingDependencyError(package="mysql-connector-python", install_package="mysql") from e

__all__ = ("MYSQL_ESCAPES", "MysqlConnectorAdapter")

logger = get_logger("adapters.mysqlconnector")

MYSQL_ESCAPES: Final = {
    "\\": "\\\\",
    "\0": "\\0",
    "\n": "\\n",
    "\r": "\\r",
    "'": "\\'",
    '"': '\\"',
    "\x1a": "\\Z",
}
_ESCAPE_TABLE: Final = str.maketrans(MYSQL_ESCAPES)


class MysqlConnectorAdapter(DBAPIAdapter):
    """MySQL adapter.

    Connections run in autocommit mode. The prepared path uses
    ``cursor(prepared=True)`` so statements are prepared on the server and
    closed together with the cursor.
    """

    __slots__ = ("connect_options",)

    dialect: ClassVar[str] = "mysql"
    parameter_style: ClassVar[ParameterStyle] = ParameterStyle.POSITIONAL_PYFORMAT
    error_types: ClassVar["tuple[type[BaseException], ...]"] = (mysql.connector.Error,)

    def __init__(self, **connect_options: Any) -> None:
        self.connect_options = connect_options

    def open(self, *, host: str, user: str, password: str, database: str, port: "Optional[int]" = None) -> Any:
        params: dict[str, Any] = {"host": host, "user": user, "password": password, "autocommit": True}
        if database:
            params["database"] = database
        if port:
            params["port"] = port
        params.update(self.connect_options)
        logger.debug("Opening MySQL connection to %s as %s", host, user)
        return mysql.connector.connect(**params)

    def set_charset(self, connection: Any, charset: str) -> None:
        connection.set_charset_collation(charset)

    def select_database(self, connection: Any, name: str) -> None:
        connection.database = name

    def list_charsets(self, connection: Any) -> "list[str]":
        with self.cursor(connection) as cursor:
            cursor.execute("SHOW CHARACTER SET")
            return [str(row[0]) for row in cursor.fetchall()]

    def set_names(self, connection: Any, encoding: str) -> None:
        with self.cursor(connection) as cursor:
            cursor.execute(f"SET NAMES '{self.escape(encoding)}'")

    def prepared_cursor(self, connection: Any) -> DBAPICursor:
        return DBAPICursor(connection, prepared=True)

    def error_message(self, error: BaseException) -> str:
        message = getattr(error, "msg", None) or str(error)
        errno = getattr(error, "errno", None)
        if errno is not None and errno != -1:
            return f"[{errno}] {message}"
        return message

    def escape(self, value: str) -> str:
        return value.translate(_ESCAPE_TABLE)

    def sys_date(self) -> str:
        return "NOW()"
