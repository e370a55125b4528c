"""Connection lifecycle for a single database handle."""

from typing import TYPE_CHECKING, Any, Optional

from sqlrunner.config import DatabaseConfig
from sqlrunner.exceptions import (
    DatabaseConnectionError,
    MissingCredentialsError,
    MissingDatabaseNameError,
    NotConnectedError,
    SQLRunnerError,
    UnexpectedSelectError,
)
from sqlrunner.observability import ErrorLog
from sqlrunner.utils.logging import get_logger

if TYPE_CHECKING:
    from sqlrunner.adapters.dbapi import DBAPIAdapter

__all__ = ("ConnectionManager", "normalize_charset")

logger = get_logger("driver.connection")


def normalize_charset(charset: str) -> str:
    """``"UTF-8"`` -> ``"utf8"``: lower-cased with hyphens removed."""
    return charset.replace("-", "").lower()


class ConnectionManager:
    """Owns one live connection handle.

    ``connect`` and ``select`` never raise: failures are recorded in the
    error log and reported through the returned connected flag. Empty
    arguments fall back to the values of :class:`DatabaseConfig`.
    """

    __slots__ = ("_connected", "_handle", "adapter", "config", "error_log")

    def __init__(
        self, adapter: "DBAPIAdapter", config: "Optional[DatabaseConfig]" = None, error_log: "Optional[ErrorLog]" = None
    ) -> None:
        self.adapter = adapter
        self.config = config if config is not None else DatabaseConfig()
        self.error_log = error_log if error_log is not None else ErrorLog()
        self._handle: Any = None
        self._connected = False

    @property
    def is_connected(self) -> bool:
        return self._connected and self._handle is not None

    @property
    def connection(self) -> Any:
        """The raw driver handle, or None."""
        return self._handle

    @property
    def database(self) -> str:
        return self.config.database

    @property
    def host(self) -> str:
        return self.config.host

    @property
    def charset(self) -> str:
        return self.config.charset

    def _fail(self, error: SQLRunnerError) -> bool:
        self.error_log.register(error)
        return False

    def connect(self, user: str = "", password: str = "", host: str = "", charset: str = "") -> bool:
        """Open a connection handle.

        Args:
            user: Database user; required after falling back to the config.
            password: Password for ``user``.
            host: Server host.
            charset: Connection charset, normalized and applied right after opening.
                A charset the driver rejects is logged and does not fail the call.

        Returns:
            Whether the connection is now open.
        """
        self._connected = False
        user = user or self.config.user
        password = password or self.config.password
        host = host or self.config.host
        charset = charset or self.config.charset

        if not user:
            return self._fail(MissingCredentialsError())

        if self._handle is not None:
            self._close_handle()

        try:
            with self.adapter.handle_database_exceptions():
                handle = self.adapter.open(
                    host=host, user=user, password=password, database=self.config.database, port=self.config.port
                )
        except SQLRunnerError as e:
            return self._fail(DatabaseConnectionError(f"{DatabaseConnectionError.detail} ({e.detail})"))

        self._handle = handle
        if charset:
            # a rejected charset leaves the server default in place
            try:
                with self.adapter.handle_database_exceptions():
                    self.adapter.set_charset(handle, normalize_charset(charset))
            except SQLRunnerError as e:
                logger.warning("Could not apply charset %r: %s", charset, e.detail)

        self._connected = True
        logger.debug("Connected to %s as %s", host, user)
        return self._connected

    def select(self, name: str = "", charset: str = "") -> bool:
        """Make ``name`` the active catalog.

        When a charset is requested (or configured) it is normalized and
        applied with ``SET NAMES`` only if the server lists it as supported.

        Returns:
            Whether the connection is usable with the selected catalog.
        """
        self._connected = False
        name = name or self.config.database
        charset = charset or self.config.charset

        if not name:
            return self._fail(MissingDatabaseNameError())
        if self._handle is None:
            return self._fail(NotConnectedError())

        try:
            with self.adapter.handle_database_exceptions():
                self.adapter.select_database(self._handle, name)
        except SQLRunnerError as e:
            return self._fail(UnexpectedSelectError(e.detail) if e.detail else UnexpectedSelectError())

        self.config.database = name
        if charset:
            encoding = normalize_charset(charset)
            try:
                with self.adapter.handle_database_exceptions():
                    supported = {normalize_charset(item) for item in self.adapter.list_charsets(self._handle)}
                    if encoding in supported:
                        self.adapter.set_names(self._handle, encoding)
                    else:
                        logger.warning(
                            "Charset %r is not supported by the server; keeping the session charset", charset
                        )
            except SQLRunnerError as e:
                return self._fail(e)

        self._connected = True
        logger.debug("Selected database %s", name)
        return self._connected

    def quick_connect(
        self, user: str = "", password: str = "", name: str = "", host: str = "", charset: str = ""
    ) -> bool:
        """Connect and select a database in one call."""
        if self.connect(user, password, host, charset):
            self.select(name, charset)
        return self._connected

    def ensure_connected(self) -> bool:
        """Reconnect with the stored settings when there is no live handle."""
        if self.is_connected:
            return True
        logger.debug("No live connection; connecting with stored settings")
        return self.quick_connect()

    def _close_handle(self) -> None:
        handle, self._handle = self._handle, None
        try:
            with self.adapter.handle_database_exceptions():
                self.adapter.close(handle)
        except SQLRunnerError:
            logger.debug("Error while closing connection handle", exc_info=True)

    def disconnect(self) -> None:
        """Close the handle if there is one. Safe to call repeatedly."""
        if self._handle is not None:
            self._close_handle()
            logger.debug("Disconnected")
        self._connected = False

    def __repr__(self) -> str:
        return f"{type(self).__name__}(adapter={self.adapter!r}, connected={self.is_connected})"
