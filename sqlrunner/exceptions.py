from typing import Any, Optional

__all__ = (
    "DatabaseConnectionError",
    "DriverExecutionError",
    "ImproperConfigurationError",
    "MissingCredentialsError",
    "MissingDatabaseNameError",
    "MissingDependencyError",
    "NotConnectedError",
    "PreparedBindError",
    "SQLRunnerError",
    "UnexpectedSelectError",
)


class SQLRunnerError(Exception):
    """Base exception class from which all sqlrunner exceptions inherit."""

    detail: str

    def __init__(self, *args: Any, detail: str = "") -> None:
        """Initialize ``SQLRunnerError``.

        Args:
            *args: args are converted to :class:`str` before passing to :class:`Exception`
            detail: detail of the exception.
        """
        str_args = [str(arg) for arg in args if arg]
        if not detail:
            if str_args:
                detail, *str_args = str_args
            elif hasattr(self, "detail"):
                detail = self.detail
        self.detail = detail
        super().__init__(*str_args)

    def __repr__(self) -> str:
        if self.detail:
            return f"{self.__class__.__name__} - {self.detail}"
        return self.__class__.__name__

    def __str__(self) -> str:
        return " ".join((*self.args, self.detail)).strip()


class MissingDependencyError(SQLRunnerError, ImportError):
    """Missing optional dependency.

    This exception is raised only when a module depends on a dependency that has not been installed.
    """

    def __init__(self, package: str, install_package: Optional[str] = None) -> None:
        super().__init__(
            f"Package {package!r} is not installed but required. You can install it by running "
            f"'pip install sqlrunner[{install_package or package}]' to install sqlrunner with the required extra "
            f"or 'pip install {install_package or package}' to install the package separately",
        )


class ImproperConfigurationError(SQLRunnerError):
    """Improper Configuration error."""


# -- Connection errors --
class MissingCredentialsError(SQLRunnerError):
    """No user was given, neither at the call site nor in the configuration."""

    detail = "A user and password are required to connect to a database server"


class DatabaseConnectionError(SQLRunnerError):
    """The driver failed to open a connection."""

    detail = (
        "Error establishing a database connection. Correct user/password? "
        "Correct hostname? Database server running?"
    )


class MissingDatabaseNameError(SQLRunnerError):
    """No database name was given, neither at the call site nor in the configuration."""

    detail = "A database name is required to select a database"


class NotConnectedError(SQLRunnerError):
    """An operation needed an open connection handle and there was none."""

    detail = "Database connection is not active"


class UnexpectedSelectError(SQLRunnerError):
    """Selecting a database failed and the driver gave no reason."""

    detail = "Unexpected error while trying to select database"


# -- Execution errors --
class DriverExecutionError(SQLRunnerError):
    """The driver reported an error while executing a statement."""

    sql: Optional[str]

    def __init__(self, message: str, sql: Optional[str] = None) -> None:
        super().__init__(detail=message)
        self.sql = sql


class PreparedBindError(DriverExecutionError):
    """Parameters could not be bound to a prepared statement."""
