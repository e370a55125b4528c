from sqlrunner import adapters, core, driver, exceptions, observability
from sqlrunner.config import ConnectionConfig, DatabaseConfig, ExecutionConfig
from sqlrunner.core import (
    ColumnInfo,
    ExecutionFailure,
    MutationResult,
    ParameterStyle,
    ParameterType,
    SelectResult,
    StatementKind,
    StatementResult,
)
from sqlrunner.driver import ConnectionManager, QueryExecutor
from sqlrunner.observability import ErrorLog, ErrorRecord

__all__ = (
    "ColumnInfo",
    "ConnectionConfig",
    "ConnectionManager",
    "DatabaseConfig",
    "ErrorLog",
    "ErrorRecord",
    "ExecutionConfig",
    "ExecutionFailure",
    "MutationResult",
    "ParameterStyle",
    "ParameterType",
    "QueryExecutor",
    "SelectResult",
    "StatementKind",
    "StatementResult",
    "adapters",
    "core",
    "driver",
    "exceptions",
    "observability",
)
