"""Connection management and query execution."""

from sqlrunner.driver._sync import QueryExecutor
from sqlrunner.driver.connection import ConnectionManager

__all__ = ("ConnectionManager", "QueryExecutor")
