"""Shared doubles for unit tests."""

from __future__ import annotations

from collections.abc import Generator
from typing import Any

import pytest

from sqlrunner.adapters.dbapi import DBAPIAdapter, DBAPICursor
from sqlrunner.adapters.sqlite import SqliteAdapter
from sqlrunner.config import DatabaseConfig, ExecutionConfig
from sqlrunner.driver import QueryExecutor


class FakeDriverError(Exception):
    """Error raised by :class:`FakeAdapter`."""


class FakeConnection:
    def __init__(self) -> None:
        self.closed = False
        self.database: str | None = None
        self.charset: str | None = None
        self.names: str | None = None

    def cursor(self, **kwargs: Any) -> Any:  # pragma: no cover - not used by connection tests
        raise NotImplementedError

    def close(self) -> None:
        self.closed = True


class FakeAdapter(DBAPIAdapter):
    """Adapter that never touches a network and records what it was asked to do."""

    error_types = (FakeDriverError,)

    def __init__(
        self,
        fail_open: bool = False,
        fail_select: str | None = None,
        charsets: tuple[str, ...] = ("utf8", "latin1", "utf8mb4"),
    ) -> None:
        self.fail_open = fail_open
        self.fail_select = fail_select
        self.charsets = charsets
        self.open_calls: list[dict[str, Any]] = []
        self.connections: list[FakeConnection] = []

    def open(self, *, host: str, user: str, password: str, database: str, port: int | None = None) -> Any:
        self.open_calls.append({"host": host, "user": user, "password": password, "database": database})
        if self.fail_open:
            raise FakeDriverError("Access denied")
        connection = FakeConnection()
        self.connections.append(connection)
        return connection

    def set_charset(self, connection: Any, charset: str) -> None:
        if charset not in self.charsets:
            raise FakeDriverError(f"Character set '{charset}' unsupported")
        connection.charset = charset

    def select_database(self, connection: Any, name: str) -> None:
        if self.fail_select is not None:
            raise FakeDriverError(self.fail_select)
        connection.database = name

    def list_charsets(self, connection: Any) -> list[str]:
        return list(self.charsets)

    def set_names(self, connection: Any, encoding: str) -> None:
        connection.names = encoding


class CountingSqliteAdapter(SqliteAdapter):
    """SQLite adapter counting every connection and cursor it hands out."""

    def __init__(self) -> None:
        super().__init__()
        self.open_calls = 0
        self.cursor_calls = 0
        self.prepared_calls = 0

    def open(self, **kwargs: Any) -> Any:
        self.open_calls += 1
        return super().open(**kwargs)

    def cursor(self, connection: Any) -> DBAPICursor:
        self.cursor_calls += 1
        return super().cursor(connection)

    def prepared_cursor(self, connection: Any) -> DBAPICursor:
        self.prepared_calls += 1
        return super().prepared_cursor(connection)


@pytest.fixture
def fake_adapter() -> FakeAdapter:
    return FakeAdapter()


@pytest.fixture
def sqlite_adapter() -> CountingSqliteAdapter:
    return CountingSqliteAdapter()


@pytest.fixture
def database_config() -> DatabaseConfig:
    return DatabaseConfig(user="app", password="secret", database=":memory:")


@pytest.fixture
def executor(
    sqlite_adapter: CountingSqliteAdapter, database_config: DatabaseConfig
) -> Generator[QueryExecutor, None, None]:
    runner = QueryExecutor(sqlite_adapter, database_config, ExecutionConfig(show_errors=False))
    yield runner
    runner.disconnect()


@pytest.fixture
def caching_executor(
    sqlite_adapter: CountingSqliteAdapter, database_config: DatabaseConfig
) -> Generator[QueryExecutor, None, None]:
    runner = QueryExecutor(sqlite_adapter, database_config, ExecutionConfig(cache_queries=True, show_errors=False))
    yield runner
    runner.disconnect()


@pytest.fixture
def fake_adapter_factory() -> type[FakeAdapter]:
    return FakeAdapter
