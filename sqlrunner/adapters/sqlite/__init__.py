from sqlrunner.adapters.sqlite.driver import SqliteAdapter

__all__ = ("SqliteAdapter",)
