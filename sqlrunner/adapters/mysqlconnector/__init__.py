from sqlrunner.adapters.mysqlconnector.driver import MysqlConnectorAdapter

__all__ = ("MysqlConnectorAdapter",)
