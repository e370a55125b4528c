"""Driver adapters.

Adapters are imported from their own subpackage so that optional drivers are
only required when used.
"""

from sqlrunner.adapters.dbapi import DBAPIAdapter, DBAPICursor

__all__ = ("DBAPIAdapter", "DBAPICursor")
