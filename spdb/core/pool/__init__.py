"""
Connections to the five supported backends, plus a fixed-capacity pool.

Drivers: pymysql, psycopg, pymongo, sqlite3, pymssql. The Connector for a
backend is selected once from ResolvedSettings.driver.
"""

from .connect import configure, connect, cursor_to_dicts, execute
from .connection import Connection
from .connectors import CONNECTORS, Connector, get_connector
from .health import health_check
from .manager import ConnectionManager, PoolManager

__all__ = [
    "configure",
    "connect",
    "execute",
    "cursor_to_dicts",
    "health_check",
    "Connection",
    "Connector",
    "CONNECTORS",
    "get_connector",
    "ConnectionManager",
    "PoolManager",
]
