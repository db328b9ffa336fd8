"""
spdb: connection manager for five storage backends, a parameterised query
builder, and a table-bound record accessor.
"""

from spdb.core.errors import (
    ConfigurationError,
    ConnectionError,
    DatabaseError,
    QueryError,
    ValidationError,
)
from spdb.core.pool import Connection, ConnectionManager, PoolManager
from spdb.engines import QueryBuilder, RecordAccessor, ResultSet
from spdb.models import NOT_FOUND, DriverEnum, Model
from spdb.schemas import ConnectionConfig, ResolvedSettings

__version__ = "0.1.0"

__all__ = [
    "ConfigurationError",
    "Connection",
    "ConnectionConfig",
    "ConnectionError",
    "ConnectionManager",
    "DatabaseError",
    "DriverEnum",
    "Model",
    "NOT_FOUND",
    "PoolManager",
    "QueryBuilder",
    "QueryError",
    "RecordAccessor",
    "ResolvedSettings",
    "ResultSet",
    "ValidationError",
]
