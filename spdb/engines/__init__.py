"""
Engines: SQL statement builder/executor and the table-bound RecordAccessor.
"""

from spdb.engines.record import RecordAccessor
from spdb.engines.sql import QueryBuilder, ResultSet, run_statement

__all__ = [
    "QueryBuilder",
    "RecordAccessor",
    "ResultSet",
    "run_statement",
]
