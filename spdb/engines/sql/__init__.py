"""
SQL engine: QueryBuilder, run_statement, ResultSet.
"""

from spdb.engines.sql.builder import QueryBuilder
from spdb.engines.sql.executor import run_statement, to_paramstyle
from spdb.engines.sql.result import ResultSet

__all__ = [
    "QueryBuilder",
    "ResultSet",
    "run_statement",
    "to_paramstyle",
]
