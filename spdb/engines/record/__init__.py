"""
Table-bound record access (active-record style CRUD).
"""

from spdb.engines.record.accessor import RecordAccessor
from spdb.engines.record.timestamps import stamp_created, stamp_updated

__all__ = [
    "RecordAccessor",
    "stamp_created",
    "stamp_updated",
]
