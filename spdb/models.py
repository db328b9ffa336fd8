"""
Core enums, model descriptor and the NOT_FOUND sentinel.

Model: base for plain (non-SQLModel) table descriptors. Any class exposing a
``__tablename__`` attribute can be bound by RecordAccessor, SQLModel table
classes included.
"""

from enum import Enum
from typing import Any, ClassVar

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

_DRIVER_ALIASES = {
    "mysql": "relational-tuned",
    "mariadb": "relational-tuned",
    "postgresql": "relational-schema",
    "postgres": "relational-schema",
    "pgsql": "relational-schema",
    "mongodb": "document-store",
    "mongo": "document-store",
    "sqlite": "embedded-file",
    "sqlite3": "embedded-file",
    "sqlsrv": "enterprise-sql",
    "mssql": "enterprise-sql",
}


class DriverEnum(str, Enum):
    """Supported backends. Legacy driver names (mysql, postgresql, ...) resolve via aliases."""

    RELATIONAL_TUNED = "relational-tuned"
    RELATIONAL_SCHEMA = "relational-schema"
    DOCUMENT_STORE = "document-store"
    EMBEDDED_FILE = "embedded-file"
    ENTERPRISE_SQL = "enterprise-sql"

    @classmethod
    def _missing_(cls, value: object) -> "DriverEnum | None":
        if isinstance(value, str):
            key = value.strip().lower()
            canonical = _DRIVER_ALIASES.get(key, key)
            for member in cls:
                if member.value == canonical:
                    return member
        return None


class QueryKindEnum(str, Enum):
    """Statement kind held by a QueryBuilder."""

    SELECT = "SELECT"
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class JoinTypeEnum(str, Enum):
    INNER = "INNER"
    LEFT = "LEFT"
    RIGHT = "RIGHT"
    FULL = "FULL"
    CROSS = "CROSS"


class SortDirectionEnum(str, Enum):
    ASC = "ASC"
    DESC = "DESC"


# ---------------------------------------------------------------------------
# NOT_FOUND sentinel
# ---------------------------------------------------------------------------


class _NotFound:
    """Zero-row result for single-row lookups. Not an error, not a row."""

    _instance: "_NotFound | None" = None

    def __new__(cls) -> "_NotFound":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NOT_FOUND"

    def __reduce__(self) -> str:
        return "NOT_FOUND"


NOT_FOUND = _NotFound()

Row = dict[str, Any]


# ---------------------------------------------------------------------------
# Model descriptor
# ---------------------------------------------------------------------------


class Model:
    """Declare ``__tablename__`` on a subclass to bind it to a table."""

    __tablename__: ClassVar[str | None] = None
    __primary_key__: ClassVar[str] = "id"
    __created_column__: ClassVar[str] = "created_at"
