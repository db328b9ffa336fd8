"""
RecordAccessor: table-bound CRUD for the single-table, simple-predicate case.

The table comes from the bound model's ``__tablename__`` (read once, at
construction) and the backend's table prefix. Every operation resolves it
before touching the connection.
"""

import logging
from collections.abc import Mapping
from typing import Any

from spdb.core.errors import ConfigurationError, ValidationError
from spdb.core.pool import Connection
from spdb.engines.record.timestamps import stamp_created, stamp_updated
from spdb.engines.sql import QueryBuilder
from spdb.engines.sql.safety import validate_bare_column, validate_table
from spdb.models import NOT_FOUND, Row, _NotFound

_log = logging.getLogger(__name__)


def _non_empty(values: Mapping[str, Any] | None) -> dict[str, Any]:
    """Drop None and blank-string fields."""
    return {
        k: v
        for k, v in (values or {}).items()
        if v is not None and not (isinstance(v, str) and v.strip() == "")
    }


class RecordAccessor:
    """CRUD verbs over one table.

    - model: class with ``__tablename__`` (spdb.models.Model subclass or SQLModel table)
    - table: explicit table name; takes precedence over the model
    """

    def __init__(
        self,
        connection: Connection,
        model: type | None = None,
        *,
        table: str | None = None,
    ) -> None:
        self._connection = connection
        self._model = model
        name = table if table is not None else getattr(model, "__tablename__", None)
        self._table_name = name.strip() if isinstance(name, str) and name.strip() else None
        self._primary_key = validate_bare_column(getattr(model, "__primary_key__", "id"))
        self._created_column = validate_bare_column(
            getattr(model, "__created_column__", "created_at")
        )
        self._rows: list[Row] | None = None
        self._staged_insert: dict[str, Any] | None = None
        self._staged_update: dict[str, Any] | None = None
        self._staged_predicate: dict[str, Any] | None = None

    @property
    def table(self) -> str:
        """Prefixed table name. Raises ConfigurationError when no table is bound."""
        if not self._table_name:
            owner = getattr(self._model, "__name__", None) or "RecordAccessor"
            raise ConfigurationError(f"No table name bound for {owner}")
        prefix = getattr(self._connection.settings, "prefix", "") or ""
        return validate_table(f"{prefix}{self._table_name}")

    def _query(self) -> QueryBuilder:
        return QueryBuilder(self._connection)

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create(self, record: Mapping[str, Any]) -> "RecordAccessor":
        """Stage *record* (timestamps stamped) for a later ``save()``."""
        self._staged_insert = stamp_created(record)
        return self

    def save(self, record: Mapping[str, Any] | None = None) -> bool:
        """Insert *record* (or the one staged by create()); stamps timestamps when absent."""
        table = self.table
        if record is None:
            if self._staged_insert is None:
                raise ValidationError("Nothing to save: pass a record or call create() first")
            record = self._staged_insert
        ok = self._insert(table, stamp_created(record))
        self._staged_insert = None
        return ok

    def insert_into(self, table: str, record: Mapping[str, Any]) -> bool:
        """Insert into an explicit table, bypassing the bound one."""
        return self._insert(validate_table(table), stamp_created(record))

    def _insert(self, table: str, values: dict[str, Any]) -> bool:
        rowcount = self._query().insert(table, values).execute()
        _log.debug("Inserted into %s (rowcount=%s)", table, rowcount)
        return rowcount != 0

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------

    def stage_update(
        self, record: Mapping[str, Any], predicate: Mapping[str, Any]
    ) -> "RecordAccessor":
        """Stage values and predicate for a later argument-less ``quick_update()``."""
        self._staged_update = dict(record)
        self._staged_predicate = dict(predicate)
        return self

    def quick_update(
        self,
        record: Mapping[str, Any] | None = None,
        predicate: Mapping[str, Any] | None = None,
    ) -> bool:
        """
        UPDATE non-empty fields of *record* WHERE all non-empty *predicate* fields match.

        An empty predicate (``{}``) updates every row in the table; it must be passed
        explicitly. A predicate whose fields are all empty is rejected.
        """
        table = self.table
        if record is None:
            record = self._staged_update
        if predicate is None:
            predicate = self._staged_predicate
        if record is None:
            raise ValidationError("Nothing to update: pass a record or call stage_update() first")
        if predicate is None:
            raise ValidationError(
                "quick_update() needs an explicit predicate; pass {} to update every row"
            )

        values = stamp_updated(_non_empty(record))
        conditions = _non_empty(predicate)
        if predicate and not conditions:
            raise ValidationError(
                "Every predicate field is empty; pass {} explicitly to update every row"
            )

        qb = self._query().update(table, values)
        for column, value in conditions.items():
            qb.where(f"{validate_bare_column(column)} = ?", value)
        if not conditions:
            _log.warning("quick_update on %s without predicate: updating every row", table)

        rowcount = qb.execute()
        self._staged_update = None
        self._staged_predicate = None
        return rowcount != 0

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def fetch_all(self) -> list[Row]:
        return self._query().select(self.table).get()

    def fetch_all_ascending(self) -> list[Row]:
        """All rows, oldest first by the creation timestamp column."""
        return self._query().select(self.table).order_by(self._created_column, "ASC").get()

    def fetch_all_descending(self) -> list[Row]:
        """All rows, newest first by the creation timestamp column."""
        return self._query().select(self.table).order_by(self._created_column, "DESC").get()

    def fetch_one(self) -> Row | _NotFound:
        return self._query().select(self.table).first()

    def fetch_oldest(self) -> Row | _NotFound:
        return self._query().select(self.table).order_by(self._created_column, "ASC").first()

    def fetch_latest(self) -> Row | _NotFound:
        return self._query().select(self.table).order_by(self._created_column, "DESC").first()

    def fetch_by_id(self, id: Any) -> Row | _NotFound:
        return self._query().select(self.table).where(f"{self._primary_key} = ?", id).first()

    def fetch_by_condition(self, predicate: Mapping[str, Any]) -> Row | _NotFound:
        """First row matching every field of *predicate* exactly, or NOT_FOUND.

        Every field is bound as given (``None`` matches ``IS NULL``); an empty
        predicate is rejected rather than matching the whole table.
        """
        table = self.table
        if not predicate:
            raise ValidationError("fetch_by_condition() needs at least one predicate field")
        qb = self._query().select(table)
        for column, value in predicate.items():
            col = validate_bare_column(column)
            if value is None:
                qb.where(f"{col} IS NULL")
            else:
                qb.where(f"{col} = ?", value)
        return qb.first()

    def exists_by_condition(self, predicate: Mapping[str, Any]) -> bool:
        return self.fetch_by_condition(predicate) is not NOT_FOUND

    def query_by_condition(self, predicate: Mapping[str, Any]) -> "RecordAccessor":
        """Run an equality AND query over the non-empty fields of *predicate* and buffer
        its rows; read them with first()/get()."""
        self._rows = self._select_where(self.table, predicate).get()
        return self

    def first(self) -> Row | _NotFound:
        rows = self._buffered()
        return rows[0] if rows else NOT_FOUND

    def get(self) -> list[Row]:
        return list(self._buffered())

    def _buffered(self) -> list[Row]:
        if self._rows is None:
            raise ValidationError("No buffered rows: call query_by_condition() first")
        return self._rows

    def _select_where(self, table: str, predicate: Mapping[str, Any]) -> QueryBuilder:
        qb = self._query().select(table)
        for column, value in _non_empty(predicate).items():
            qb.where(f"{validate_bare_column(column)} = ?", value)
        return qb

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------

    def delete_by_id(self, id: Any) -> bool:
        rowcount = self._query().delete(self.table).where(f"{self._primary_key} = ?", id).execute()
        return rowcount != 0
