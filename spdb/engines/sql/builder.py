"""
Fluent statement builder with bound parameters.

    rows = (
        QueryBuilder(conn)
        .select("users", ["id", "email"])
        .where("status = ?", "active")
        .where_in("role", ["admin", "staff"])
        .order_by("created_at", "DESC")
        .get()
    )

Identifiers are validated and spliced into the statement; every value is a
``?`` bound parameter. The builder resets after each ``execute()`` so one
instance can build any number of statements.
"""

import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import Any, NamedTuple

from spdb.core.errors import ValidationError
from spdb.core.pool import Connection
from spdb.engines.sql.executor import count_placeholders, run_statement
from spdb.engines.sql.result import ResultSet
from spdb.engines.sql.safety import (
    check_condition_safety,
    validate_bare_column,
    validate_column,
    validate_table,
)
from spdb.models import JoinTypeEnum, QueryKindEnum, Row, SortDirectionEnum, _NotFound

_log = logging.getLogger(__name__)


class _Condition(NamedTuple):
    keyword: str  # WHERE, AND, WHERE NOT, AND NOT
    text: str
    params: tuple[Any, ...]


class QueryBuilder:
    """Builds one SELECT / INSERT / UPDATE / DELETE at a time against *connection*."""

    def __init__(self, connection: Connection, *, timeout: float | None = None) -> None:
        self._connection = connection
        self._timeout = timeout
        self._reset()

    def _reset(self) -> None:
        self._kind: QueryKindEnum | None = None
        self._table: str | None = None
        self._columns: list[str] = []
        self._values: dict[str, Any] = {}
        self._joins: list[str] = []
        self._conditions: list[_Condition] = []
        self._order: list[str] = []

    @property
    def kind(self) -> QueryKindEnum | None:
        return self._kind

    # ------------------------------------------------------------------
    # Statement kinds
    # ------------------------------------------------------------------

    def select(self, table: str, columns: Sequence[str] = ("*",)) -> "QueryBuilder":
        if isinstance(columns, str):
            columns = [columns]
        cols = [validate_column(c) for c in columns] or ["*"]
        self._start(QueryKindEnum.SELECT, table)
        self._columns = cols
        return self

    def insert(self, table: str, values: Mapping[str, Any]) -> "QueryBuilder":
        self._start(QueryKindEnum.INSERT, table)
        self._values = self._checked_values(values)
        return self

    def update(self, table: str, values: Mapping[str, Any]) -> "QueryBuilder":
        self._start(QueryKindEnum.UPDATE, table)
        self._values = self._checked_values(values)
        return self

    def delete(self, table: str) -> "QueryBuilder":
        self._start(QueryKindEnum.DELETE, table)
        return self

    # ------------------------------------------------------------------
    # Clauses
    # ------------------------------------------------------------------

    def where(self, condition: str, *params: Any) -> "QueryBuilder":
        """First call opens ``WHERE condition``; later calls append ``AND condition``."""
        keyword = "AND" if self._conditions else "WHERE"
        self._add_condition(keyword, condition, params)
        return self

    def where_not(self, condition: str, *params: Any) -> "QueryBuilder":
        keyword = "AND NOT" if self._conditions else "WHERE NOT"
        self._add_condition(keyword, condition, params)
        return self

    def where_in(self, column: str, values: Iterable[Any]) -> "QueryBuilder":
        col = validate_bare_column(column)
        vals = list(values)
        if not vals:
            raise ValidationError(f"where_in({col!r}) needs at least one value")
        placeholders = ", ".join("?" for _ in vals)
        keyword = "AND" if self._conditions else "WHERE"
        self._add_condition(keyword, f"{col} IN ({placeholders})", tuple(vals))
        return self

    def order_by(self, column: str, direction: str = "ASC") -> "QueryBuilder":
        self._require(QueryKindEnum.SELECT, "order_by")
        col = validate_bare_column(column)
        try:
            d = SortDirectionEnum(str(direction).strip().upper())
        except ValueError:
            raise ValidationError(
                f"Invalid sort direction {direction!r}; expected ASC or DESC"
            ) from None
        self._order.append(f"{col} {d.value}")
        return self

    def join(
        self, table: str, on_condition: str | None = None, type: str = "INNER"
    ) -> "QueryBuilder":
        self._require(QueryKindEnum.SELECT, "join")
        tbl = validate_table(table)
        try:
            jt = JoinTypeEnum(str(type).strip().upper())
        except ValueError:
            raise ValidationError(f"Invalid join type: {type!r}") from None
        if jt == JoinTypeEnum.CROSS:
            self._joins.append(f"CROSS JOIN {tbl}")
        else:
            if not on_condition or not on_condition.strip():
                raise ValidationError(f"{jt.value} JOIN {tbl} needs an ON condition")
            self._joins.append(f"{jt.value} JOIN {tbl} ON {on_condition.strip()}")
        return self

    # ------------------------------------------------------------------
    # Rendering and execution
    # ------------------------------------------------------------------

    def to_sql(self) -> tuple[str, list[Any]]:
        """Render the current statement as ``(sql, params)`` without executing it."""
        if self._kind is None or self._table is None:
            raise ValidationError("No statement to build: call select/insert/update/delete first")
        params: list[Any] = []

        if self._kind == QueryKindEnum.SELECT:
            parts = [f"SELECT {', '.join(self._columns)} FROM {self._table}"]
            parts.extend(self._joins)
        elif self._kind == QueryKindEnum.INSERT:
            if self._conditions:
                raise ValidationError("INSERT does not take WHERE conditions")
            cols = ", ".join(self._values)
            marks = ", ".join("?" for _ in self._values)
            return (
                f"INSERT INTO {self._table} ({cols}) VALUES ({marks})",
                list(self._values.values()),
            )
        elif self._kind == QueryKindEnum.UPDATE:
            assignments = ", ".join(f"{c} = ?" for c in self._values)
            parts = [f"UPDATE {self._table} SET {assignments}"]
            params.extend(self._values.values())
        else:
            parts = [f"DELETE FROM {self._table}"]

        for cond in self._conditions:
            parts.append(f"{cond.keyword} {cond.text}")
            params.extend(cond.params)
        if self._order:
            parts.append("ORDER BY " + ", ".join(self._order))
        return " ".join(parts), params

    def execute(self) -> ResultSet | int:
        """Run the statement: ResultSet for SELECT, affected rows otherwise. Always resets."""
        try:
            sql, params = self.to_sql()
            return run_statement(self._connection, sql, params, timeout=self._timeout)
        finally:
            self._reset()

    def get(self) -> list[Row]:
        """Execute a SELECT and return every row in order."""
        return self._execute_select("get").all()

    def first(self) -> Row | _NotFound:
        """Execute a SELECT and return the first row, or NOT_FOUND when there is none."""
        return self._execute_select("first").first()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _start(self, kind: QueryKindEnum, table: str) -> None:
        tbl = validate_table(table)
        self._reset()
        self._kind = kind
        self._table = tbl

    def _require(self, kind: QueryKindEnum, op: str) -> None:
        if self._kind != kind:
            current = self._kind.value if self._kind else "no statement"
            raise ValidationError(f"{op}() requires a {kind.value} statement (have {current})")

    def _checked_values(self, values: Mapping[str, Any]) -> dict[str, Any]:
        if not values:
            raise ValidationError("At least one column value is required")
        return {validate_bare_column(k): v for k, v in values.items()}

    def _add_condition(self, keyword: str, condition: str, params: tuple[Any, ...]) -> None:
        if self._kind is None:
            raise ValidationError("Call select/update/delete before adding conditions")
        if not isinstance(condition, str) or not condition.strip():
            raise ValidationError("Condition must be a non-empty string")
        text = condition.strip()
        expected = count_placeholders(text)
        if expected != len(params):
            raise ValidationError(
                f"Condition {text!r} has {expected} placeholder(s) but {len(params)} value(s)"
            )
        for warning in check_condition_safety(text):
            _log.warning("%s", warning["message"])
        self._conditions.append(_Condition(keyword, text, tuple(params)))

    def _execute_select(self, op: str) -> ResultSet:
        self._require(QueryKindEnum.SELECT, op)
        return self.execute()  # type: ignore[return-value]
