"""
Execute a built statement against a Connection.

- SELECT / WITH: returns a ResultSet
- INSERT / UPDATE / DELETE: returns the affected row count

Statements arrive with ``?`` placeholders; ``to_paramstyle`` rewrites them for
the driver (``%s`` for pymysql, psycopg and pymssql) while leaving quoted
literals and comments untouched. Driver errors surface as QueryError, or as
ConnectionError when the session was lost mid-statement.
"""

import logging
import re
from collections.abc import Iterator, Sequence
from typing import Any

from spdb.core.errors import ConfigurationError, ConnectionError, QueryError
from spdb.core.pool import Connection, cursor_to_dicts, execute
from spdb.engines.sql.result import ResultSet

_log = logging.getLogger(__name__)


def _is_select_like(sql: str) -> bool:
    """True if the statement is SELECT or WITH (CTE); otherwise DML (INSERT/UPDATE/DELETE etc)."""
    s = re.sub(r"^[\s;(]+", "", sql)
    first = s.split()[0].upper() if s.split() else ""
    return first in ("SELECT", "WITH")


def _iter_segments(sql: str) -> Iterator[tuple[str, bool]]:
    """Split SQL into ``(text, is_code)`` pieces.

    Single-quoted (``'...'``), double-quoted (``"..."``) and dollar-quoted
    (``$$...$$``) literals plus ``--`` and ``/* */`` comments come back with
    ``is_code=False``.
    """
    current: list[str] = []
    i = 0
    length = len(sql)

    def flush() -> Iterator[tuple[str, bool]]:
        if current:
            yield "".join(current), True
            current.clear()

    while i < length:
        ch = sql[i]

        if ch in ("'", '"'):
            yield from flush()
            quote = ch
            start = i
            i += 1
            while i < length:
                c = sql[i]
                if c == quote:
                    if i + 1 < length and sql[i + 1] == quote:
                        i += 2
                        continue
                    i += 1
                    break
                if c == "\\" and i + 1 < length:
                    i += 2
                    continue
                i += 1
            yield sql[start:i], False
            continue

        if ch == "$" and i + 1 < length and sql[i + 1] == "$":
            yield from flush()
            tag_end = sql.find("$$", i + 2)
            end = length if tag_end == -1 else tag_end + 2
            yield sql[i:end], False
            i = end
            continue

        if ch == "-" and i + 1 < length and sql[i + 1] == "-":
            yield from flush()
            nl = sql.find("\n", i)
            end = length if nl == -1 else nl + 1
            yield sql[i:end], False
            i = end
            continue

        if ch == "/" and i + 1 < length and sql[i + 1] == "*":
            yield from flush()
            close = sql.find("*/", i + 2)
            end = length if close == -1 else close + 2
            yield sql[i:end], False
            i = end
            continue

        current.append(ch)
        i += 1

    yield from flush()


def count_placeholders(sql: str) -> int:
    """Number of ``?`` markers outside literals and comments."""
    return sum(text.count("?") for text, is_code in _iter_segments(sql) if is_code)


def to_paramstyle(sql: str, paramstyle: str) -> str:
    """Rewrite ``?`` markers for *paramstyle* (``qmark`` or ``format``).

    For ``format`` every literal ``%`` is doubled, since the driver runs
    %-interpolation over the whole statement text.
    """
    if paramstyle == "qmark":
        return sql
    if paramstyle != "format":
        raise ConfigurationError(f"Unsupported paramstyle: {paramstyle}")
    out: list[str] = []
    for text, is_code in _iter_segments(sql):
        text = text.replace("%", "%%")
        if is_code:
            text = text.replace("?", "%s")
        out.append(text)
    return "".join(out)


def run_statement(
    conn: Connection,
    sql: str,
    params: Sequence[Any] | None = None,
    *,
    timeout: float | None = None,
) -> ResultSet | int:
    """
    Run one ``?``-placeholder statement with bound *params* and commit.

    Returns a ResultSet for SELECT/WITH, otherwise the affected row count.
    On failure the transaction is rolled back and QueryError raised with the
    driver's message. When the driver reports the session itself lost, the
    Connection is closed and ConnectionError raised instead.
    """
    if not conn.supports_sql:
        raise ConfigurationError(
            f"{conn.driver.value} connections do not accept SQL statements"
        )
    if conn.closed:
        raise ConnectionError(
            f"{conn.driver.value} connection is closed", driver=conn.driver.value
        )

    bound = list(params or [])
    expected = count_placeholders(sql)
    if expected != len(bound):
        raise QueryError(
            f"Statement expects {expected} parameter(s), got {len(bound)}", sql=sql
        )
    native_sql = to_paramstyle(sql, conn.paramstyle) if bound else sql
    _log.debug("Executing SQL: %s", sql)

    cur = None
    try:
        cur = execute(conn, native_sql, bound, timeout=timeout)
        if _is_select_like(sql):
            result: ResultSet | int = ResultSet(cursor_to_dicts(cur))
        else:
            result = cur.rowcount if cur.rowcount is not None else 0
        conn.commit()
        return result
    except conn.connector.driver_errors as e:
        if conn.connector.lost_connection(conn.handle, e):
            _log.error("%s connection lost: %s. SQL: %s", conn.driver.value, e, sql, exc_info=True)
            conn.close()
            raise ConnectionError(str(e), driver=conn.driver.value) from e
        try:
            conn.rollback()
        except Exception:
            pass
        _log.error("SQL execution failed: %s. SQL: %s", e, sql, exc_info=True)
        raise QueryError(str(e), sql=sql) from e
    finally:
        if cur is not None:
            try:
                cur.close()
            except Exception:
                pass
