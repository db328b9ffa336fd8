"""
Connection helpers: configure (env-merged settings), connect, execute, cursor_to_dicts.

configure() picks the backend block that matches the driver; connect()
dispatches to the driver's Connector. execute() runs one statement with an
optional per-statement timeout and returns the open cursor.
"""

import logging
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from spdb.core.config import EnvOverrides
from spdb.core.config import settings as app_settings
from spdb.core.errors import ConfigurationError
from spdb.models import DriverEnum
from spdb.schemas import (
    BACKEND_OPTIONS,
    DEFAULT_PORTS,
    ConnectionConfig,
    ResolvedSettings,
)

from .connection import Connection
from .connectors import get_connector

_log = logging.getLogger(__name__)


def _as_config(config: ConnectionConfig | Mapping[str, Any]) -> ConnectionConfig:
    if isinstance(config, ConnectionConfig):
        return config
    if not isinstance(config, Mapping):
        raise ConfigurationError(
            f"Configuration must be a ConnectionConfig or mapping, got {type(config).__name__}"
        )
    try:
        return ConnectionConfig.model_validate(dict(config))
    except PydanticValidationError as e:
        raise ConfigurationError(f"Invalid connection configuration: {e}") from e


def _resolve_driver(value: Any) -> DriverEnum:
    if value is None or (isinstance(value, str) and value.strip() == ""):
        raise ConfigurationError(
            "Database driver is not set (config 'driver' or DB_CONNECTION)"
        )
    try:
        return DriverEnum(value)
    except ValueError:
        raise ConfigurationError(f"Unsupported database driver: {value!r}") from None


def _find_backend_block(
    backends: Mapping[str, Any], driver: DriverEnum
) -> Mapping[str, Any] | None:
    """Return the block keyed by *driver* (canonical id or legacy alias)."""
    for key, block in backends.items():
        try:
            if DriverEnum(key) == driver:
                return block if block is not None else {}
        except ValueError:
            continue
    return None


def configure(config: ConnectionConfig | Mapping[str, Any]) -> ResolvedSettings:
    """
    Merge environment overrides over *config* and validate the driver's settings block.

    Overrides (DB_CONNECTION, DB_HOST, DB_PORT, DB_USERNAME, DB_PASSWORD, DB_NAME)
    win when present and non-empty.

    Raises ConfigurationError when the driver is unset/unknown or its block is missing.
    """
    cfg = _as_config(config)
    merged: dict[str, Any] = cfg.model_dump(exclude={"backends"})
    overrides = EnvOverrides().as_config_fields()
    if overrides:
        _log.debug("Applying environment overrides: %s", sorted(overrides))
    merged.update(overrides)

    driver = _resolve_driver(merged.get("driver"))
    block = _find_backend_block(cfg.backends, driver)
    if block is None:
        raise ConfigurationError(f"Missing settings block for driver {driver.value!r}")

    try:
        backend = BACKEND_OPTIONS[driver].model_validate(dict(block))
        return ResolvedSettings.model_validate(
            {
                "driver": driver,
                "host": merged.get("host"),
                "port": merged.get("port") or DEFAULT_PORTS.get(driver),
                "username": merged.get("username"),
                "password": merged.get("password"),
                "database": merged.get("database"),
                "backend": backend,
            }
        )
    except PydanticValidationError as e:
        raise ConfigurationError(
            f"Invalid settings for driver {driver.value!r}: {e}"
        ) from e


def connect(settings: ResolvedSettings) -> Connection:
    """Open a connection for *settings*. Raises spdb ConnectionError on driver failure."""
    return get_connector(settings.driver).open(settings)


def execute(
    conn: Connection,
    sql: str,
    params: list | tuple | None = None,
    *,
    timeout: float | None = None,
) -> Any:
    """
    Execute one statement and return the cursor. Caller uses cursor_to_dicts(cursor) or cursor.rowcount.

    - timeout: seconds; falls back to DB_STATEMENT_TIMEOUT. Applied before the statement
      and reset after on backends that support it (Postgres: statement_timeout,
      MySQL: max_execution_time).
    """
    timeout_sec = timeout if timeout is not None else app_settings.DB_STATEMENT_TIMEOUT
    use_timeout = timeout_sec is not None and timeout_sec > 0
    connector = conn.connector

    if use_timeout:
        cur_set = conn.cursor()
        try:
            connector.set_statement_timeout(cur_set, timeout_sec)
        finally:
            cur_set.close()

    cur = conn.cursor()
    try:
        if params:
            cur.execute(sql, tuple(params))
        else:
            cur.execute(sql)
    except Exception:
        cur.close()
        raise
    finally:
        if use_timeout:
            try:
                cur_reset = conn.cursor()
                connector.reset_statement_timeout(cur_reset)
                cur_reset.close()
            except Exception:
                _log.debug("Could not reset statement timeout", exc_info=True)

    return cur


def cursor_to_dicts(cursor: Any) -> list[dict[str, Any]]:
    """Convert cursor result to list of dicts. Works for psycopg, pymysql, pymssql and sqlite3."""
    desc = cursor.description
    if not desc:
        return []
    names = [d[0] for d in desc]
    return [dict(zip(names, row, strict=True)) for row in cursor.fetchall()]
