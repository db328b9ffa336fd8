"""
One Connector per backend, selected once by DriverEnum.

Each connector opens the native handle, applies backend-specific session
tuning, and maps driver failures onto ConnectionError with the driver's own
diagnostic text. Uses pymysql (relational-tuned), psycopg (relational-schema),
pymongo (document-store), sqlite3 (embedded-file) and pymssql (enterprise-sql).
"""

import logging
import re
import sqlite3
from pathlib import Path
from typing import Any

import psycopg
import pymongo
import pymssql
import pymysql
from psycopg import sql as pg_sql
from psycopg.conninfo import make_conninfo
from pymongo.errors import PyMongoError

from spdb.core.config import settings as app_settings
from spdb.core.errors import ConfigurationError, ConnectionError
from spdb.models import DriverEnum
from spdb.schemas import ResolvedSettings

from .connection import Connection

_log = logging.getLogger(__name__)

_OPTION_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_.]*$")
_TSQL_OPTION_VALUE = re.compile(r"^[A-Za-z0-9_\-]+$")
# CR_SERVER_GONE_ERROR, CR_SERVER_LOST, CR_SERVER_LOST_EXTENDED
_MYSQL_LOST_CODES = (2006, 2013, 2055)


def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def _session_options(options: dict[str, Any]) -> list[tuple[str, Any]]:
    """Non-empty extra options with validated names (they are spliced into SET commands)."""
    out: list[tuple[str, Any]] = []
    for name, value in (options or {}).items():
        if _is_empty(value):
            continue
        if not isinstance(name, str) or not _OPTION_NAME.match(name):
            raise ConfigurationError(f"Invalid session option name: {name!r}")
        out.append((name, value))
    return out


class Connector:
    """Base connector. Subclasses implement ``_open`` and optionally ``_configure_session``."""

    driver: DriverEnum
    paramstyle = "format"
    supports_sql = True
    driver_errors: tuple[type[BaseException], ...] = ()

    def open(self, settings: ResolvedSettings) -> Connection:
        try:
            handle = self._open(settings)
        except self.driver_errors as e:
            _log.error(
                "%s connect failed (host=%s, port=%s, database=%s): %s",
                self.driver.value,
                settings.host,
                settings.port,
                settings.database,
                e,
                exc_info=True,
            )
            raise ConnectionError(str(e), driver=self.driver.value) from e

        try:
            self._configure_session(handle, settings)
        except self.driver_errors as e:
            self._close_quiet(handle)
            _log.error("%s session setup failed: %s", self.driver.value, e, exc_info=True)
            raise ConnectionError(str(e), driver=self.driver.value) from e
        except Exception:
            self._close_quiet(handle)
            raise

        _log.info(
            "Opened %s connection (host=%s, database=%s)",
            self.driver.value,
            settings.host,
            settings.database,
        )
        return Connection(self, handle, settings, database=self._database(handle, settings))

    def _open(self, settings: ResolvedSettings) -> Any:
        raise NotImplementedError

    def _configure_session(self, handle: Any, settings: ResolvedSettings) -> None:
        pass

    def _database(self, handle: Any, settings: ResolvedSettings) -> Any:
        return None

    def close(self, handle: Any) -> None:
        handle.close()

    def commit(self, handle: Any) -> None:
        handle.commit()

    def rollback(self, handle: Any) -> None:
        handle.rollback()

    def ping(self, handle: Any) -> bool:
        cur = handle.cursor()
        try:
            cur.execute("SELECT 1")
            cur.fetchone()
            return True
        finally:
            cur.close()

    def set_statement_timeout(self, cursor: Any, seconds: float) -> None:
        """Apply a per-statement timeout. No-op where the backend has no session knob."""

    def reset_statement_timeout(self, cursor: Any) -> None:
        pass

    def lost_connection(self, handle: Any, exc: BaseException) -> bool:
        """True when *exc* means the session itself is gone, not just the statement."""
        return False

    def _close_quiet(self, handle: Any) -> None:
        try:
            self.close(handle)
        except Exception:
            pass


# ---------------------------------------------------------------------------
# relational-tuned (MySQL / MariaDB)
# ---------------------------------------------------------------------------


class RelationalTunedConnector(Connector):
    driver = DriverEnum.RELATIONAL_TUNED
    driver_errors = (pymysql.err.MySQLError,)

    def _open(self, settings: ResolvedSettings) -> Any:
        return pymysql.connect(
            host=settings.host or "localhost",
            port=int(settings.port or 3306),
            user=settings.username,
            password=settings.password or "",
            database=settings.database,
            charset=settings.backend.charset,
            connect_timeout=app_settings.DB_CONNECT_TIMEOUT,
        )

    def _configure_session(self, handle: Any, settings: ResolvedSettings) -> None:
        opts = settings.backend
        with handle.cursor() as cur:
            if opts.collation:
                cur.execute("SET collation_connection = %s", (opts.collation,))
            if opts.strict:
                cur.execute("SET SESSION sql_mode = 'STRICT_ALL_TABLES'")
            if not _is_empty(opts.engine):
                cur.execute("SET SESSION default_storage_engine = %s", (opts.engine,))
            for name, value in _session_options(opts.options):
                cur.execute(f"SET SESSION {name} = %s", (value,))
        handle.commit()

    def set_statement_timeout(self, cursor: Any, seconds: float) -> None:
        cursor.execute("SET SESSION max_execution_time = %s", (int(seconds * 1000),))

    def reset_statement_timeout(self, cursor: Any) -> None:
        cursor.execute("SET SESSION max_execution_time = 0")

    def lost_connection(self, handle: Any, exc: BaseException) -> bool:
        if isinstance(exc, pymysql.err.InterfaceError):
            return True
        return (
            isinstance(exc, pymysql.err.OperationalError)
            and bool(exc.args)
            and exc.args[0] in _MYSQL_LOST_CODES
        )


# ---------------------------------------------------------------------------
# relational-schema (PostgreSQL)
# ---------------------------------------------------------------------------


class RelationalSchemaConnector(Connector):
    driver = DriverEnum.RELATIONAL_SCHEMA
    driver_errors = (psycopg.Error,)

    def build_conninfo(self, settings: ResolvedSettings) -> str:
        """libpq connection string with optional search_path and sslmode."""
        opts = settings.backend
        return make_conninfo(
            host=settings.host,
            port=settings.port,
            dbname=settings.database,
            user=settings.username,
            password=settings.password,
            connect_timeout=app_settings.DB_CONNECT_TIMEOUT,
            options=f"-c search_path={opts.search_path}" if opts.search_path else None,
            sslmode=opts.sslmode or None,
        )

    def _open(self, settings: ResolvedSettings) -> Any:
        return psycopg.connect(self.build_conninfo(settings))

    def _configure_session(self, handle: Any, settings: ResolvedSettings) -> None:
        opts = settings.backend
        with handle.cursor() as cur:
            cur.execute(
                pg_sql.SQL("SET client_encoding TO {}").format(pg_sql.Literal(opts.charset))
            )
            # GUC names are case-insensitive; Identifier quotes them, so fold first.
            for name, value in _session_options(opts.options):
                cur.execute(
                    pg_sql.SQL("SET {} TO {}").format(
                        pg_sql.Identifier(*name.lower().split(".")), pg_sql.Literal(value)
                    )
                )
        handle.commit()

    def set_statement_timeout(self, cursor: Any, seconds: float) -> None:
        cursor.execute(
            pg_sql.SQL("SET statement_timeout = {}").format(
                pg_sql.Literal(int(seconds * 1000))
            )
        )

    def reset_statement_timeout(self, cursor: Any) -> None:
        cursor.execute("SET statement_timeout = 0")

    def lost_connection(self, handle: Any, exc: BaseException) -> bool:
        return getattr(handle, "closed", False) is True


# ---------------------------------------------------------------------------
# document-store (MongoDB)
# ---------------------------------------------------------------------------


class DocumentStoreConnector(Connector):
    driver = DriverEnum.DOCUMENT_STORE
    supports_sql = False
    driver_errors = (PyMongoError,)

    def client_options(self, settings: ResolvedSettings) -> dict[str, Any]:
        timeout_ms = app_settings.DB_CONNECT_TIMEOUT * 1000
        opts: dict[str, Any] = {
            "connectTimeoutMS": timeout_ms,
            "serverSelectionTimeoutMS": timeout_ms,
        }
        if settings.host:
            opts["host"] = settings.host
        if settings.port:
            opts["port"] = int(settings.port)
        if settings.username and settings.password:
            opts["username"] = settings.username
            opts["password"] = settings.password
        opts.update(settings.backend.options or {})
        return opts

    def _open(self, settings: ResolvedSettings) -> Any:
        client = pymongo.MongoClient(**self.client_options(settings))
        try:
            # MongoClient connects lazily; force the handshake here.
            client.admin.command("ping")
        except PyMongoError:
            client.close()
            raise
        return client

    def _database(self, handle: Any, settings: ResolvedSettings) -> Any:
        return handle[settings.database] if settings.database else None

    def commit(self, handle: Any) -> None:
        pass

    def rollback(self, handle: Any) -> None:
        pass

    def ping(self, handle: Any) -> bool:
        handle.admin.command("ping")
        return True


# ---------------------------------------------------------------------------
# embedded-file (SQLite)
# ---------------------------------------------------------------------------


class EmbeddedFileConnector(Connector):
    driver = DriverEnum.EMBEDDED_FILE
    paramstyle = "qmark"
    driver_errors = (sqlite3.Error, OSError)

    def _open(self, settings: ResolvedSettings) -> Any:
        path = settings.database or ":memory:"
        uri = path.startswith("file:")
        if path != ":memory:" and not uri:
            Path(path).parent.mkdir(parents=True, exist_ok=True)
        return sqlite3.connect(path, timeout=app_settings.DB_CONNECT_TIMEOUT, uri=uri)

    def _configure_session(self, handle: Any, settings: ResolvedSettings) -> None:
        opts = settings.backend
        state = "ON" if opts.foreign_key_constraints else "OFF"
        handle.execute(f"PRAGMA foreign_keys = {state}")
        # Extra options are connection attributes (isolation_level, ...), not statements.
        for name, value in (opts.options or {}).items():
            if not hasattr(handle, name):
                raise ConfigurationError(f"Unknown sqlite3 connection attribute: {name!r}")
            setattr(handle, name, value)


# ---------------------------------------------------------------------------
# enterprise-sql (SQL Server)
# ---------------------------------------------------------------------------


class EnterpriseSqlConnector(Connector):
    driver = DriverEnum.ENTERPRISE_SQL
    driver_errors = (pymssql.Error,)

    def connect_options(self, settings: ResolvedSettings) -> dict[str, Any]:
        opts: dict[str, Any] = {
            "database": settings.database or "",
            "user": settings.username,
            "password": settings.password,
            "charset": settings.backend.charset,
            "login_timeout": app_settings.DB_CONNECT_TIMEOUT,
        }
        if settings.host:
            opts["server"] = settings.host
        if settings.port:
            opts["port"] = str(settings.port)
        return opts

    def _open(self, settings: ResolvedSettings) -> Any:
        return pymssql.connect(**self.connect_options(settings))

    def _configure_session(self, handle: Any, settings: ResolvedSettings) -> None:
        commands = []
        for name, value in _session_options(settings.backend.options):
            if isinstance(value, bool):
                value = "ON" if value else "OFF"
            value = str(value)
            # T-SQL SET takes no bind parameters: only bare words and numbers pass.
            if not _TSQL_OPTION_VALUE.match(value) or "." in name:
                raise ConfigurationError(f"Invalid SQL Server session option: {name}={value!r}")
            commands.append(f"SET {name.upper()} {value}")
        if not commands:
            return
        cur = handle.cursor()
        try:
            for command in commands:
                cur.execute(command)
        finally:
            cur.close()
        handle.commit()

    def lost_connection(self, handle: Any, exc: BaseException) -> bool:
        return isinstance(exc, pymssql.InterfaceError)


CONNECTORS: dict[DriverEnum, Connector] = {
    c.driver: c
    for c in (
        RelationalTunedConnector(),
        RelationalSchemaConnector(),
        DocumentStoreConnector(),
        EmbeddedFileConnector(),
        EnterpriseSqlConnector(),
    )
}


def get_connector(driver: DriverEnum | str) -> Connector:
    try:
        return CONNECTORS[DriverEnum(driver)]
    except (KeyError, ValueError):
        raise ConfigurationError(f"Unsupported driver: {driver}") from None
