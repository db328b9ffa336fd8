"""
ConnectionManager (one owned connection) and PoolManager (fixed-capacity pool).

ConnectionManager: configure -> connect -> close for a single unit of work.
PoolManager: checkout/checkin per resolved settings, with a capacity limit,
health-check on checkout for idle connections, and max-age eviction.
"""

import logging
import threading
import time
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import Any, NamedTuple

from spdb.core.config import settings as app_settings
from spdb.core.errors import ConfigurationError, ConnectionError
from spdb.schemas import ConnectionConfig, ResolvedSettings

from .connect import configure, connect
from .connection import Connection
from .health import health_check

_log = logging.getLogger(__name__)

_PING_IDLE_THRESHOLD = 30.0  # only ping connections idle longer than this (seconds)


class ConnectionManager:
    """Owns at most one live Connection.

    Usage::

        with ConnectionManager(config) as conn:
            RecordAccessor(conn, User).fetch_all()
    """

    def __init__(self, config: ConnectionConfig | Mapping[str, Any] | None = None) -> None:
        self._config = config
        self._settings: ResolvedSettings | None = None
        self._connection: Connection | None = None

    @property
    def settings(self) -> ResolvedSettings | None:
        return self._settings

    @property
    def connection(self) -> Connection | None:
        if self._connection is not None and self._connection.closed:
            return None
        return self._connection

    def configure(
        self, config: ConnectionConfig | Mapping[str, Any] | None = None
    ) -> ResolvedSettings:
        cfg = config if config is not None else self._config
        if cfg is None:
            raise ConfigurationError("No connection configuration supplied")
        self._config = cfg
        self._settings = configure(cfg)
        return self._settings

    def connect(self, settings: ResolvedSettings | None = None) -> Connection:
        """Open (or return the already open) connection.

        Raises ConfigurationError when a live connection exists and *settings*
        names a different target; close() first to switch.
        """
        if self.connection is not None:
            if settings is not None and settings != self._settings:
                raise ConfigurationError(
                    "Manager already holds a live connection for different settings; "
                    "close() it first"
                )
            return self._connection
        resolved = settings or self._settings or self.configure()
        self._connection = connect(resolved)
        self._settings = resolved
        return self._connection

    def close(self, connection: Connection | None = None) -> None:
        """Close *connection* (default: the owned one). Closing twice is a no-op."""
        target = connection if connection is not None else self._connection
        if target is None:
            return
        target.close()
        if target is self._connection:
            self._connection = None

    def health_check(self) -> bool:
        conn = self.connection
        return conn is not None and health_check(conn)

    def __enter__(self) -> Connection:
        return self.connect()

    def __exit__(self, *exc: object) -> None:
        self.close()


class _PoolEntry(NamedTuple):
    conn: Connection
    last_used: float  # time.monotonic() when last returned to pool


def _pool_key(settings: ResolvedSettings) -> str:
    return "|".join(
        str(v)
        for v in (
            settings.driver.value,
            settings.host,
            settings.port,
            settings.database,
            settings.username,
        )
    )


class PoolManager:
    """Per-settings connection pool with fixed capacity, health-check and max-age."""

    def __init__(
        self,
        capacity: int | None = None,
        *,
        max_age: float | None = None,
    ) -> None:
        self._capacity: int = capacity or app_settings.DB_POOL_SIZE
        if self._capacity < 1:
            raise ConfigurationError("Pool capacity must be at least 1")
        self._max_age: float = (
            max_age if max_age is not None else app_settings.DB_POOL_MAX_AGE_SEC
        )
        self._pools: dict[str, list[_PoolEntry]] = {}
        self._slots: dict[str, threading.BoundedSemaphore] = {}
        self._checked_out: dict[int, str] = {}
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        return self._capacity

    def get_connection(
        self, settings: ResolvedSettings, *, timeout: float | None = None
    ) -> Connection:
        """Check out a healthy connection (pooled or freshly opened).

        Blocks up to *timeout* seconds (default DB_POOL_CHECKOUT_TIMEOUT) while the
        pool for *settings* is at capacity, then raises ConnectionError.
        """
        key = _pool_key(settings)
        wait = timeout if timeout is not None else app_settings.DB_POOL_CHECKOUT_TIMEOUT
        if not self._slot(key).acquire(timeout=wait):
            raise ConnectionError(
                f"Connection pool exhausted ({self._capacity} in use) for {settings.driver.value}",
                driver=settings.driver.value,
            )
        try:
            conn = self._take_idle(key) or connect(settings)
        except BaseException:
            self._slot(key).release()
            raise
        with self._lock:
            self._checked_out[id(conn)] = key
        return conn

    def release(self, conn: Connection) -> None:
        """Return a connection to the pool (or close it when it cannot be reused)."""
        with self._lock:
            key = self._checked_out.pop(id(conn), None)
        if key is None:
            _log.warning("release() called for a connection not checked out from this pool")
            return
        try:
            if conn.closed:
                return
            try:
                conn.rollback()
            except Exception:
                conn.close()
                return
            with self._lock:
                pool = self._pools.setdefault(key, [])
                if len(pool) < self._capacity and not self._is_expired(conn):
                    pool.append(_PoolEntry(conn=conn, last_used=time.monotonic()))
                    return
            conn.close()
        finally:
            self._slot(key).release()

    @contextmanager
    def checkout(
        self, settings: ResolvedSettings, *, timeout: float | None = None
    ) -> Iterator[Connection]:
        conn = self.get_connection(settings, timeout=timeout)
        try:
            yield conn
        finally:
            self.release(conn)

    def dispose(self, settings: ResolvedSettings | None = None) -> None:
        """Close idle pooled connections. ``None`` = dispose all pools."""
        with self._lock:
            if settings is not None:
                entries = self._pools.pop(_pool_key(settings), [])
            else:
                entries = [e for pool in self._pools.values() for e in pool]
                self._pools.clear()
        for e in entries:
            e.conn.close()

    def stats(self) -> dict[str, int]:
        """Return pool statistics for monitoring."""
        with self._lock:
            return {
                "pools": len(self._pools),
                "idle_connections": sum(len(p) for p in self._pools.values()),
                "checked_out": len(self._checked_out),
                "capacity": self._capacity,
            }

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _slot(self, key: str) -> threading.BoundedSemaphore:
        with self._lock:
            slot = self._slots.get(key)
            if slot is None:
                slot = self._slots[key] = threading.BoundedSemaphore(self._capacity)
            return slot

    def _take_idle(self, key: str) -> Connection | None:
        now = time.monotonic()
        while True:
            with self._lock:
                pool = self._pools.get(key)
                entry = pool.pop() if pool else None
            if entry is None:
                return None
            conn = entry.conn
            if conn.closed or self._is_expired(conn):
                conn.close()
                continue
            if now - entry.last_used > _PING_IDLE_THRESHOLD and not health_check(conn):
                conn.close()
                continue
            return conn

    def _is_expired(self, conn: Connection) -> bool:
        return (time.monotonic() - conn.opened_at) > self._max_age
