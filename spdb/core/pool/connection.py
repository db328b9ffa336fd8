"""
Connection: one native driver handle plus the connector and settings that opened it.
"""

import logging
import time
from typing import TYPE_CHECKING, Any

from spdb.core.errors import ConnectionError
from spdb.models import DriverEnum
from spdb.schemas import ResolvedSettings

if TYPE_CHECKING:
    from .connectors import Connector

_log = logging.getLogger(__name__)


class Connection:
    """Single-owner wrapper around a backend handle. ``close()`` is idempotent."""

    def __init__(
        self,
        connector: "Connector",
        handle: Any,
        settings: ResolvedSettings,
        *,
        database: Any = None,
    ) -> None:
        self.connector = connector
        self.handle = handle
        self.settings = settings
        # Document store only: the selected pymongo Database.
        self.database = database
        self.opened_at = time.monotonic()
        self._closed = False

    @property
    def driver(self) -> DriverEnum:
        return self.settings.driver

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def paramstyle(self) -> str:
        return self.connector.paramstyle

    @property
    def supports_sql(self) -> bool:
        return self.connector.supports_sql

    def cursor(self) -> Any:
        if self._closed:
            raise ConnectionError(
                f"{self.driver.value} connection is closed", driver=self.driver.value
            )
        return self.handle.cursor()

    def commit(self) -> None:
        self.connector.commit(self.handle)

    def rollback(self) -> None:
        self.connector.rollback(self.handle)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self.connector.close(self.handle)
        except Exception:
            _log.debug("Error while closing %s connection", self.driver.value, exc_info=True)
        _log.info("Closed %s connection", self.driver.value)

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"<Connection {self.driver.value} {state}>"
