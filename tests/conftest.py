from collections.abc import Generator

import pytest

from spdb.core.pool import Connection, configure, connect
from spdb.schemas import ResolvedSettings
from tests.utils.config import sqlite_config
from tests.utils.tables import USERS_DDL

ENV_OVERRIDES = (
    "DB_CONNECTION",
    "DB_HOST",
    "DB_PORT",
    "DB_USERNAME",
    "DB_PASSWORD",
    "DB_NAME",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's DB_* variables out of configure()."""
    for name in ENV_OVERRIDES:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def sqlite_settings() -> ResolvedSettings:
    return configure(sqlite_config())


@pytest.fixture
def sqlite_conn(sqlite_settings: ResolvedSettings) -> Generator[Connection, None, None]:
    """In-memory SQLite connection with an empty ``users`` table."""
    conn = connect(sqlite_settings)
    conn.handle.execute(USERS_DDL)
    conn.commit()
    yield conn
    conn.close()
