"""
Configuration records: ConnectionConfig (input), per-backend blocks, ResolvedSettings (output of configure()).
"""

from typing import Any

from pydantic import ConfigDict, Field, field_validator
from sqlalchemy.engine import URL
from sqlmodel import SQLModel

from spdb.core.errors import ConfigurationError
from spdb.models import DriverEnum

# ---------------------------------------------------------------------------
# Per-backend settings blocks
# ---------------------------------------------------------------------------


class BackendOptions(SQLModel):
    """Fields shared by every backend block."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    prefix: str = Field(default="", description="Table-name prefix applied by RecordAccessor.")
    options: dict[str, Any] = Field(default_factory=dict)


class RelationalTunedOptions(BackendOptions):
    """MySQL / MariaDB session tuning."""

    charset: str = Field(default="utf8mb4")
    collation: str | None = Field(default="utf8mb4_unicode_ci")
    strict: bool = Field(default=True)
    engine: str | None = Field(default=None)


class RelationalSchemaOptions(BackendOptions):
    """PostgreSQL schema search path, SSL mode and client encoding."""

    charset: str = Field(default="utf8")
    search_path: str | None = Field(default=None, alias="schema")
    sslmode: str | None = Field(default=None)


class DocumentStoreOptions(BackendOptions):
    pass


class EmbeddedFileOptions(BackendOptions):
    foreign_key_constraints: bool = Field(default=True)


class EnterpriseSqlOptions(BackendOptions):
    charset: str = Field(default="UTF-8")


BACKEND_OPTIONS: dict[DriverEnum, type[BackendOptions]] = {
    DriverEnum.RELATIONAL_TUNED: RelationalTunedOptions,
    DriverEnum.RELATIONAL_SCHEMA: RelationalSchemaOptions,
    DriverEnum.DOCUMENT_STORE: DocumentStoreOptions,
    DriverEnum.EMBEDDED_FILE: EmbeddedFileOptions,
    DriverEnum.ENTERPRISE_SQL: EnterpriseSqlOptions,
}

DEFAULT_PORTS: dict[DriverEnum, int] = {
    DriverEnum.RELATIONAL_TUNED: 3306,
    DriverEnum.RELATIONAL_SCHEMA: 5432,
    DriverEnum.DOCUMENT_STORE: 27017,
    DriverEnum.ENTERPRISE_SQL: 1433,
}


# ---------------------------------------------------------------------------
# ConnectionConfig (static configuration record)
# ---------------------------------------------------------------------------


class ConnectionConfig(SQLModel):
    """Static configuration as handed over by the config-loading collaborator.

    ``backends`` maps a driver identifier (or legacy alias) to its settings block.
    """

    model_config = ConfigDict(extra="ignore")

    driver: str | None = None
    host: str | None = None
    port: int | None = None
    username: str | None = None
    password: str | None = None
    database: str | None = None
    backends: dict[str, dict[str, Any]] = Field(default_factory=dict)

    @field_validator("port", mode="before")
    @classmethod
    def _blank_port(cls, v: Any) -> Any:
        if isinstance(v, str) and v.strip() == "":
            return None
        return v


# ---------------------------------------------------------------------------
# ResolvedSettings
# ---------------------------------------------------------------------------


class ResolvedSettings(SQLModel):
    """Environment-merged settings for exactly one backend."""

    driver: DriverEnum
    host: str | None = None
    port: int | None = None
    username: str | None = None
    password: str | None = None
    database: str | None = None
    backend: BackendOptions

    @property
    def prefix(self) -> str:
        return self.backend.prefix or ""

    def sqlalchemy_url(self) -> URL:
        """Render as a SQLAlchemy URL (for handing the same config to an ORM engine)."""
        if self.driver == DriverEnum.DOCUMENT_STORE:
            raise ConfigurationError("document-store settings have no SQLAlchemy URL")
        if self.driver == DriverEnum.EMBEDDED_FILE:
            return URL.create("sqlite", database=self.database)
        drivername = {
            DriverEnum.RELATIONAL_TUNED: "mysql+pymysql",
            DriverEnum.RELATIONAL_SCHEMA: "postgresql+psycopg",
            DriverEnum.ENTERPRISE_SQL: "mssql+pymssql",
        }[self.driver]
        return URL.create(
            drivername=drivername,
            username=self.username,
            password=self.password,
            host=self.host,
            port=self.port,
            database=self.database,
        )

    def __repr__(self) -> str:
        return (
            f"ResolvedSettings(driver={self.driver.value!r}, host={self.host!r}, "
            f"port={self.port!r}, database={self.database!r})"
        )
