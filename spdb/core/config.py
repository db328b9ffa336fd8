"""
Library settings and environment overrides (pydantic-settings).

``settings`` holds process-wide knobs (debug mode, timeouts, pool sizing).
``EnvOverrides`` is re-read on every ``configure()`` call so that the
connection fields always reflect the current environment.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        extra="ignore",
    )

    DEBUG: bool = Field(
        default=False,
        description="Expose backend diagnostics in public error messages.",
    )
    DB_CONNECT_TIMEOUT: int = Field(default=10, ge=1)
    DB_STATEMENT_TIMEOUT: float | None = Field(
        default=None,
        description="Seconds; applied per statement on backends that support it.",
    )
    DB_POOL_SIZE: int = Field(default=5, ge=1)
    DB_POOL_MAX_AGE_SEC: float = Field(default=600.0)
    DB_POOL_CHECKOUT_TIMEOUT: float = Field(default=30.0)


class EnvOverrides(BaseSettings):
    """Connection fields that the environment may override (non-empty values only)."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        extra="ignore",
    )

    DB_CONNECTION: str | None = None
    DB_HOST: str | None = None
    DB_PORT: str | None = None
    DB_USERNAME: str | None = None
    DB_PASSWORD: str | None = None
    DB_NAME: str | None = None

    def as_config_fields(self) -> dict[str, str]:
        """Map set overrides onto ConnectionConfig field names."""
        mapping = {
            "driver": self.DB_CONNECTION,
            "host": self.DB_HOST,
            "port": self.DB_PORT,
            "username": self.DB_USERNAME,
            "password": self.DB_PASSWORD,
            "database": self.DB_NAME,
        }
        return {k: v for k, v in mapping.items() if v is not None and v.strip() != ""}


settings = Settings()
