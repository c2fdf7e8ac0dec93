"""
Process settings for the database access layer.

Values come from environment variables (or a local ``.env`` file). Per data
source connection parameters are NOT settings; they arrive as DriverConfig
objects validated by the SchemaLoader.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
    )

    # Raw TCP reachability probe run before any protocol handshake (seconds).
    DB_PROBE_TIMEOUT: float = Field(default=5.0, gt=0)

    # Pooled MySQL connections older than this are closed on checkout (seconds).
    EXTERNAL_DB_POOL_MAX_AGE_SEC: int = Field(default=600, gt=0)
    # Only ping pooled connections idle longer than this (seconds).
    EXTERNAL_DB_POOL_PING_IDLE_SEC: float = Field(default=30.0, ge=0)
    # Per statement timeout (seconds). None = backend default.
    EXTERNAL_DB_STATEMENT_TIMEOUT: int | None = Field(default=None, gt=0)

    # Directory holding <family>.json config schemas. None = packaged schemas.
    SCHEMA_DIR: str | None = None

    # python-oracledb runs in thin mode unless thick mode is requested.
    ORACLE_THICK_MODE: bool = False
    ORACLE_CLIENT_LIB_DIR: str | None = None


settings = Settings()  # type: ignore
