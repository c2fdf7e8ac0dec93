"""
Data model of the access layer.

FamilyEnum, typed per-family DriverConfig (MySQLConfig, OracleConfig), and the
normalized result shapes every driver returns (QueryResult, ColumnDescriptor,
DatabaseInfo).
"""

from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from multidb.core.errors import UnsupportedFamilyError

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class FamilyEnum(str, Enum):
    """Supported database families (mysql, oracle)."""

    MYSQL = "mysql"
    ORACLE = "oracle"


# ---------------------------------------------------------------------------
# DriverConfig - connection parameters per family
# ---------------------------------------------------------------------------

_CONFIG_MODEL_CONFIG = ConfigDict(
    alias_generator=to_camel,
    populate_by_name=True,
    extra="ignore",
    frozen=True,
)


class MySQLConfig(BaseModel):
    """Connection parameters for a MySQL data source. Timeouts are milliseconds."""

    model_config = _CONFIG_MODEL_CONFIG

    host: str = Field(..., min_length=1, max_length=255)
    port: int = Field(default=3306, ge=1, le=65535)
    user: str = Field(
        ...,
        min_length=1,
        max_length=255,
        validation_alias=AliasChoices("user", "username"),
    )
    password: str = Field(default="", max_length=512)
    database: str = Field(..., min_length=1, max_length=255)
    connection_limit: int = Field(default=10, ge=1, le=1000)
    connect_timeout: int = Field(default=60000, gt=0)
    acquire_timeout: int = Field(default=60000, gt=0)
    charset: str = Field(default="utf8mb4", max_length=32)


class OracleConfig(BaseModel):
    """Connection parameters for an Oracle data source. Timeouts are milliseconds.

    ``service`` is a service name (host:port/service); ``database`` is a SID.
    One of the two is required.
    """

    model_config = _CONFIG_MODEL_CONFIG

    host: str = Field(..., min_length=1, max_length=255)
    port: int = Field(default=1521, ge=1, le=65535)
    user: str = Field(
        ...,
        min_length=1,
        max_length=255,
        validation_alias=AliasChoices("user", "username"),
    )
    password: str = Field(default="", max_length=512)
    service: str | None = Field(default=None, max_length=255)
    database: str | None = Field(default=None, max_length=255)
    connection_limit: int = Field(default=10, ge=1, le=1000)
    pool_min: int = Field(default=1, ge=0)
    pool_increment: int = Field(default=1, ge=1)
    connect_timeout: int = Field(default=60000, gt=0)
    acquire_timeout: int = Field(default=60000, gt=0)

    @model_validator(mode="after")
    def service_or_sid_required(self) -> "OracleConfig":
        if not (self.service or self.database):
            raise ValueError("Either service or database (SID) is required for Oracle.")
        if self.pool_min > self.connection_limit:
            raise ValueError("poolMin cannot exceed connectionLimit.")
        return self

    @property
    def target(self) -> str:
        return self.service or self.database or ""


DriverConfig = MySQLConfig | OracleConfig


# ---------------------------------------------------------------------------
# Normalized results
# ---------------------------------------------------------------------------


class FieldDescriptor(BaseModel):
    """A returned column: name plus the driver-reported type name."""

    name: str
    type: str | None = None


class QueryResult(BaseModel):
    """Normalized result of execute_query.

    For reads ``row_count == len(data)``. For writes ``data`` is empty and
    ``affected_rows``/``insert_id`` are authoritative.
    """

    data: list[dict[str, Any]] = Field(default_factory=list)
    fields: list[FieldDescriptor] = Field(default_factory=list)
    row_count: int = 0
    affected_rows: int = 0
    insert_id: int | str | None = None

    @model_validator(mode="after")
    def row_count_matches_data(self) -> "QueryResult":
        if self.row_count != len(self.data):
            raise ValueError("row_count must equal the number of rows in data")
        return self


class ColumnDescriptor(BaseModel):
    """Normalized column metadata from get_columns."""

    name: str
    type: str
    nullable: bool = True
    key: str | None = None
    default: Any = None
    extra: str | None = None


class DatabaseInfo(BaseModel):
    """Best-effort server description; ``error`` is set when the lookup failed."""

    version: str = "unknown"
    type: str
    driver: str
    error: str | None = None


def resolve_family(family: "FamilyEnum | str", *, operation: str | None = None) -> FamilyEnum:
    """Accept an enum member or a case-insensitive family name."""
    if isinstance(family, FamilyEnum):
        return family
    try:
        return FamilyEnum(str(family).strip().lower())
    except ValueError as e:
        raise UnsupportedFamilyError(
            f"Unsupported database type: {family}", operation=operation
        ) from e
