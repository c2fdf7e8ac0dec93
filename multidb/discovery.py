"""
Driver + Dialect compositions used by callers that manage data sources:
whole-schema discovery, one-shot connection checks, date column detection.
"""

import logging
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field

from multidb.core.errors import DatabaseLayerError
from multidb.core.pool import probe_query
from multidb.dialects import SQLDialect
from multidb.drivers import DatabaseDriver, create_driver
from multidb.models import FamilyEnum, resolve_family
from multidb.schemas import SchemaLoader

_log = logging.getLogger(__name__)

_DATE_NAME_HINTS = ("date", "time", "created", "updated")
_DATE_TYPE_HINTS = ("date", "time")


class DiscoveredColumn(BaseModel):
    name: str
    type: str  # generic type from Dialect.map_data_type
    native_type: str
    nullable: bool = True
    key: str | None = None
    default: Any = None
    extra: str | None = None


class DiscoveryMetadata(BaseModel):
    discovered_at: datetime
    table_count: int
    total_fields: int
    driver: str
    database: str | None = None


class DiscoveredSchema(BaseModel):
    tables: list[str] = Field(default_factory=list)
    fields: dict[str, list[DiscoveredColumn]] = Field(default_factory=dict)
    metadata: DiscoveryMetadata


class ConnectionCheckResult(BaseModel):
    ok: bool
    message: str
    family: str


def discover_schema(
    driver: DatabaseDriver,
    dialect: SQLDialect,
    database: str | None = None,
) -> DiscoveredSchema:
    """
    List non-system tables and their columns with generic types.

    A table whose columns cannot be read gets an empty column list; failing
    to list tables propagates.
    """
    tables = [t for t in driver.get_tables(database) if not dialect.is_system_table(t)]
    _log.info("Discovered %d tables on %s", len(tables), driver.display_name)

    fields: dict[str, list[DiscoveredColumn]] = {}
    for table in tables:
        try:
            columns = driver.get_columns(database, table)
        except DatabaseLayerError as e:
            _log.warning("Failed to get columns for table %s: %s", table, e)
            fields[table] = []
            continue
        fields[table] = [
            DiscoveredColumn(
                name=col.name,
                type=dialect.map_data_type(col.type),
                native_type=col.type,
                nullable=col.nullable,
                key=col.key,
                default=col.default,
                extra=col.extra,
            )
            for col in columns
        ]

    metadata = DiscoveryMetadata(
        discovered_at=datetime.now(timezone.utc),
        table_count=len(tables),
        total_fields=sum(len(cols) for cols in fields.values()),
        driver=driver.family.value,
        database=database,
    )
    return DiscoveredSchema(tables=tables, fields=fields, metadata=metadata)


def _name_and_types(column: Any) -> tuple[str, list[str]]:
    if isinstance(column, Mapping):
        get = column.get
    else:
        def get(key: str) -> Any:
            return getattr(column, key, None)
    types = [str(t) for t in (get("type"), get("native_type")) if t]
    return str(get("name") or ""), types


def find_date_field(columns: Iterable[Any]) -> str | None:
    """Name of the first column whose name or type looks like a date/time, else None."""
    for column in columns:
        name, types = _name_and_types(column)
        lowered = name.lower()
        if any(hint in lowered for hint in _DATE_NAME_HINTS):
            return name
        if any(hint in t.lower() for t in types for hint in _DATE_TYPE_HINTS):
            return name
    return None


def check_connection(
    family: FamilyEnum | str,
    config: Mapping[str, Any],
    loader: SchemaLoader,
) -> ConnectionCheckResult:
    """
    Validate ``config``, connect a throwaway driver, run the probe query and
    disconnect. Never raises; failures come back as ``ok=False``.
    """
    family_name = family.value if isinstance(family, FamilyEnum) else str(family)
    driver: DatabaseDriver | None = None
    try:
        fam = resolve_family(family, operation="check_connection")
        family_name = fam.value
        typed = loader.materialize(fam, config)
        driver = create_driver(fam)
        driver.connect(typed)
        driver.execute_query(probe_query(fam))
        return ConnectionCheckResult(ok=True, message="Connection successful", family=family_name)
    except DatabaseLayerError as e:
        _log.warning("Connection check for %s failed: %s", family_name, e)
        return ConnectionCheckResult(ok=False, message=e.message, family=family_name)
    finally:
        if driver is not None:
            driver.disconnect()
