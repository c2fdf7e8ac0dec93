"""
multidb: one connection, query and schema-discovery interface over MySQL and Oracle.

    from multidb import SchemaLoader, create_driver, get_dialect

    loader = SchemaLoader()
    config = loader.materialize("mysql", {"host": "db1", "port": 3306, "database": "shop", "user": "app"})
    driver = create_driver("mysql")
    driver.connect(config)
    dialect = get_dialect("mysql")
    rows = driver.execute_query(dialect.get_recent_records_query("orders", "created_at")).data
"""

from multidb.core.errors import (
    ConfigValidationError,
    DatabaseConnectionError,
    DatabaseLayerError,
    NoConnectionError,
    PoolTimeoutError,
    QueryError,
    SchemaNotFoundError,
    UnsafeQueryError,
    UnsupportedFamilyError,
)
from multidb.dialects import MySQLDialect, OracleDialect, SQLDialect, get_dialect
from multidb.discovery import (
    ConnectionCheckResult,
    DiscoveredColumn,
    DiscoveredSchema,
    check_connection,
    discover_schema,
    find_date_field,
)
from multidb.drivers import (
    DatabaseDriver,
    MySQLDriver,
    OracleDriver,
    available_families,
    create_driver,
)
from multidb.models import (
    ColumnDescriptor,
    DatabaseInfo,
    DriverConfig,
    FamilyEnum,
    FieldDescriptor,
    MySQLConfig,
    OracleConfig,
    QueryResult,
)
from multidb.schemas import SchemaLoader
from multidb.sql import check_read_only

__version__ = "0.1.0"

__all__ = [
    "ColumnDescriptor",
    "ConfigValidationError",
    "ConnectionCheckResult",
    "DatabaseConnectionError",
    "DatabaseDriver",
    "DatabaseInfo",
    "DatabaseLayerError",
    "DiscoveredColumn",
    "DiscoveredSchema",
    "DriverConfig",
    "FamilyEnum",
    "FieldDescriptor",
    "MySQLConfig",
    "MySQLDialect",
    "MySQLDriver",
    "NoConnectionError",
    "OracleConfig",
    "OracleDialect",
    "OracleDriver",
    "PoolTimeoutError",
    "QueryError",
    "SQLDialect",
    "SchemaLoader",
    "SchemaNotFoundError",
    "UnsafeQueryError",
    "UnsupportedFamilyError",
    "available_families",
    "check_connection",
    "check_read_only",
    "create_driver",
    "discover_schema",
    "find_date_field",
    "get_dialect",
]
