"""Unit tests for multidb.discovery."""

from unittest.mock import MagicMock, patch

from multidb.core.errors import DatabaseConnectionError, QueryError
from multidb.dialects import MySQLDialect, OracleDialect
from multidb.discovery import (
    DiscoveredColumn,
    check_connection,
    discover_schema,
    find_date_field,
)
from multidb.models import ColumnDescriptor, FamilyEnum, MySQLConfig
from multidb.schemas import PACKAGED_SCHEMA_DIR, SchemaLoader

MYSQL_CONFIG = {"host": "db1", "port": 3306, "database": "shop", "user": "app", "password": "pw"}


def _driver(family: FamilyEnum = FamilyEnum.MYSQL) -> MagicMock:
    driver = MagicMock()
    driver.family = family
    driver.display_name = "MySQL"
    return driver


# --- discover_schema ---


def test_discover_schema_filters_system_tables_and_maps_types() -> None:
    """System tables are dropped and native types collapse to generic ones."""
    driver = _driver()
    driver.get_tables.return_value = ["orders", "information_schema", "customers"]
    driver.get_columns.side_effect = lambda db, table: {
        "orders": [
            ColumnDescriptor(name="id", type="int unsigned", nullable=False, key="PRI"),
            ColumnDescriptor(name="created_at", type="datetime(6)"),
        ],
        "customers": [ColumnDescriptor(name="email", type="varchar(255)")],
    }[table]

    schema = discover_schema(driver, MySQLDialect(), "shop")

    driver.get_tables.assert_called_once_with("shop")
    assert schema.tables == ["orders", "customers"]
    assert [(c.name, c.type, c.native_type) for c in schema.fields["orders"]] == [
        ("id", "integer", "int unsigned"),
        ("created_at", "datetime", "datetime(6)"),
    ]
    assert schema.fields["orders"][0].key == "PRI"
    assert schema.metadata.table_count == 2
    assert schema.metadata.total_fields == 3
    assert schema.metadata.driver == "mysql"
    assert schema.metadata.database == "shop"


def test_discover_schema_tolerates_per_table_failure() -> None:
    """A table whose columns cannot be read gets an empty list."""
    driver = _driver(FamilyEnum.ORACLE)
    driver.get_tables.return_value = ["EMP", "LOCKED"]

    def columns(db, table):
        if table == "LOCKED":
            raise QueryError("ORA-01031: insufficient privileges", family="oracle")
        return [ColumnDescriptor(name="EMPNO", type="NUMBER(4)")]

    driver.get_columns.side_effect = columns
    schema = discover_schema(driver, OracleDialect())
    assert schema.fields["LOCKED"] == []
    assert [c.type for c in schema.fields["EMP"]] == ["decimal"]
    assert schema.metadata.total_fields == 1


# --- find_date_field ---


class TestFindDateField:
    def test_by_name(self):
        columns = [
            ColumnDescriptor(name="id", type="int"),
            ColumnDescriptor(name="updated_by", type="varchar(50)"),
        ]
        assert find_date_field(columns) == "updated_by"

    def test_by_type(self):
        columns = [
            ColumnDescriptor(name="id", type="int"),
            ColumnDescriptor(name="HIRED", type="DATE"),
        ]
        assert find_date_field(columns) == "HIRED"

    def test_first_match_in_column_order(self):
        columns = [{"name": "ts", "type": "timestamp"}, {"name": "created", "type": "int"}]
        assert find_date_field(columns) == "ts"

    def test_discovered_columns(self):
        columns = [
            DiscoveredColumn(name="x", type="string", native_type="varchar(5)"),
            DiscoveredColumn(name="y", type="datetime", native_type="TIMESTAMP(6)"),
        ]
        assert find_date_field(columns) == "y"

    def test_none_found(self):
        assert find_date_field([ColumnDescriptor(name="id", type="int")]) is None
        assert find_date_field([]) is None


# --- check_connection ---


@patch("multidb.discovery.create_driver")
def test_check_connection_success(mock_create: MagicMock) -> None:
    """Config is materialized, probe query run, and the driver disconnected."""
    driver = MagicMock()
    mock_create.return_value = driver
    result = check_connection("mysql", MYSQL_CONFIG, SchemaLoader(PACKAGED_SCHEMA_DIR))
    assert result.ok is True
    assert result.family == "mysql"
    assert result.message == "Connection successful"
    typed = driver.connect.call_args.args[0]
    assert isinstance(typed, MySQLConfig)
    assert typed.connection_limit == 10
    driver.execute_query.assert_called_once_with("SELECT 1")
    driver.disconnect.assert_called_once()


@patch("multidb.discovery.create_driver")
def test_check_connection_oracle_uses_dual(mock_create: MagicMock) -> None:
    driver = MagicMock()
    mock_create.return_value = driver
    config = {"host": "ora1", "port": 1521, "user": "scott", "password": "tiger", "service": "PDB1"}
    result = check_connection(FamilyEnum.ORACLE, config, SchemaLoader(PACKAGED_SCHEMA_DIR))
    assert result.ok is True
    driver.execute_query.assert_called_once_with("SELECT 1 FROM DUAL")


@patch("multidb.discovery.create_driver")
def test_check_connection_failure_is_reported(mock_create: MagicMock) -> None:
    driver = MagicMock()
    driver.connect.side_effect = DatabaseConnectionError(
        "Cannot connect to db1:3306 - server may not be running", family="mysql", operation="connect"
    )
    mock_create.return_value = driver
    result = check_connection("mysql", MYSQL_CONFIG, SchemaLoader(PACKAGED_SCHEMA_DIR))
    assert result.ok is False
    assert result.message == "Cannot connect to db1:3306 - server may not be running"
    driver.disconnect.assert_called_once()


@patch("multidb.discovery.create_driver")
def test_check_connection_invalid_config(mock_create: MagicMock) -> None:
    """Validation errors are returned without creating a driver."""
    result = check_connection("mysql", {"host": "db1"}, SchemaLoader(PACKAGED_SCHEMA_DIR))
    assert result.ok is False
    assert "Missing required field: port" in result.message
    mock_create.assert_not_called()


def test_check_connection_unknown_family() -> None:
    result = check_connection("sqlserver", {}, SchemaLoader(PACKAGED_SCHEMA_DIR))
    assert result.ok is False
    assert result.family == "sqlserver"
    assert "Unsupported database type" in result.message
