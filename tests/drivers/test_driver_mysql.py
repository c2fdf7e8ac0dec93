"""
Unit tests for drivers.mysql.MySQLDriver.

pymysql and the TCP probe are patched; connections are tests.utils.fakes objects.
"""

import threading
import time
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import MagicMock, patch

import pymysql
import pytest
from pymysql.constants import FIELD_TYPE

from multidb.core.errors import (
    ConfigValidationError,
    DatabaseConnectionError,
    NoConnectionError,
    PoolTimeoutError,
    QueryError,
)
from multidb.drivers import MySQLDriver
from multidb.models import MySQLConfig
from tests.utils.fakes import FakeConnection, FakeCursor

CONFIG = {
    "host": "db1",
    "port": 3306,
    "user": "app",
    "password": "secret",
    "database": "shop",
    "connectionLimit": 2,
    "acquireTimeout": 2000,
}


@pytest.fixture
def probe():
    with patch("multidb.drivers.mysql.probe_tcp") as mock_probe:
        yield mock_probe


@pytest.fixture
def conn():
    return FakeConnection()


@pytest.fixture
def connect_mysql(conn):
    with patch("multidb.drivers.mysql.connect_mysql", return_value=conn) as mock_connect:
        yield mock_connect


@pytest.fixture
def driver(probe, connect_mysql):
    d = MySQLDriver()
    d.connect(CONFIG)
    yield d
    d.disconnect()


# --- connect / disconnect ---


def test_execute_before_connect_raises_without_io(probe, connect_mysql) -> None:
    """No pool means NoConnectionError before any network call."""
    d = MySQLDriver()
    with pytest.raises(NoConnectionError) as exc_info:
        d.execute_query("SELECT 1")
    assert "No active MySQL connection" in str(exc_info.value)
    probe.assert_not_called()
    connect_mysql.assert_not_called()


def test_connect_probes_then_pings(probe, connect_mysql, conn) -> None:
    """connect() probes host:port, opens one connection and pings it."""
    d = MySQLDriver()
    pool = d.connect(CONFIG)
    probe.assert_called_once_with("db1", 3306, family="mysql")
    connect_mysql.assert_called_once()
    assert conn.pings == 1
    assert d.is_connected is True
    assert d.pool is pool
    assert pool.max_size == 2
    assert isinstance(d.config, MySQLConfig)
    assert d.config.database == "shop"


def test_connect_unreachable_fails_fast(probe, connect_mysql) -> None:
    """A failed probe raises and never attempts the handshake."""
    probe.side_effect = DatabaseConnectionError("Cannot connect to db1:3306", family="mysql")
    d = MySQLDriver()
    with pytest.raises(DatabaseConnectionError):
        d.connect(CONFIG)
    connect_mysql.assert_not_called()
    assert d.is_connected is False


def test_connect_handshake_failure_wraps_backend_error(probe, connect_mysql) -> None:
    """Auth/handshake errors become DatabaseConnectionError with the cause chained."""
    connect_mysql.side_effect = pymysql.err.OperationalError(1045, "Access denied for user 'app'")
    d = MySQLDriver()
    with pytest.raises(DatabaseConnectionError) as exc_info:
        d.connect(CONFIG)
    err = exc_info.value
    assert "Failed to connect to MySQL database at db1:3306/shop" in str(err)
    assert "Access denied" in str(err)
    assert isinstance(err.__cause__, pymysql.err.OperationalError)
    assert d.is_connected is False


def test_failed_reconnect_keeps_existing_pool(driver, connect_mysql) -> None:
    """A failed connect leaves the working pool in place."""
    old_pool = driver.pool
    connect_mysql.side_effect = pymysql.err.OperationalError(2003, "Can't connect")
    with pytest.raises(DatabaseConnectionError):
        driver.connect(CONFIG)
    assert driver.pool is old_pool
    assert old_pool.closed is False


def test_reconnect_replaces_and_closes_old_pool(driver) -> None:
    old_pool = driver.pool
    driver.connect(CONFIG)
    assert driver.pool is not old_pool
    assert old_pool.closed is True


def test_invalid_config_rejected(probe) -> None:
    """Config that does not fit MySQLConfig raises ConfigValidationError before probing."""
    d = MySQLDriver()
    with pytest.raises(ConfigValidationError) as exc_info:
        d.connect({"host": "db1", "port": "not-a-port"})
    assert exc_info.value.errors
    probe.assert_not_called()


def test_disconnect_is_idempotent(driver, conn) -> None:
    pool = driver.pool
    driver.disconnect()
    driver.disconnect()
    assert driver.is_connected is False
    assert driver.config is None
    assert pool.closed is True
    assert conn.closed is True


# --- execute_query ---


def test_select_returns_normalized_result(driver, conn) -> None:
    """Rows become dicts in column order; field types come from FIELD_TYPE names."""
    conn.queue(
        FakeCursor(
            rows=[(1, "Ann"), (2, "Bob")],
            columns=[("id", FIELD_TYPE.LONG), ("name", FIELD_TYPE.VAR_STRING)],
        )
    )
    result = driver.execute_query("SELECT id, name FROM customers")
    assert result.data == [{"id": 1, "name": "Ann"}, {"id": 2, "name": "Bob"}]
    assert [(f.name, f.type) for f in result.fields] == [("id", "LONG"), ("name", "VAR_STRING")]
    assert result.row_count == 2
    assert result.insert_id is None


def test_positional_params_bound_as_pyformat(driver, conn) -> None:
    conn.queue(FakeCursor(rows=[], columns=["id"]))
    driver.execute_query("SELECT id FROM t WHERE name LIKE 'a%' AND id = ? AND note = '?'", [5])
    assert conn.issued[-1].executed == [
        ("SELECT id FROM t WHERE name LIKE 'a%%' AND id = %s AND note = '?'", (5,))
    ]


def test_hash_comment_question_mark_is_not_a_placeholder(driver, conn) -> None:
    conn.queue(FakeCursor(rows=[], columns=["id"]))
    driver.execute_query("SELECT id FROM t # newest first?\nWHERE id = ?", [5])
    assert conn.issued[-1].executed == [("SELECT id FROM t # newest first?\nWHERE id = %s", (5,))]


def test_named_params_bound_as_pyformat(driver, conn) -> None:
    conn.queue(FakeCursor(rows=[], columns=["id"]))
    driver.execute_query("SELECT id FROM t WHERE id = :id", {"id": 9})
    assert conn.issued[-1].executed == [("SELECT id FROM t WHERE id = %(id)s", {"id": 9})]


@pytest.mark.parametrize("params", [None, [], {}])
def test_empty_params_execute_unbound(driver, conn, params) -> None:
    """No usable params: the statement is sent as-is, % not doubled."""
    conn.queue(FakeCursor(rows=[], columns=["n"]))
    driver.execute_query("SELECT 100 % 7 AS n", params)
    assert conn.issued[-1].executed == [("SELECT 100 % 7 AS n", None)]


def test_administrative_statement_never_binds(driver, conn) -> None:
    conn.queue(FakeCursor(rows=[], columns=["Tables_in_shop"]))
    driver.execute_query("SHOW TABLES LIKE 'ord%'", ["ignored"])
    assert conn.issued[-1].executed == [("SHOW TABLES LIKE 'ord%'", None)]


def test_write_reports_affected_rows_and_insert_id(driver, conn) -> None:
    conn.queue(
        FakeCursor(rowcount=1, lastrowid=42),
        FakeCursor(rowcount=3, lastrowid=0),
    )
    inserted = driver.execute_query("INSERT INTO t (name) VALUES (?)", ["x"])
    assert (inserted.data, inserted.row_count) == ([], 0)
    assert (inserted.affected_rows, inserted.insert_id) == (1, 42)
    updated = driver.execute_query("UPDATE t SET name = ?", ["y"])
    assert (updated.affected_rows, updated.insert_id) == (3, None)


def test_backend_error_raises_query_error_and_releases(driver, conn) -> None:
    """QueryError keeps the backend text; the connection goes back to the pool."""
    conn.queue(FakeCursor(error=pymysql.err.ProgrammingError(1146, "Table 'shop.nope' doesn't exist")))
    with pytest.raises(QueryError) as exc_info:
        driver.execute_query("SELECT * FROM nope")
    err = exc_info.value
    assert "doesn't exist" in err.backend_message
    assert err.family == "mysql"
    assert isinstance(err.__cause__, pymysql.err.ProgrammingError)
    assert conn.issued[-1].closed is True
    assert driver.pool.stats()["in_use"] == 0
    assert driver.pool.stats()["idle_connections"] == 1


def test_placeholder_mismatch_raises_query_error(driver) -> None:
    with pytest.raises(QueryError):
        driver.execute_query("SELECT ?", [1, 2])
    assert driver.pool.stats()["in_use"] == 0


def test_execute_after_disconnect_raises(driver) -> None:
    driver.disconnect()
    with pytest.raises(NoConnectionError):
        driver.execute_query("SELECT 1")


# --- introspection ---


def test_get_tables_uses_configured_database(driver, conn) -> None:
    conn.queue(FakeCursor(rows=[("customers",), ("orders",)], columns=["Tables_in_shop"]))
    assert driver.get_tables() == ["customers", "orders"]
    assert conn.issued[-1].executed == [("SHOW TABLES FROM `shop`", None)]


def test_get_tables_for_other_schema(driver, conn) -> None:
    conn.queue(FakeCursor(rows=[], columns=["Tables_in_archive"]))
    assert driver.get_tables("archive") == []
    assert conn.issued[-1].executed == [("SHOW TABLES FROM `archive`", None)]


def test_get_columns_normalizes_describe_output(driver, conn) -> None:
    """Empty Key/Extra become None; BLOB-typed DESCRIBE values are decoded."""
    conn.queue(
        FakeCursor(
            rows=[
                ("id", b"int unsigned", "NO", "PRI", None, "auto_increment"),
                ("name", b"varchar(100)", "YES", "", "n/a", ""),
            ],
            columns=["Field", "Type", "Null", "Key", "Default", "Extra"],
        )
    )
    columns = driver.get_columns("shop", "customers")
    assert conn.issued[-1].executed == [("DESCRIBE `shop`.`customers`", None)]
    assert [c.model_dump() for c in columns] == [
        {
            "name": "id",
            "type": "int unsigned",
            "nullable": False,
            "key": "PRI",
            "default": None,
            "extra": "auto_increment",
        },
        {
            "name": "name",
            "type": "varchar(100)",
            "nullable": True,
            "key": None,
            "default": "n/a",
            "extra": None,
        },
    ]


def test_introspection_before_connect_raises() -> None:
    d = MySQLDriver()
    with pytest.raises(NoConnectionError):
        d.get_tables()
    with pytest.raises(NoConnectionError):
        d.get_columns("shop", "orders")


def test_get_database_info(driver, conn) -> None:
    conn.queue(FakeCursor(rows=[("8.0.36",)], columns=["version"]))
    info = driver.get_database_info()
    assert (info.version, info.type, info.driver, info.error) == ("8.0.36", "MySQL", "pymysql", None)


def test_get_database_info_never_raises(driver, conn) -> None:
    conn.queue(FakeCursor(error=pymysql.err.OperationalError(2013, "Lost connection")))
    info = driver.get_database_info()
    assert info.version == "unknown"
    assert "Lost connection" in info.error


def test_get_database_info_when_disconnected() -> None:
    info = MySQLDriver().get_database_info()
    assert "No active MySQL connection" in info.error


# --- test_connection ---


def test_test_connection(driver, conn) -> None:
    assert driver.test_connection() is True
    conn.ping_error = pymysql.err.OperationalError(2006, "MySQL server has gone away")
    assert driver.test_connection() is False
    assert driver.pool.stats()["in_use"] == 0


def test_test_connection_when_disconnected() -> None:
    assert MySQLDriver().test_connection() is False


# --- concurrency ---


class TestConcurrency:
    def _driver(self, limit: int, acquire_timeout: int, cursor_factory) -> tuple[MySQLDriver, MagicMock]:
        factory = MagicMock(side_effect=lambda *a, **kw: FakeConnection(cursor_factory=cursor_factory))
        with patch("multidb.drivers.mysql.probe_tcp"), patch(
            "multidb.drivers.mysql.connect_mysql", factory
        ):
            d = MySQLDriver()
            d.connect({**CONFIG, "connectionLimit": limit, "acquireTimeout": acquire_timeout})
        return d, factory

    def test_calls_up_to_pool_size_complete(self):
        d, factory = self._driver(4, 2000, lambda: FakeCursor(rows=[(1,)], columns=["n"]))
        with ThreadPoolExecutor(max_workers=4) as executor:
            results = list(executor.map(lambda _: d.execute_query("SELECT 1 AS n"), range(4)))
        assert [r.data for r in results] == [[{"n": 1}]] * 4
        assert factory.call_count <= 4
        d.disconnect()

    def test_excess_calls_wait_for_release(self):
        gate = threading.Event()
        d, factory = self._driver(2, 5000, lambda: FakeCursor(rows=[(1,)], columns=["n"], block=gate))
        with ThreadPoolExecutor(max_workers=6) as executor:
            futures = [executor.submit(d.execute_query, "SELECT 1 AS n") for _ in range(6)]
            threading.Timer(0.1, gate.set).start()
            results = [f.result(timeout=5) for f in futures]
        assert all(r.row_count == 1 for r in results)
        assert factory.call_count <= 2
        assert d.pool.stats()["in_use"] == 0
        d.disconnect()

    def test_acquire_timeout_raises_pool_timeout(self):
        gate = threading.Event()
        d, _ = self._driver(1, 50, lambda: FakeCursor(rows=[(1,)], columns=["n"], block=gate))
        with ThreadPoolExecutor(max_workers=1) as executor:
            holder = executor.submit(d.execute_query, "SELECT 1 AS n")
            deadline = time.monotonic() + 5
            while d.pool.stats()["in_use"] == 0 and time.monotonic() < deadline:
                time.sleep(0.005)
            with pytest.raises(PoolTimeoutError):
                d.execute_query("SELECT 1 AS n")
            gate.set()
            assert holder.result(timeout=5).row_count == 1
        d.disconnect()
