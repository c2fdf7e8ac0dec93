"""
Oracle driver (python-oracledb, thin mode unless ORACLE_THICK_MODE is set).

Pooling is delegated to python-oracledb's session pool; every operation
acquires a session and closes it (returning it to the pool) in ``finally``.
Statements run with autocommit. Positional ``?`` parameters are bound by name
as ``:param0``, ``:param1``, ...
"""

import logging
from typing import Any

import oracledb

from multidb.core.config import settings
from multidb.core.errors import DatabaseConnectionError, PoolTimeoutError, QueryError
from multidb.core.pool import create_oracle_pool, probe_query, probe_tcp
from multidb.models import (
    ColumnDescriptor,
    DatabaseInfo,
    FamilyEnum,
    FieldDescriptor,
    OracleConfig,
    QueryResult,
)
from multidb.sql.placeholders import Params, PlaceholderError, has_params, to_named
from multidb.sql.statements import is_administrative

from .base import DatabaseDriver

_log = logging.getLogger(__name__)

# DPY-4005: timed out waiting for the pool to return a connection
_POOL_TIMEOUT_CODES = ("DPY-4005", "ORA-24457")

_TABLES_SQL = """
    SELECT table_name
    FROM all_tables
    WHERE owner = UPPER(:owner)
    AND table_name NOT LIKE 'BIN$%'
    ORDER BY table_name
"""

_COLUMNS_SQL = """
    SELECT
        c.column_name,
        c.data_type,
        c.data_length,
        c.data_precision,
        c.data_scale,
        c.nullable,
        c.data_default,
        (
            SELECT 'PRI'
            FROM all_constraints k
            JOIN all_cons_columns kc
              ON kc.owner = k.owner
             AND kc.constraint_name = k.constraint_name
            WHERE k.constraint_type = 'P'
            AND k.owner = c.owner
            AND k.table_name = c.table_name
            AND kc.column_name = c.column_name
            AND ROWNUM = 1
        ) AS column_key
    FROM all_tab_columns c
    WHERE c.owner = UPPER(:owner)
    AND c.table_name = UPPER(:table_name)
    ORDER BY c.column_id
"""

_VERSION_SQL = "SELECT banner FROM v$version WHERE banner LIKE 'Oracle%'"

_LENGTH_TYPES = frozenset({"VARCHAR2", "NVARCHAR2", "VARCHAR", "CHAR", "NCHAR", "RAW"})


def format_column_type(
    data_type: str,
    length: int | None = None,
    precision: int | None = None,
    scale: int | None = None,
) -> str:
    """Render catalog type columns as ``VARCHAR2(100)`` / ``NUMBER(10,2)``."""
    if data_type == "NUMBER" and precision is not None:
        if scale:
            return f"NUMBER({precision},{scale})"
        return f"NUMBER({precision})"
    if data_type in _LENGTH_TYPES and length:
        return f"{data_type}({length})"
    return data_type


def _read_value(value: Any) -> Any:
    if isinstance(value, oracledb.LOB):
        return value.read()
    return value


def _is_pool_timeout(error: Exception) -> bool:
    text = str(error)
    return any(code in text for code in _POOL_TIMEOUT_CODES)


class OracleDriver(DatabaseDriver):
    family = FamilyEnum.ORACLE
    display_name = "Oracle"
    client_name = "oracledb"
    config_model = OracleConfig
    administrative_prefixes = ("ALTER SESSION", "SET ROLE")

    def connect(self, config: OracleConfig | dict[str, Any]) -> Any:
        cfg: OracleConfig = self._coerce_config(config)
        target = f"{cfg.host}:{cfg.port}/{cfg.target}"
        _log.info("Oracle: connecting to %s", target)

        pool = None
        try:
            probe_tcp(cfg.host, cfg.port, family=self.family.value)
            pool = create_oracle_pool(cfg)
            conn = pool.acquire()
            try:
                conn.ping()
            finally:
                conn.close()
        except Exception as e:
            if pool is not None:
                try:
                    pool.close(force=True)
                except oracledb.Error:
                    pass
            _log.error("Oracle connection failed: %s", e)
            if isinstance(e, DatabaseConnectionError):
                raise
            raise DatabaseConnectionError(
                f"Failed to connect to Oracle database at {target}: {e}",
                family=self.family.value,
                operation="connect",
            ) from e

        previous = self._pool
        self._pool = pool
        self._config = cfg
        if previous is not None:
            self._close_pool(previous)
        _log.info("Oracle: connected to %s", target)
        return pool

    def disconnect(self) -> None:
        pool = self._pool
        if pool is None:
            return
        self._pool = None
        self._config = None
        self._close_pool(pool)
        _log.info("Oracle connection closed")

    def test_connection(self) -> bool:
        pool = self._pool
        if pool is None:
            return False
        try:
            conn = pool.acquire()
            try:
                with conn.cursor() as cur:
                    cur.execute(probe_query(self.family))
                    cur.fetchone()
            finally:
                conn.close()
            return True
        except Exception as e:
            _log.warning("Oracle connection test failed: %s", e)
            return False

    def execute_query(self, query: str, params: Params = None) -> QueryResult:
        return self._execute("execute_query", query, params)

    def get_tables(self, database: str | None = None) -> list[str]:
        """Tables owned by the connected user; ``database`` (a SID or service name) is ignored."""
        self._require_pool("get_tables")
        owner = self._owner()
        result = self._execute("get_tables", _TABLES_SQL, {"owner": owner})
        return [row["TABLE_NAME"] for row in result.data]

    def get_columns(self, database: str | None, table: str) -> list[ColumnDescriptor]:
        self._require_pool("get_columns")
        owner = self._owner()
        result = self._execute(
            "get_columns", _COLUMNS_SQL, {"owner": owner, "table_name": table.upper()}
        )
        columns = []
        for col in result.data:
            default = col.get("DATA_DEFAULT")
            if isinstance(default, str):
                default = default.strip() or None
            columns.append(
                ColumnDescriptor(
                    name=col["COLUMN_NAME"],
                    type=format_column_type(
                        col["DATA_TYPE"],
                        col.get("DATA_LENGTH"),
                        col.get("DATA_PRECISION"),
                        col.get("DATA_SCALE"),
                    ),
                    nullable=col.get("NULLABLE") == "Y",
                    key=col.get("COLUMN_KEY"),
                    default=default,
                    extra=None,
                )
            )
        return columns

    def get_database_info(self) -> DatabaseInfo:
        try:
            result = self._execute("get_database_info", _VERSION_SQL)
            version = result.data[0]["BANNER"] if result.data else "unknown"
            return DatabaseInfo(version=str(version), type=self.display_name, driver=self.client_name)
        except Exception as e:
            _log.warning("Failed to get Oracle database info: %s", e, exc_info=True)
            return self._failed_info(e)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _owner(self) -> str:
        return self._config.user.upper()

    def _acquire(self, pool: Any, operation: str) -> Any:
        try:
            return pool.acquire()
        except oracledb.Error as e:
            error_cls = PoolTimeoutError if _is_pool_timeout(e) else DatabaseConnectionError
            raise error_cls(
                f"Could not acquire an Oracle session: {e}",
                family=self.family.value,
                operation=operation,
            ) from e

    def _execute(self, operation: str, query: str, params: Params = None) -> QueryResult:
        pool = self._require_pool(operation)
        conn = self._acquire(pool, operation)
        try:
            conn.autocommit = True
            if settings.EXTERNAL_DB_STATEMENT_TIMEOUT:
                conn.call_timeout = settings.EXTERNAL_DB_STATEMENT_TIMEOUT * 1000
            return self._run(conn, operation, query, params)
        finally:
            try:
                conn.close()
            except oracledb.Error as e:
                _log.warning("Oracle: failed to return session to pool: %s", e)

    def _run(self, conn: Any, operation: str, query: str, params: Params) -> QueryResult:
        bind = has_params(params)
        if bind and is_administrative(query, self.administrative_prefixes):
            _log.debug("Oracle: ignoring parameters for administrative statement")
            bind = False

        _log.debug("Oracle: executing %s", query)
        try:
            with conn.cursor() as cur:
                if bind:
                    sql, binds = to_named(query, params)
                    cur.execute(sql, binds)
                else:
                    cur.execute(query)
                return self._to_result(cur)
        except PlaceholderError as e:
            raise QueryError(str(e), family=self.family.value, operation=operation) from e
        except oracledb.Error as e:
            raise QueryError(
                f"Query failed: {e}",
                family=self.family.value,
                operation=operation,
                backend_message=str(e),
            ) from e

    @staticmethod
    def _to_result(cur: Any) -> QueryResult:
        if cur.description:
            names = [d[0] for d in cur.description]
            fields = [
                FieldDescriptor(name=d[0], type=getattr(d[1], "name", str(d[1])))
                for d in cur.description
            ]
            data = [
                {name: _read_value(value) for name, value in zip(names, row, strict=True)}
                for row in cur.fetchall()
            ]
            return QueryResult(data=data, fields=fields, row_count=len(data))
        return QueryResult(affected_rows=max(cur.rowcount or 0, 0), insert_id=None)

    @staticmethod
    def _close_pool(pool: Any) -> None:
        try:
            pool.close(force=True)
        except oracledb.Error as e:
            _log.warning("Oracle: error while closing pool: %s", e)
