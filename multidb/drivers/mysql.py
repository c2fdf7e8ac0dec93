"""
MySQL driver (pymysql).

One bounded ConnectionPool per driver; every operation acquires, executes and
releases. Unqualified table names resolve against the configured database,
which is the default schema of every pooled connection; callers that need
another schema qualify names with ``MySQLDialect.qualify_name``.
"""

import logging
from functools import partial
from typing import Any

import pymysql
from pymysql.constants import FIELD_TYPE

from multidb.core.errors import DatabaseConnectionError, QueryError
from multidb.core.pool import ConnectionPool, connect_mysql, cursor_to_dicts, probe_tcp
from multidb.models import (
    ColumnDescriptor,
    DatabaseInfo,
    FamilyEnum,
    FieldDescriptor,
    MySQLConfig,
    QueryResult,
)
from multidb.sql.placeholders import Params, PlaceholderError, has_params, to_pyformat
from multidb.sql.statements import is_administrative

from .base import DatabaseDriver

_log = logging.getLogger(__name__)

_FIELD_TYPE_NAMES: dict[int, str] = {}
for _name, _code in vars(FIELD_TYPE).items():
    if _name.isupper() and isinstance(_code, int):
        _FIELD_TYPE_NAMES.setdefault(_code, _name)


def _quote(name: str) -> str:
    return "`" + str(name).replace("`", "``") + "`"


def _text(value: Any) -> Any:
    # MySQL 8 reports some DESCRIBE columns as BLOB, which pymysql returns as bytes.
    if isinstance(value, (bytes, bytearray)):
        return value.decode("utf-8", errors="replace")
    return value


class MySQLDriver(DatabaseDriver):
    family = FamilyEnum.MYSQL
    display_name = "MySQL"
    client_name = "pymysql"
    config_model = MySQLConfig
    administrative_prefixes = ("SHOW", "DESCRIBE", "DESC", "USE", "SET")

    def connect(self, config: MySQLConfig | dict[str, Any]) -> ConnectionPool:
        cfg: MySQLConfig = self._coerce_config(config)
        target = f"{cfg.host}:{cfg.port}/{cfg.database}"
        _log.info("MySQL: connecting to %s", target)

        pool: ConnectionPool | None = None
        try:
            probe_tcp(cfg.host, cfg.port, family=self.family.value)
            pool = ConnectionPool(
                partial(connect_mysql, cfg),
                max_size=cfg.connection_limit,
                acquire_timeout=cfg.acquire_timeout / 1000,
                family=self.family.value,
            )
            with pool.connection() as conn:
                conn.ping(reconnect=False)
        except Exception as e:
            if pool is not None:
                pool.close()
            _log.error("MySQL connection failed: %s", e)
            if isinstance(e, DatabaseConnectionError):
                raise
            raise DatabaseConnectionError(
                f"Failed to connect to MySQL database at {target}: {e}",
                family=self.family.value,
                operation="connect",
            ) from e

        previous = self._pool
        self._pool = pool
        self._config = cfg
        if previous is not None:
            previous.close()
        _log.info("MySQL: connected to %s", target)
        return pool

    def disconnect(self) -> None:
        pool = self._pool
        if pool is None:
            return
        self._pool = None
        self._config = None
        pool.close()
        _log.info("MySQL connection closed")

    def test_connection(self) -> bool:
        pool = self._pool
        if pool is None:
            return False
        try:
            with pool.connection() as conn:
                conn.ping(reconnect=False)
            return True
        except Exception as e:
            _log.warning("MySQL connection test failed: %s", e)
            return False

    def execute_query(self, query: str, params: Params = None) -> QueryResult:
        return self._execute("execute_query", query, params)

    def get_tables(self, database: str | None = None) -> list[str]:
        self._require_pool("get_tables")
        db = database or self._config.database
        result = self._execute("get_tables", f"SHOW TABLES FROM {_quote(db)}")
        return [_text(next(iter(row.values()))) for row in result.data]

    def get_columns(self, database: str | None, table: str) -> list[ColumnDescriptor]:
        self._require_pool("get_columns")
        db = database or self._config.database
        result = self._execute("get_columns", f"DESCRIBE {_quote(db)}.{_quote(table)}")
        return [
            ColumnDescriptor(
                name=_text(col["Field"]),
                type=_text(col["Type"]),
                nullable=_text(col["Null"]) == "YES",
                key=_text(col.get("Key")) or None,
                default=_text(col.get("Default")),
                extra=_text(col.get("Extra")) or None,
            )
            for col in result.data
        ]

    def get_database_info(self) -> DatabaseInfo:
        try:
            result = self._execute("get_database_info", "SELECT VERSION() AS version")
            version = result.data[0]["version"] if result.data else "unknown"
            return DatabaseInfo(
                version=str(_text(version)), type=self.display_name, driver=self.client_name
            )
        except Exception as e:
            _log.warning("Failed to get MySQL database info: %s", e, exc_info=True)
            return self._failed_info(e)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _execute(self, operation: str, query: str, params: Params = None) -> QueryResult:
        pool: ConnectionPool = self._require_pool(operation)
        try:
            conn = pool.acquire()
        except pymysql.MySQLError as e:
            raise DatabaseConnectionError(
                f"Could not open a MySQL connection: {e}",
                family=self.family.value,
                operation=operation,
            ) from e
        try:
            return self._run(conn, operation, query, params)
        finally:
            pool.release(conn)

    def _run(self, conn: Any, operation: str, query: str, params: Params) -> QueryResult:
        bind = has_params(params)
        if bind and is_administrative(query, self.administrative_prefixes):
            _log.debug("MySQL: ignoring parameters for administrative statement")
            bind = False

        _log.debug("MySQL: executing %s", query)
        cur = conn.cursor()
        try:
            if bind:
                sql, args = to_pyformat(query, params)
                cur.execute(sql, args)
            else:
                cur.execute(query)
            return self._to_result(cur)
        except PlaceholderError as e:
            raise QueryError(str(e), family=self.family.value, operation=operation) from e
        except pymysql.MySQLError as e:
            raise QueryError(
                f"Query failed: {e}",
                family=self.family.value,
                operation=operation,
                backend_message=str(e),
            ) from e
        finally:
            try:
                cur.close()
            except Exception:
                pass

    @staticmethod
    def _to_result(cur: Any) -> QueryResult:
        if cur.description:
            fields = [
                FieldDescriptor(name=d[0], type=_FIELD_TYPE_NAMES.get(d[1], str(d[1])))
                for d in cur.description
            ]
            data = cursor_to_dicts(cur)
            return QueryResult(data=data, fields=fields, row_count=len(data))
        return QueryResult(
            affected_rows=max(cur.rowcount or 0, 0),
            insert_id=cur.lastrowid or None,
        )
