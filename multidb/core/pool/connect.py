"""
Connection helpers for external data sources.

Uses pymysql (MySQL) or python-oracledb (Oracle) based on the config type.
Every path is bounded: the reachability probe by DB_PROBE_TIMEOUT, the
handshake by the config's connect_timeout.
"""

import logging
import socket
import threading
from typing import Any

import oracledb
import pymysql

from multidb.core.config import settings
from multidb.core.errors import DatabaseConnectionError
from multidb.models import MySQLConfig, OracleConfig

_log = logging.getLogger(__name__)

_oracle_client_lock = threading.Lock()
_oracle_client_initialised = False


def probe_tcp(
    host: str,
    port: int,
    *,
    timeout: float | None = None,
    family: str | None = None,
) -> None:
    """
    Open and close a raw TCP socket to host:port.

    Raises DatabaseConnectionError when the target does not accept the socket
    within ``timeout`` seconds (default DB_PROBE_TIMEOUT), so unreachable
    servers fail in seconds instead of after the pool's handshake timeout.
    """
    wait = settings.DB_PROBE_TIMEOUT if timeout is None else timeout
    try:
        sock = socket.create_connection((host, int(port)), timeout=wait)
    except OSError as e:
        raise DatabaseConnectionError(
            f"Cannot connect to {host}:{port} - server may not be running ({e})",
            family=family,
            operation="connect",
        ) from e
    try:
        sock.close()
    except OSError:
        pass


def connect_mysql(config: MySQLConfig) -> Any:
    """Open one autocommit pymysql connection. Timeouts in config are milliseconds."""
    statement_timeout = settings.EXTERNAL_DB_STATEMENT_TIMEOUT
    return pymysql.connect(
        host=config.host,
        port=int(config.port),
        user=config.user,
        password=config.password or "",
        database=config.database,
        charset=config.charset,
        autocommit=True,
        connect_timeout=max(1, config.connect_timeout // 1000),
        read_timeout=statement_timeout,
        write_timeout=statement_timeout,
    )


def init_oracle_client() -> None:
    """Switch python-oracledb to thick mode once per process when ORACLE_THICK_MODE is set."""
    global _oracle_client_initialised
    if not settings.ORACLE_THICK_MODE or _oracle_client_initialised:
        return
    with _oracle_client_lock:
        if _oracle_client_initialised:
            return
        oracledb.init_oracle_client(lib_dir=settings.ORACLE_CLIENT_LIB_DIR)
        _oracle_client_initialised = True
        _log.info("Oracle client initialised in thick mode")


def oracle_dsn(config: OracleConfig) -> str:
    """Easy Connect string for a service name, or a descriptor for a SID."""
    if config.service:
        return f"{config.host}:{config.port}/{config.service}"
    return oracledb.makedsn(config.host, config.port, sid=config.database)


def create_oracle_pool(config: OracleConfig) -> Any:
    """
    Create an oracledb session pool.

    Idle and TCP connect timeouts are converted to seconds. ``wait_timeout``
    is milliseconds in python-oracledb, so acquire_timeout passes through.
    """
    init_oracle_client()
    timeout_sec = max(1, config.connect_timeout // 1000)
    return oracledb.create_pool(
        user=config.user,
        password=config.password,
        dsn=oracle_dsn(config),
        min=config.pool_min,
        max=config.connection_limit,
        increment=config.pool_increment,
        getmode=oracledb.POOL_GETMODE_TIMEDWAIT,
        wait_timeout=config.acquire_timeout,
        timeout=timeout_sec,
        tcp_connect_timeout=float(timeout_sec),
    )


def cursor_to_dicts(cursor: Any) -> list[dict[str, Any]]:
    """Convert cursor result to list of dicts keyed in cursor column order."""
    desc = cursor.description
    if not desc:
        return []
    names = [d[0] for d in desc]
    return [dict(zip(names, row, strict=True)) for row in cursor.fetchall()]
