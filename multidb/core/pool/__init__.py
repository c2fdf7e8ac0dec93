"""
Connection probing, session creation and pooling for external data sources.

pymysql and python-oracledb are installed via pip. MySQL connections are pooled
by ConnectionPool; Oracle uses the session pool built into python-oracledb.
"""

from .connect import (
    connect_mysql,
    create_oracle_pool,
    cursor_to_dicts,
    oracle_dsn,
    probe_tcp,
)
from .health import health_check, probe_query
from .manager import ConnectionPool

__all__ = [
    "connect_mysql",
    "create_oracle_pool",
    "cursor_to_dicts",
    "oracle_dsn",
    "probe_tcp",
    "health_check",
    "probe_query",
    "ConnectionPool",
]
