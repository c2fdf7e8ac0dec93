"""
Bounded connection pool for client libraries without one (pymysql).

One pool per Driver instance. At most ``max_size`` connections exist at a
time (idle plus checked out). Callers past that limit wait on a condition
until a connection is released or ``acquire_timeout`` elapses. Includes
health-check on checkout and max-age eviction.
"""

import logging
import threading
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any, NamedTuple

from multidb.core.config import settings
from multidb.core.errors import NoConnectionError, PoolTimeoutError

from .health import health_check

_log = logging.getLogger(__name__)


class _PoolEntry(NamedTuple):
    conn: Any
    created_at: float  # time.monotonic() when the connection was opened
    last_used: float   # time.monotonic() when last returned to pool


class ConnectionPool:
    """Thread-safe pool of DB-API connections created by ``factory``."""

    def __init__(
        self,
        factory: Callable[[], Any],
        *,
        max_size: int,
        acquire_timeout: float,
        max_age: float | None = None,
        ping_idle_threshold: float | None = None,
        family: str | None = None,
    ) -> None:
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self._factory = factory
        self._max_size = max_size
        self._acquire_timeout = acquire_timeout
        self._max_age = float(
            max_age if max_age is not None else settings.EXTERNAL_DB_POOL_MAX_AGE_SEC
        )
        self._ping_idle = float(
            ping_idle_threshold
            if ping_idle_threshold is not None
            else settings.EXTERNAL_DB_POOL_PING_IDLE_SEC
        )
        self._family = family
        self._idle: list[_PoolEntry] = []
        # conn id -> created_at for checked-out connections
        self._in_use: dict[int, float] = {}
        self._size = 0
        self._closed = False
        self._cond = threading.Condition(threading.Lock())

    @property
    def max_size(self) -> int:
        return self._max_size

    @property
    def closed(self) -> bool:
        return self._closed

    def acquire(self, timeout: float | None = None) -> Any:
        """
        Check out a healthy connection, opening a new one while under max_size.

        Raises PoolTimeoutError when none is available within ``timeout``
        seconds (default: the pool's acquire_timeout) and NoConnectionError
        when the pool has been closed.
        """
        wait = self._acquire_timeout if timeout is None else timeout
        deadline = time.monotonic() + wait
        while True:
            entry, reserved = self._checkout(deadline)
            if entry is not None:
                conn = self._validate(entry)
                if conn is None:
                    continue
                return conn
            if reserved:
                return self._open()

    def release(self, conn: Any) -> None:
        """Return a connection to the pool (or close it if broken or the pool is closed)."""
        with self._cond:
            created_at = self._in_use.pop(id(conn), None)
        if created_at is None:
            _log.warning("Ignoring release of a connection that is not checked out")
            return

        try:
            conn.rollback()
        except Exception:
            self._discard(conn)
            return

        with self._cond:
            if self._closed:
                self._size -= 1
                self._cond.notify()
            else:
                self._idle.append(
                    _PoolEntry(conn=conn, created_at=created_at, last_used=time.monotonic())
                )
                self._cond.notify()
                return
        self._close_quiet(conn)

    @contextmanager
    def connection(self, timeout: float | None = None) -> Iterator[Any]:
        """Acquire a connection and release it on every exit path."""
        conn = self.acquire(timeout)
        try:
            yield conn
        finally:
            self.release(conn)

    def close(self) -> None:
        """Close idle connections; checked-out ones are closed when released."""
        with self._cond:
            self._closed = True
            entries = self._idle
            self._idle = []
            self._size -= len(entries)
            self._cond.notify_all()
        for e in entries:
            self._close_quiet(e.conn)

    def stats(self) -> dict[str, int]:
        """Return pool statistics for monitoring."""
        with self._cond:
            return {
                "max_size": self._max_size,
                "size": self._size,
                "idle_connections": len(self._idle),
                "in_use": len(self._in_use),
            }

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _checkout(self, deadline: float) -> tuple[_PoolEntry | None, bool]:
        """Pop an idle entry, or reserve a slot for a new connection, or wait."""
        with self._cond:
            while True:
                if self._closed:
                    raise NoConnectionError(
                        "Connection pool is closed",
                        family=self._family,
                        operation="acquire",
                    )
                if self._idle:
                    entry = self._idle.pop()
                    self._in_use[id(entry.conn)] = entry.created_at
                    return entry, False
                if self._size < self._max_size:
                    self._size += 1
                    return None, True
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise PoolTimeoutError(
                        f"Timed out waiting for a pooled connection "
                        f"(pool size {self._max_size})",
                        family=self._family,
                        operation="acquire",
                    )
                self._cond.wait(remaining)

    def _open(self) -> Any:
        try:
            conn = self._factory()
        except BaseException:
            with self._cond:
                self._size -= 1
                self._cond.notify()
            raise
        with self._cond:
            self._in_use[id(conn)] = time.monotonic()
        return conn

    def _validate(self, entry: _PoolEntry) -> Any | None:
        """Return the connection if still usable; otherwise discard it and return None."""
        now = time.monotonic()
        if (now - entry.created_at) > self._max_age:
            self._discard(entry.conn)
            return None
        if (now - entry.last_used) > self._ping_idle and not self._is_alive(entry.conn):
            self._discard(entry.conn)
            return None
        return entry.conn

    def _discard(self, conn: Any) -> None:
        with self._cond:
            self._in_use.pop(id(conn), None)
            self._size -= 1
            self._cond.notify()
        self._close_quiet(conn)

    def _is_alive(self, conn: Any) -> bool:
        return health_check(conn, self._family)

    @staticmethod
    def _close_quiet(conn: Any) -> None:
        try:
            conn.close()
        except Exception:
            pass
