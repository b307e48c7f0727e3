"""Connection and pool factories.

PostgreSQL connections come from ``psycopg2`` and use ``RealDictCursor``
so that rows arrive as mappings.  SQLite connections use the built-in
``sqlite3`` module with ``sqlite3.Row``.

Pools expose the ``psycopg2.pool`` interface: ``getconn()``,
``putconn(conn)`` and ``closeall()``.  Borrowers wait for a free
connection instead of failing when the pool is exhausted.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from pathlib import Path
from typing import Any

import psycopg2
import psycopg2.extras
from psycopg2.pool import PoolError, ThreadedConnectionPool

from tablekit.config import DatabaseConfig

logger = logging.getLogger(__name__)


def connect_sqlite(
    path: str | Path,
    *,
    wal_mode: bool = True,
    foreign_keys: bool = True,
) -> sqlite3.Connection:
    """Open (or create) a SQLite database and return a connection.

    Args:
        path: File path (``":memory:"`` for in-memory).
        wal_mode: Enable WAL journal mode for better concurrent access.
        foreign_keys: Enforce foreign key constraints.
    """
    path = str(Path(path).expanduser()) if path != ":memory:" else ":memory:"

    if path != ":memory:":
        Path(path).parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(path, check_same_thread=False)
    conn.row_factory = sqlite3.Row

    if wal_mode and path != ":memory:":
        conn.execute("PRAGMA journal_mode=WAL")
    if foreign_keys:
        conn.execute("PRAGMA foreign_keys=ON")

    logger.debug("SQLite connection opened: %s", path)
    return conn


def connect_postgresql(config: DatabaseConfig | None = None) -> Any:
    """Open a single PostgreSQL connection with ``RealDictCursor`` rows."""
    config = config or DatabaseConfig.from_env()
    conn = psycopg2.connect(
        cursor_factory=psycopg2.extras.RealDictCursor,
        **config.connect_kwargs(),
    )
    logger.debug(
        "PostgreSQL connection opened: %s:%s/%s", config.host, config.port, config.database
    )
    return conn


def create_pool(config: DatabaseConfig | None = None) -> BlockingConnectionPool:
    """Create a thread-safe PostgreSQL connection pool.

    The returned pool waits for a free connection once ``maxconn``
    connections are borrowed.
    """
    config = config or DatabaseConfig.from_env()
    pool = ThreadedConnectionPool(
        config.minconn,
        config.maxconn,
        cursor_factory=psycopg2.extras.RealDictCursor,
        **config.connect_kwargs(),
    )
    logger.info(
        "PostgreSQL pool created for %s@%s:%s/%s (%d-%d connections)",
        config.user, config.host, config.port, config.database,
        config.minconn, config.maxconn,
    )
    return BlockingConnectionPool(pool, config.maxconn)


class BlockingConnectionPool:
    """Wrap a ``psycopg2.pool`` pool so that ``getconn()`` waits.

    ``ThreadedConnectionPool.getconn`` raises ``PoolError`` as soon as
    ``maxconn`` connections are out.  Here each borrower first takes one
    of ``maxconn`` semaphore slots, which ``putconn`` gives back.

    Args:
        inner: The psycopg2 pool that owns the connections.
        maxconn: Number of connections that may be borrowed at once.
        timeout: Seconds to wait for a slot; ``None`` waits forever.
    """

    def __init__(self, inner: Any, maxconn: int, timeout: float | None = None) -> None:
        self.inner = inner
        self.timeout = timeout
        self._slots = threading.BoundedSemaphore(maxconn)

    def getconn(self) -> Any:
        if not self._slots.acquire(timeout=self.timeout):
            raise PoolError(f"no connection available after {self.timeout}s")
        try:
            return self.inner.getconn()
        except Exception:
            self._slots.release()
            raise

    def putconn(self, conn: Any, close: bool = False) -> None:
        try:
            self.inner.putconn(conn, close=close)
        finally:
            self._slots.release()

    def closeall(self) -> None:
        self.inner.closeall()


class SingleConnectionPool:
    """Pool interface over one shared connection.

    ``getconn()`` blocks until the previous borrower has called
    ``putconn()``, so at most one statement runs on the connection at a
    time.  Mainly useful for SQLite.
    """

    def __init__(self, conn: Any) -> None:
        self._conn = conn
        self._lock = threading.Lock()
        self.closed = False

    def getconn(self) -> Any:
        if self.closed:
            raise RuntimeError("Connection pool is closed.")
        self._lock.acquire()
        return self._conn

    def putconn(self, conn: Any, close: bool = False) -> None:
        if conn is not self._conn:
            raise ValueError("Connection does not belong to this pool.")
        self._lock.release()

    def closeall(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._conn.close()
