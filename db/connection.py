"""
db/connection.py
----------------
Manages the database connection pool.

Production runs on PostgreSQL through psycopg2's ThreadedConnectionPool
(request handlers and scheduler workers share it across threads).
A ``sqlite:///...`` DATABASE_URL switches to a single shared SQLite
connection, used for local runs and the test suite. Repositories write
their SQL once, with psycopg2 ``%s`` placeholders; the SQLite wrapper
translates them.
"""

import sqlite3
import threading
from contextlib import contextmanager
from datetime import date, datetime

import psycopg2
from psycopg2 import pool

from config import DATABASE_URL, DB_POOL_MAX, DB_POOL_MIN
from utils.logger import get_logger

logger = get_logger(__name__)

# Unique-index and FK violations from either backend.
INTEGRITY_ERRORS = (psycopg2.IntegrityError, sqlite3.IntegrityError)

_pool = None

sqlite3.register_adapter(date, lambda d: d.isoformat())
sqlite3.register_adapter(datetime, lambda dt: dt.isoformat(" "))
sqlite3.register_converter("DATE", lambda b: date.fromisoformat(b.decode()))
sqlite3.register_converter("TIMESTAMP", lambda b: datetime.fromisoformat(b.decode()))


def is_sqlite_url(url: str) -> bool:
    return url.startswith("sqlite://")


class _SqliteCursor:
    """Gives a sqlite3 cursor the psycopg2 calling conventions used by repositories."""

    def __init__(self, raw: sqlite3.Cursor):
        self._raw = raw

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self._raw.close()

    @staticmethod
    def _translate(sql: str) -> str:
        # SQLite has no row locks; the pool lock already serializes writers.
        return sql.replace("%s", "?").replace(" FOR UPDATE", "")

    def execute(self, sql: str, params=()) -> None:
        self._raw.execute(self._translate(sql), tuple(params))

    def executemany(self, sql: str, seq_of_params) -> None:
        self._raw.executemany(self._translate(sql), [tuple(p) for p in seq_of_params])

    def fetchone(self):
        return self._raw.fetchone()

    def fetchall(self):
        return self._raw.fetchall()

    @property
    def rowcount(self) -> int:
        return self._raw.rowcount


class SqliteConnection:
    """Thin psycopg2-compatible facade over one sqlite3 connection."""

    dialect = "sqlite"

    def __init__(self, raw: sqlite3.Connection):
        self._raw = raw

    def cursor(self) -> _SqliteCursor:
        return _SqliteCursor(self._raw.cursor())

    def commit(self) -> None:
        self._raw.commit()

    def rollback(self) -> None:
        self._raw.rollback()

    def executescript(self, sql: str) -> None:
        self._raw.executescript(sql)

    def close(self) -> None:
        self._raw.close()


class SqlitePool:
    """
    Pool-shaped holder for a single SQLite connection.

    ``getconn`` takes a re-entrant lock that is held until ``putconn``,
    so one thread at a time owns the connection for a whole transaction.
    """

    def __init__(self, url: str):
        path = url[len("sqlite:///"):] or ":memory:"
        raw = sqlite3.connect(
            path, check_same_thread=False, detect_types=sqlite3.PARSE_DECLTYPES
        )
        raw.execute("PRAGMA foreign_keys = ON")
        if path != ":memory:":
            raw.execute("PRAGMA journal_mode = WAL")
        self._conn = SqliteConnection(raw)
        self._lock = threading.RLock()

    def getconn(self) -> SqliteConnection:
        self._lock.acquire()
        return self._conn

    def putconn(self, conn) -> None:
        self._lock.release()

    def closeall(self) -> None:
        self._conn.close()


def init_pool(
    min_conn: int = DB_POOL_MIN,
    max_conn: int = DB_POOL_MAX,
    database_url: str | None = None,
) -> None:
    """
    Initialize the database connection pool.

    Args:
        min_conn: Minimum number of connections to keep open (PostgreSQL only).
        max_conn: Maximum number of connections allowed (PostgreSQL only).
        database_url: Overrides ``config.DATABASE_URL``.

    Raises:
        psycopg2.OperationalError: If the database is unreachable.
    """
    global _pool
    if _pool is not None:
        return
    url = database_url or DATABASE_URL
    if is_sqlite_url(url):
        _pool = SqlitePool(url)
        logger.info(f"SQLite database opened at {url}")
        return
    try:
        _pool = pool.ThreadedConnectionPool(min_conn, max_conn, url)
        logger.info("Database connection pool initialized successfully.")
    except psycopg2.OperationalError as e:
        logger.error(f"Failed to initialize database pool: {e}")
        raise


def dialect() -> str:
    """Return ``"sqlite"`` or ``"postgresql"`` for the active pool."""
    return "sqlite" if isinstance(_pool, SqlitePool) else "postgresql"


def get_connection():
    """
    Get a connection from the pool.

    Returns:
        A psycopg2 connection (or the SQLite facade).

    Raises:
        RuntimeError: If the pool has not been initialized.
    """
    if _pool is None:
        raise RuntimeError("Database pool not initialized. Call init_pool() first.")
    return _pool.getconn()


def release_connection(conn) -> None:
    """
    Return a connection back to the pool.

    Args:
        conn: The connection to release.
    """
    if _pool is not None:
        _pool.putconn(conn)


@contextmanager
def transaction():
    """
    Check out a connection and yield it inside one transaction.

    Commits when the block exits normally, rolls back and re-raises otherwise.
    Used wherever several statements (possibly across tables) must be atomic.
    """
    conn = get_connection()
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        release_connection(conn)


def close_pool() -> None:
    """Close all connections in the pool."""
    global _pool
    if _pool is not None:
        _pool.closeall()
        _pool = None
        logger.info("Database connection pool closed.")
