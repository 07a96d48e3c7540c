"""Database access for the notification core

The production data lives in the hosted Postgres behind the BaaS; this module
provides the SQLite-backed store the backend runs against locally and in
tests.  One ``Database`` object owns one connection pool for one file.

Provides:
- Connection pooling (reuses connections)
- Transaction context manager with commit/rollback
- Retry with backoff on SQLITE_BUSY
"""

from __future__ import annotations

import os
import random
import sqlite3
import time
from collections.abc import Callable, Generator
from contextlib import contextmanager
from functools import wraps
from pathlib import Path
from queue import Empty, Full, Queue
from threading import Lock
from typing import Any, TypeVar

from officehub.config import (
    DB_CONNECT_TIMEOUT,
    DB_POOL_SIZE,
    DB_POOL_TIMEOUT,
    DB_RETRY_BASE_DELAY,
    DB_RETRY_JITTER,
    DB_RETRY_MAX,
    DB_RETRY_MAX_DELAY,
    OFFICEHUB_ROOT,
)
from officehub.observability.logging import get_logger
from officehub.observability.telemetry import counter

F = TypeVar("F", bound=Callable[..., Any])

DB_PATH = OFFICEHUB_ROOT / "data" / "officehub.db"

logger = get_logger(__name__)


def retry_on_db_lock(
    max_retries: int = DB_RETRY_MAX,
    base_delay: float = DB_RETRY_BASE_DELAY,
    max_delay: float = DB_RETRY_MAX_DELAY,
) -> Callable[[F], F]:
    """
    Decorator to retry database operations on SQLITE_BUSY errors

    Usage:
        @retry_on_db_lock()
        def update_something(self):
            with self.db.transaction() as conn:
                conn.execute("UPDATE ...")

    Side Effects:
        - Sleeps between retries (exponential backoff with jitter)
        - Logs a warning per retry and an error when retries are exhausted
    """

    def decorator(func: F) -> F:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            last_error = None

            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)

                except sqlite3.OperationalError as e:
                    last_error = e

                    if "locked" not in str(e).lower() and "busy" not in str(e).lower():
                        raise

                    if attempt >= max_retries:
                        logger.error(
                            "Database lock retry exhausted after %d attempts: %s",
                            max_retries,
                            e,
                        )
                        raise

                    delay = min(base_delay * (2**attempt), max_delay)
                    sleep_time = delay + random.uniform(0, delay * DB_RETRY_JITTER)

                    logger.warning(
                        "Database locked (attempt %d/%d), retrying in %.2fs: %s",
                        attempt + 1,
                        max_retries,
                        sleep_time,
                        e,
                    )
                    time.sleep(sleep_time)

            raise last_error  # type: ignore

        return wrapper  # type: ignore[return-value]

    return decorator


class DatabaseConnectionPool:
    """Thread-safe connection pool for SQLite"""

    def __init__(self, db_path: Path, pool_size: int = DB_POOL_SIZE):
        self.db_path = db_path
        self.pool_size = pool_size
        self.pool: Queue[sqlite3.Connection] = Queue(maxsize=pool_size)
        self.lock = Lock()
        self.closed = False
        self.created_count = 0

    def _create_connection(self) -> sqlite3.Connection:
        conn = sqlite3.connect(
            str(self.db_path),
            timeout=DB_CONNECT_TIMEOUT,
            check_same_thread=False,  # handed to worker threads by run_in_threadpool
        )
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA synchronous=NORMAL")
        conn.execute("PRAGMA foreign_keys=ON")
        conn.row_factory = sqlite3.Row
        return conn

    def get_connection(self) -> sqlite3.Connection:
        """
        Get connection from pool, creating one when the pool has not filled up yet.

        Raises:
            RuntimeError: If pool closed
        """
        if self.closed:
            raise RuntimeError("Connection pool has been closed")

        try:
            return self.pool.get_nowait()
        except Empty:
            pass

        with self.lock:
            if self.created_count < self.pool_size:
                self.created_count += 1
                return self._create_connection()

        try:
            return self.pool.get(block=True, timeout=DB_POOL_TIMEOUT)
        except Empty:
            counter("database.pool_exhausted")
            logger.error("Connection pool exhausted (pool_size=%d)", self.pool_size)
            raise RuntimeError(
                f"Database connection pool exhausted. pool_size={self.pool_size}"
            ) from None

    def return_connection(self, conn: sqlite3.Connection) -> None:
        if self.closed:
            conn.close()
            return

        try:
            self.pool.put_nowait(conn)
        except Full:
            logger.warning("Failed to return connection to pool (pool full), closing")
            conn.close()

    def close_all(self) -> None:
        """
        Close all pooled connections

        Side Effects:
            - Sets self.closed flag to True
            - Closes all database connections in pool
        """
        self.closed = True
        while not self.pool.empty():
            try:
                self.pool.get_nowait().close()
            except Empty:
                break


def get_db_path() -> Path:
    """
    Get database path (environment-aware)

    Checks OFFICEHUB_DB_PATH environment variable first,
    falls back to default location.
    """
    if env_path := os.getenv("OFFICEHUB_DB_PATH"):
        return Path(env_path)

    return DB_PATH


class Database:
    """Pooled SQLite database bound to one file."""

    def __init__(self, db_path: Path | str | None = None, pool_size: int = DB_POOL_SIZE):
        self.db_path = Path(db_path) if db_path is not None else get_db_path()
        self._pool = DatabaseConnectionPool(self.db_path, pool_size=pool_size)

    def initialize(self) -> None:
        """Create tables if missing (idempotent)."""
        from officehub.infrastructure.database_schema import init_database

        init_database(self.db_path)

    def validate_schema(self) -> bool:
        """
        Raises:
            ValueError: If tables are missing
        """
        from officehub.infrastructure.database_schema import validate_schema

        with self.connection() as conn:
            return validate_schema(conn)

    @contextmanager
    def connection(self) -> Generator[sqlite3.Connection, None, None]:
        """
        Get pooled database connection (context manager)

        Raises:
            FileNotFoundError: If database doesn't exist
        """
        if not self.db_path.exists():
            raise FileNotFoundError(f"Database not found: {self.db_path}")

        conn = self._pool.get_connection()
        try:
            yield conn
        finally:
            self._pool.return_connection(conn)

    @contextmanager
    def transaction(self) -> Generator[sqlite3.Connection, None, None]:
        """
        Context manager for database transactions

        Automatically commits on success, rolls back on error.
        """
        with self.connection() as conn:
            try:
                yield conn
                conn.commit()
            except Exception:
                conn.rollback()
                raise

    def pool_stats(self) -> dict[str, Any]:
        """
        Get connection pool health metrics

        Returns:
            dict with pool size, available connections, and usage stats
        """
        pool = self._pool
        available = pool.pool.qsize()
        in_use = pool.created_count - available
        usage_percent = (in_use / pool.pool_size) * 100 if pool.pool_size > 0 else 0

        return {
            "pool_size": pool.pool_size,
            "created": pool.created_count,
            "available": available,
            "in_use": in_use,
            "usage_percent": round(usage_percent, 1),
            "closed": pool.closed,
        }

    def close(self) -> None:
        self._pool.close_all()
