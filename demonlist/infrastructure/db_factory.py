"""
Database connection factory utilities for the demonlist core.

Provides centralized management of the shared PostgreSQL connection pool the
worker pool draws from. The PoolManager singleton ensures the pool is closed on
application exit.

Pooled connections run in autocommit mode: single statements commit on their
own, and anything that must be atomic is wrapped in ``connection.transaction()``.

Dedicated (non-pooled) connections for bootstrap scripts are retried with
tenacity; pooled acquisition is never retried.
"""

from __future__ import annotations

import atexit
import threading
from typing import Optional

import psycopg
from psycopg import Connection
from psycopg_pool import ConnectionPool
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from demonlist.config import build_dsn, get_settings
from demonlist.utils.logging import get_logger

log = get_logger(__name__)


class PoolManager:
    """
    Thread-safe singleton for managing the shared connection pool.

    Handles lifecycle management with automatic cleanup via atexit hook.
    """

    _instance: Optional["PoolManager"] = None
    _lock = threading.Lock()

    def __new__(cls) -> "PoolManager":
        """Create or return the singleton instance."""
        with cls._lock:
            if cls._instance is None:
                cls._instance = super().__new__(cls)
                cls._instance._sync_pool: Optional[ConnectionPool] = None
                atexit.register(cls._instance.close_all)
            return cls._instance

    def get_sync_pool(
        self, min_size: Optional[int] = None, max_size: Optional[int] = None
    ) -> ConnectionPool:
        """
        Get or create the synchronous connection pool.

        Parameters
        ----------
        min_size : int, optional
            Minimum number of idle connections to keep. Defaults to settings.
        max_size : int, optional
            Maximum total connections in the pool. Defaults to settings.

        Returns
        -------
        ConnectionPool
            The managed pool instance.
        """
        with self._lock:
            if self._sync_pool is None:
                settings = get_settings()
                self._sync_pool = ConnectionPool(
                    conninfo=build_dsn(settings),
                    min_size=min_size or settings.pool_min_size,
                    max_size=max_size or settings.pool_max_size,
                    timeout=settings.pool_timeout_seconds,
                    kwargs={"autocommit": True},
                    open=True,
                )
                log.info(
                    "Connection pool opened",
                    extra={
                        "min_size": self._sync_pool.min_size,
                        "max_size": self._sync_pool.max_size,
                    },
                )
            return self._sync_pool

    def close_all(self) -> None:
        """
        Close the managed pool and release resources.

        This is called automatically on exit via atexit hook.
        """
        with self._lock:
            if self._sync_pool is not None:
                try:
                    self._sync_pool.close()
                except psycopg.Error:
                    log.warning("Failed to close connection pool cleanly", exc_info=True)
                finally:
                    self._sync_pool = None


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type((psycopg.OperationalError, psycopg.InterfaceError)),
    reraise=True,
)
def get_sync_connection(dsn: Optional[str] = None) -> Connection:
    """
    Acquire a dedicated synchronous connection with automatic retry.

    Retries up to 3 times with exponential backoff for transient connection errors.
    Use this for bootstrap scripts (schema setup, seeding); commands always go
    through the pool.

    Returns
    -------
    Connection
        A new psycopg connection instance.

    Raises
    ------
    psycopg.OperationalError
        If connection fails after all retry attempts.
    """
    return psycopg.connect(dsn or build_dsn())


def get_sync_pool(min_size: Optional[int] = None, max_size: Optional[int] = None) -> ConnectionPool:
    """
    Get or create the shared connection pool via PoolManager.
    """
    manager = PoolManager()
    return manager.get_sync_pool(min_size=min_size, max_size=max_size)


__all__ = [
    "PoolManager",
    "get_sync_connection",
    "get_sync_pool",
]
