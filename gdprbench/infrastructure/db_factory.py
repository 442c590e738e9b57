"""
Database connection factory utilities for the GDPR workload benchmark.

Provides centralized management of PostgreSQL connections and pools with
proper lifecycle management. The PoolManager singleton keeps one pool per DSN
and closes them all on application exit.

Includes retry logic for transient connection failures using tenacity.
"""

from __future__ import annotations

import atexit
import threading
from typing import Dict, Optional

import psycopg
from psycopg import Connection
from psycopg_pool import ConnectionPool
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from gdprbench.config import get_settings
from gdprbench.utils.logging import get_logger

log = get_logger(__name__)


class PoolManager:
    """
    Thread-safe singleton for managing database connection pools.

    Handles lifecycle management with automatic cleanup via atexit hook.
    """

    _instance: Optional["PoolManager"] = None
    _lock = threading.Lock()

    def __new__(cls) -> "PoolManager":
        """Create or return the singleton instance."""
        with cls._lock:
            if cls._instance is None:
                cls._instance = super().__new__(cls)
                cls._instance._pools: Dict[str, ConnectionPool] = {}
                atexit.register(cls._instance.close_all)
            return cls._instance

    def get_pool(
        self, dsn: Optional[str] = None, min_size: int = 1, max_size: Optional[int] = None
    ) -> ConnectionPool:
        """
        Get or create the connection pool for ``dsn``.

        Parameters
        ----------
        dsn : str, optional
            Connection string. Defaults to the one built from settings.
        min_size : int
            Minimum number of idle connections to keep.
        max_size : int, optional
            Maximum total connections in the pool. Defaults to
            ``DB_POOL_MAX_SIZE``.

        Returns
        -------
        ConnectionPool
            The managed pool instance.
        """
        settings = get_settings()
        conninfo = dsn or settings.dsn
        with self._lock:
            pool = self._pools.get(conninfo)
            if pool is None:
                pool = ConnectionPool(
                    conninfo=conninfo,
                    min_size=min_size,
                    max_size=max(max_size or settings.db_pool_max_size, min_size),
                    open=True,
                )
                self._pools[conninfo] = pool
            return pool

    def close_pool(self, dsn: Optional[str] = None) -> None:
        conninfo = dsn or get_settings().dsn
        with self._lock:
            pool = self._pools.pop(conninfo, None)
        if pool is not None:
            pool.close()

    def close_all(self) -> None:
        """
        Close all managed pools and release resources.

        This is called automatically on exit via atexit hook.
        """
        with self._lock:
            pools = list(self._pools.values())
            self._pools.clear()
        for pool in pools:
            try:
                pool.close()
            except psycopg.Error as exc:
                log.warning(f"Failed to close connection pool: {exc}")


def _dsn(dsn: Optional[str] = None) -> str:
    return dsn or get_settings().dsn


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type((psycopg.OperationalError, psycopg.InterfaceError)),
    reraise=True,
)
def get_sync_connection(dsn: Optional[str] = None) -> Connection:
    """
    Acquire a dedicated connection with automatic retry.

    Retries up to 3 times with exponential backoff for transient connection
    errors. Used for one-off work such as schema creation; prefer the pool
    for repeated use.

    Raises
    ------
    psycopg.OperationalError
        If connection fails after all retry attempts.
    """
    return psycopg.connect(_dsn(dsn))


def get_sync_pool(
    dsn: Optional[str] = None, min_size: int = 1, max_size: Optional[int] = None
) -> ConnectionPool:
    """
    Get or create a connection pool via PoolManager.
    """
    return PoolManager().get_pool(dsn=dsn, min_size=min_size, max_size=max_size)


__all__ = [
    "PoolManager",
    "get_sync_connection",
    "get_sync_pool",
]
