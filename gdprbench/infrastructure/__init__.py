"""
Infrastructure package for the GDPR workload benchmark.

Centralizes database connectivity concerns (connection factory, pooling).
Keep this layer focused on I/O and resource management, decoupled from
workload and driver logic.
"""

from gdprbench.infrastructure.db_factory import PoolManager, get_sync_connection, get_sync_pool

__all__ = [
    "PoolManager",
    "get_sync_connection",
    "get_sync_pool",
]
