"""
Utilities package for the GDPR workload benchmark.

Exports shared helpers for logging, profiling, and hashing.
Keep this package lightweight and free of domain-specific logic.
"""

from gdprbench.utils.hashing import fnv1a_64, fnv_hash64, java_string_hash
from gdprbench.utils.logging import configure_logging, get_logger
from gdprbench.utils.profiler import ProfileStats, profile_block

__all__ = [
    "configure_logging",
    "fnv1a_64",
    "fnv_hash64",
    "get_logger",
    "java_string_hash",
    "ProfileStats",
    "profile_block",
]
