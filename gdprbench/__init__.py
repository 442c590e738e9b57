"""
GDPR workload benchmark - YCSB-style load generator with GDPR metadata operations.

Records carry nine semantic metadata fields (purpose, time-to-live, user,
objective, decision, ACL, shared-with, source, category) next to opaque data.
The workload engine mixes classic key-value operations with operations scoped
by metadata (read/update/delete every record of a purpose or a user), plus
TTL compliance checks and operation log replay, against a pluggable backend:

- In-memory backend for tests and dry runs
- PostgreSQL backend (psycopg 3, JSONB records)

The package is designed for multi-threaded drivers: the engine owns no
threads, and all shared state is guarded by locks.
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from gdprbench.backends import Backend, MeasuredBackend, MemoryBackend, create_backend
from gdprbench.config import Settings, WorkloadSettings, get_settings, load_workload_settings
from gdprbench.domain.models import OperationKind, Status
from gdprbench.driver import RunConfig, run_phase
from gdprbench.errors import LoadPhaseError, WorkloadConfigError, WorkloadError
from gdprbench.measurements import Measurements
from gdprbench.utils.logging import configure_logging, get_logger
from gdprbench.workload import GDPRWorkload, Workload

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "WorkloadSettings",
    "get_settings",
    "load_workload_settings",
    # Workload
    "GDPRWorkload",
    "OperationKind",
    "Status",
    "Workload",
    # Backends
    "Backend",
    "MeasuredBackend",
    "MemoryBackend",
    "create_backend",
    # Driver
    "Measurements",
    "RunConfig",
    "run_phase",
    # Errors
    "LoadPhaseError",
    "WorkloadConfigError",
    "WorkloadError",
    # Logging
    "configure_logging",
    "get_logger",
]
