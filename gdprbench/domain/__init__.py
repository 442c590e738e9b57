"""
Domain package for the GDPR workload benchmark.

Exports the status, operation and field-layout definitions shared by the
workload engine, backends and measurements. Keep this package focused on data
definitions.
"""

from gdprbench.domain.models import (
    DATA_FIELD_NAME,
    KEY_PATTERN,
    KEY_PREFIX,
    METADATA_FIELD_COUNT,
    METADATA_FIELD_NAMES,
    TTL_POOL,
    LogEntry,
    MetadataField,
    OperationKind,
    Status,
    metadata_field_name,
)

__all__ = [
    "DATA_FIELD_NAME",
    "KEY_PATTERN",
    "KEY_PREFIX",
    "LogEntry",
    "METADATA_FIELD_COUNT",
    "METADATA_FIELD_NAMES",
    "MetadataField",
    "OperationKind",
    "Status",
    "TTL_POOL",
    "metadata_field_name",
]
