"""
Exception types raised by the GDPR workload benchmark.

Configuration problems are fatal and surface before any operation runs.
Per-operation backend failures are never raised; they travel as `Status`
values and end up in the measurements.
"""

from __future__ import annotations


class WorkloadError(Exception):
    """Base class for workload engine errors."""


class WorkloadConfigError(WorkloadError, ValueError):
    """Invalid or inconsistent workload configuration."""


class InsertionInterrupted(WorkloadError):
    """A stop was requested while an insert was waiting to retry."""


class LoadPhaseError(WorkloadError):
    """A load-phase insert was abandoned under the strict failure policy."""


__all__ = ["InsertionInterrupted", "LoadPhaseError", "WorkloadConfigError", "WorkloadError"]
