"""
Workload package for the GDPR benchmark.

Holds the value schema, key space, choosers, operation mix, integrity
verification and the `GDPRWorkload` engine that ties them together.
"""

from gdprbench.workload.abstract import AbstractWorkload, Workload
from gdprbench.workload.engine import GDPRWorkload
from gdprbench.workload.keyspace import KeySpace, build_key_name
from gdprbench.workload.operations import OperationMix
from gdprbench.workload.presets import PRESETS, WorkloadPreset, available_presets, get_preset
from gdprbench.workload.schema import ValueSchema, field_names_for
from gdprbench.workload.verification import verify_row

__all__ = [
    "AbstractWorkload",
    "GDPRWorkload",
    "KeySpace",
    "OperationMix",
    "PRESETS",
    "ValueSchema",
    "Workload",
    "WorkloadPreset",
    "available_presets",
    "build_key_name",
    "field_names_for",
    "get_preset",
    "verify_row",
]
