"""
Integrity verification of records read back from a backend.
"""

from __future__ import annotations

import time
from typing import Mapping, Optional

from gdprbench.domain.models import Status
from gdprbench.measurements import VERIFY, Measurements
from gdprbench.workload.schema import ValueSchema


def verify_row(
    schema: ValueSchema,
    record_index: int,
    cells: Optional[Mapping[str, bytes]],
    measurements: Measurements,
) -> Status:
    """
    Compare ``cells`` with the deterministic values of record ``record_index``.

    Empty data is never valid and yields ``ERROR``; any field whose value
    differs (or whose name is not part of the schema) yields
    ``UNEXPECTED_STATE``; an exact match yields ``OK``. The outcome and the
    time spent are recorded on the ``VERIFY`` channel. Never raises.
    """
    start = time.perf_counter_ns()
    status = Status.OK
    if not cells:
        status = Status.ERROR
    else:
        for name, value in cells.items():
            if name not in schema.field_names:
                status = Status.UNEXPECTED_STATE
                break
            actual = value.encode("utf-8") if isinstance(value, str) else bytes(value)
            if actual != schema.expected_value(record_index, schema.position_of(name)):
                status = Status.UNEXPECTED_STATE
                break
    elapsed_us = (time.perf_counter_ns() - start) // 1000
    measurements.measure(VERIFY, elapsed_us)
    measurements.report_status(VERIFY, status)
    return status


__all__ = ["verify_row"]
