"""
Measuring wrapper around any backend.

Every call is timed with ``time.perf_counter_ns`` and reported to a shared
`Measurements` instance under the operation's name, both as raw latency and
as latency from the driver's intended start time. Exceptions escaping the
wrapped adapter are logged and turned into ``Status.ERROR`` so that a broken
adapter cannot kill a worker thread.
"""

from __future__ import annotations

import time
from typing import Any, Callable, List, Optional, Sequence, Tuple

from gdprbench.backends.abstract import AbstractBackend, Backend, Record
from gdprbench.domain.models import LogEntry, Status
from gdprbench.measurements import Measurements
from gdprbench.utils.logging import get_logger

log = get_logger(__name__)


class MeasuredBackend(AbstractBackend):
    """
    Delegate every capability to ``inner`` and record how it went.

    Parameters
    ----------
    inner : Backend
        The adapter doing the real work.
    measurements : Measurements
        Shared collector; usually the same one the workload writes to.
    """

    def __init__(self, inner: Backend, measurements: Measurements) -> None:
        self.inner = inner
        self.measurements = measurements
        self.name = getattr(inner, "name", type(inner).__name__)

    def _call(self, operation: str, default: Any, fn: Callable[..., Any], *args: Any) -> Any:
        intended_start = self.measurements.get_intended_start_time_ns()
        start = time.perf_counter_ns()
        try:
            result = fn(*args)
        except Exception:  # noqa: BLE001 - adapter failures become an ERROR status
            log.exception(f"[BACKEND FAILED] {operation}", extra={"operation": operation})
            result = default
        end = time.perf_counter_ns()

        status = result[0] if isinstance(result, tuple) else result
        self.measurements.measure(operation, (end - start) // 1000)
        self.measurements.measure_intended(operation, (end - intended_start) // 1000)
        self.measurements.report_status(operation, status)
        return result

    def insert_with_expiry(
        self, table: str, key: str, values: Record, ttl_seconds: int
    ) -> Status:
        return self._call(
            "INSERT", Status.ERROR, self.inner.insert_with_expiry, table, key, values, ttl_seconds
        )

    def read(
        self, table: str, key: str, fields: Optional[Sequence[str]] = None
    ) -> Tuple[Status, Record]:
        return self._call("READ", (Status.ERROR, {}), self.inner.read, table, key, fields)

    def read_by_metadata(
        self, table: str, field_position: int, match_value: str, key_prefix: str
    ) -> Tuple[Status, List[Record]]:
        return self._call(
            "READ-META",
            (Status.ERROR, []),
            self.inner.read_by_metadata,
            table,
            field_position,
            match_value,
            key_prefix,
        )

    def update(self, table: str, key: str, values: Record) -> Status:
        return self._call("UPDATE", Status.ERROR, self.inner.update, table, key, values)

    def update_by_metadata(
        self,
        table: str,
        field_position: int,
        match_value: str,
        key_prefix: str,
        target_field: str,
        new_value: bytes,
    ) -> Status:
        return self._call(
            "UPDATE-META",
            Status.ERROR,
            self.inner.update_by_metadata,
            table,
            field_position,
            match_value,
            key_prefix,
            target_field,
            new_value,
        )

    def delete(self, table: str, key: str) -> Status:
        return self._call("DELETE", Status.ERROR, self.inner.delete, table, key)

    def delete_by_metadata(
        self, table: str, field_position: int, match_value: str, key_prefix: str
    ) -> Status:
        return self._call(
            "DELETE-META",
            Status.ERROR,
            self.inner.delete_by_metadata,
            table,
            field_position,
            match_value,
            key_prefix,
        )

    def scan(
        self, table: str, start_key: str, length: int, fields: Optional[Sequence[str]] = None
    ) -> Tuple[Status, List[Record]]:
        return self._call(
            "SCAN", (Status.ERROR, []), self.inner.scan, table, start_key, length, fields
        )

    def read_log(self, table: str, length: int) -> Tuple[Status, List[LogEntry]]:
        return self._call("READ-LOG", (Status.ERROR, []), self.inner.read_log, table, length)

    def verify_expiry_compliance(self, table: str, sample_count: int) -> Status:
        return self._call(
            "VERIFY-TTL", Status.ERROR, self.inner.verify_expiry_compliance, table, sample_count
        )

    def close(self) -> None:
        self.inner.close()


__all__ = ["MeasuredBackend"]
