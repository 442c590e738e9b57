"""
GDPR workload engine.

`GDPRWorkload` turns workload settings into a stream of backend calls:

- ``load_insert`` inserts the next record of the load phase, retrying a
  failed insert with jittered backoff (tenacity) up to the configured limit;
- ``transact`` draws one operation kind from the operation mix and runs its
  handler against a record that is known to exist.

The very first ``transact`` call across all threads runs the one-shot
startup calls (TTL compliance check and operation log read). Exactly one
thread performs them; the others wait until they are done.

Usage:
    from gdprbench.workload import GDPRWorkload

    workload = GDPRWorkload(settings, measurements=measurements)
    workload.load_insert(backend)
    workload.transact(backend)
"""

from __future__ import annotations

import random
import threading
import time
from functools import partial
from typing import Callable, Dict, List, Optional

from tenacity import RetryCallState, Retrying, retry_if_result, stop_after_attempt, wait_random

from gdprbench.backends.abstract import Backend, Record
from gdprbench.config import WorkloadSettings
from gdprbench.domain.models import KEY_PATTERN, MetadataField, OperationKind, Status
from gdprbench.errors import InsertionInterrupted, WorkloadError
from gdprbench.measurements import READ_MODIFY_WRITE, Measurements
from gdprbench.utils.logging import get_logger
from gdprbench.workload.abstract import AbstractWorkload
from gdprbench.workload.choosers import (
    KeyChooser,
    build_field_chooser,
    build_field_length_generator,
    build_metadata_chooser,
    build_scan_length_generator,
)
from gdprbench.workload.keyspace import KeySpace
from gdprbench.workload.operations import OperationMix
from gdprbench.workload.schema import ValueSchema
from gdprbench.workload.verification import verify_row

log = get_logger(__name__)

COMPLIANCE_SAMPLE_FRACTION = 0.9

Handler = Callable[[Backend], Status]


class GDPRWorkload(AbstractWorkload):
    """
    YCSB-style workload with GDPR metadata operations.

    Parameters
    ----------
    settings : WorkloadSettings, optional
        If given, `initialize` is called right away.
    measurements : Measurements, optional
        Receives verification outcomes and read-modify-write latencies. Share
        it with the `MeasuredBackend` wrapping the backend.
    rng : random.Random, optional
        Seeded source for the value and key generators (tests).
    """

    name = "gdpr"

    def __init__(
        self,
        settings: Optional[WorkloadSettings] = None,
        measurements: Optional[Measurements] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.measurements = measurements or Measurements()
        self._rng = rng
        self._settings: Optional[WorkloadSettings] = None
        self._stop = threading.Event()
        self._startup_lock = threading.Lock()
        self._started = False

        self._handlers: Dict[OperationKind, Handler] = {
            OperationKind.READ: self._do_read,
            OperationKind.READMETAPURPOSE: partial(self._do_read_meta, field=MetadataField.PURPOSE),
            OperationKind.READMETAUSER: partial(self._do_read_meta, field=MetadataField.USER),
            OperationKind.UPDATE: self._do_update,
            OperationKind.UPDATEMETAPURPOSE: partial(
                self._do_update_meta, field=MetadataField.PURPOSE
            ),
            OperationKind.UPDATEMETAUSER: partial(self._do_update_meta, field=MetadataField.USER),
            OperationKind.INSERT: self._do_insert,
            OperationKind.DELETE: self._do_delete,
            OperationKind.DELETEMETAPURPOSE: partial(
                self._do_delete_meta, field=MetadataField.PURPOSE
            ),
            OperationKind.DELETEMETAUSER: partial(self._do_delete_meta, field=MetadataField.USER),
            OperationKind.SCAN: self._do_scan,
            OperationKind.READMODIFYWRITE: self._do_read_modify_write,
        }
        missing = set(OperationKind) - set(self._handlers)
        if missing:
            raise WorkloadError(f"No handler for operation kinds: {sorted(k.value for k in missing)}")

        if settings is not None:
            self.initialize(settings)

    # ------------------------------------------------------------------ lifecycle

    def initialize(self, settings: WorkloadSettings) -> None:
        rng = self._rng
        self.schema = ValueSchema(
            settings,
            build_field_length_generator(settings, rng=rng),
            build_field_chooser(settings, rng=rng),
            rng=rng,
        )
        self.keyspace = KeySpace(
            ordered=settings.insert_order == "ordered",
            zero_padding=settings.zero_padding,
            load_start=settings.insert_start,
            transaction_start=settings.effective_record_count,
        )
        self.field_chooser = build_field_chooser(settings, rng=rng)
        self.scan_length_chooser = build_scan_length_generator(settings, rng=rng)
        self.metadata_chooser = build_metadata_chooser(rng=rng)
        self.key_chooser = KeyChooser.from_settings(settings, self.keyspace, rng=rng)
        self.mix = OperationMix.from_settings(settings, rng=rng)
        self._settings = settings

        log.info(
            "Workload initialized",
            extra={
                "table": settings.table,
                "field_count": settings.field_count,
                "record_count": settings.record_count,
                "insert_start": settings.insert_start,
                "insert_count": settings.effective_insert_count,
                "request_distribution": settings.request_distribution,
                "insert_order": settings.insert_order,
                "data_integrity": settings.data_integrity,
                "operations": {kind.value: weight for kind, weight in self.mix.entries},
            },
        )

    @property
    def settings(self) -> WorkloadSettings:
        if self._settings is None:
            raise WorkloadError("Workload used before initialize()")
        return self._settings

    @property
    def started(self) -> bool:
        return self._started

    def request_stop(self) -> None:
        self._stop.set()

    # ------------------------------------------------------------------ load phase

    def _interruptible_sleep(self, seconds: float) -> None:
        if self._stop.wait(seconds):
            raise InsertionInterrupted("Stop requested during insert backoff")

    @staticmethod
    def _log_retry(key: str) -> Callable[[RetryCallState], None]:
        def before_sleep(retry_state: RetryCallState) -> None:
            status = retry_state.outcome.result() if retry_state.outcome else None
            sleep = retry_state.next_action.sleep if retry_state.next_action else 0.0
            log.warning(
                f"Retrying insertion of {key}",
                extra={
                    "key": key,
                    "attempt": retry_state.attempt_number,
                    "status": getattr(status, "value", None),
                    "sleep_seconds": round(sleep, 3),
                },
            )

        return before_sleep

    def load_insert(self, backend: Backend) -> bool:
        """
        Insert the next load-phase record, retrying on a non-OK status.

        With a retry limit of K, a permanently failing backend sees exactly
        K + 1 attempts. Returns False if the record was abandoned, either
        because the limit was reached or because a stop was requested while
        waiting to retry.
        """
        settings = self.settings
        index = self.keyspace.next_load_index()
        key = self.keyspace.key_for_index(index)
        values = self.schema.build_all_values(index)
        ttl = self.schema.ttl_seconds(index)

        interval = settings.insertion_retry_interval
        retrying = Retrying(
            stop=stop_after_attempt(settings.insertion_retry_limit + 1),
            wait=wait_random(min=0.8 * interval, max=1.2 * interval),
            retry=retry_if_result(lambda status: not status.is_ok),
            sleep=self._interruptible_sleep,
            before_sleep=self._log_retry(key),
            retry_error_callback=lambda retry_state: retry_state.outcome.result(),
        )
        try:
            status = retrying(backend.insert_with_expiry, settings.table, key, values, ttl)
        except InsertionInterrupted:
            log.warning(f"Insertion of {key} interrupted", extra={"key": key})
            return False

        if not status.is_ok:
            log.error(
                f"Error inserting {key}, not retrying any more",
                extra={"key": key, "status": status.value, "retry_limit": settings.insertion_retry_limit},
            )
            return False
        return True

    # ------------------------------------------------------------------ transaction phase

    def _run_startup_calls(self, backend: Backend) -> None:
        if self._started:
            return
        with self._startup_lock:
            if self._started:
                return
            settings = self.settings
            try:
                if settings.check_compliance:
                    sample_count = int(settings.effective_record_count * COMPLIANCE_SAMPLE_FRACTION)
                    status = backend.verify_expiry_compliance(settings.table, sample_count)
                    log.info(
                        "TTL compliance check finished",
                        extra={"sample_count": sample_count, "status": status.value},
                    )
                if settings.read_log:
                    length = self.scan_length_chooser.next_value()
                    status, entries = backend.read_log(settings.table, length)
                    log.info(
                        "Operation log read finished",
                        extra={"length": length, "entries": len(entries), "status": status.value},
                    )
            finally:
                self._started = True

    def transact(self, backend: Backend) -> bool:
        self._run_startup_calls(backend)
        kind = self.mix.next()
        if kind is None:
            return False
        status = self._handlers[kind](backend)
        if not status.is_ok:
            log.debug(f"{kind.value} failed", extra={"operation": kind.value, "status": status.value})
        return True

    def _read_field_filter(self) -> Optional[List[str]]:
        if not self.settings.read_all_fields:
            return [self.schema.field_names[self.field_chooser.next_value()]]
        if self.settings.data_integrity:
            return list(self.schema.field_names)
        return None

    def _write_values(self, record_index: int) -> Record:
        if self.settings.write_all_fields:
            return self.schema.build_all_values(record_index)
        return self.schema.build_one_value(record_index)

    def _do_read(self, backend: Backend) -> Status:
        index = self.key_chooser.next_index()
        key = self.keyspace.key_for_index(index)
        status, _ = backend.read(self.settings.table, key, self._read_field_filter())
        return status

    def _do_read_meta(self, backend: Backend, field: MetadataField) -> Status:
        index = self.key_chooser.next_index()
        condition = self.schema.metadata_value(index, field)
        status, _ = backend.read_by_metadata(self.settings.table, field.value, condition, KEY_PATTERN)
        return status

    def _do_update(self, backend: Backend) -> Status:
        index = self.key_chooser.next_index()
        key = self.keyspace.key_for_index(index)
        return backend.update(self.settings.table, key, self._write_values(index))

    def _do_update_meta(self, backend: Backend, field: MetadataField) -> Status:
        index = self.key_chooser.next_index()
        condition = self.schema.metadata_value(index, field)
        target = self.metadata_chooser.next_value()
        while target == field.value:
            target = self.metadata_chooser.next_value()
        return backend.update_by_metadata(
            self.settings.table,
            field.value,
            condition,
            KEY_PATTERN,
            self.schema.field_names[target],
            self.schema.expected_value(index, target),
        )

    def _do_delete(self, backend: Backend) -> Status:
        index = self.key_chooser.next_index()
        return backend.delete(self.settings.table, self.keyspace.key_for_index(index))

    def _do_delete_meta(self, backend: Backend, field: MetadataField) -> Status:
        index = self.key_chooser.next_index()
        condition = self.schema.metadata_value(index, field)
        return backend.delete_by_metadata(self.settings.table, field.value, condition, KEY_PATTERN)

    def _do_scan(self, backend: Backend) -> Status:
        index = self.key_chooser.next_index()
        start_key = self.keyspace.key_for_index(index)
        length = self.scan_length_chooser.next_value()
        fields = None
        if not self.settings.read_all_fields:
            fields = [self.schema.field_names[self.field_chooser.next_value()]]
        status, _ = backend.scan(self.settings.table, start_key, length, fields)
        return status

    def _do_read_modify_write(self, backend: Backend) -> Status:
        index = self.key_chooser.next_index()
        key = self.keyspace.key_for_index(index)
        fields = self._read_field_filter()
        values = self._write_values(index)

        intended_start = self.measurements.get_intended_start_time_ns()
        start = time.perf_counter_ns()
        read_status, cells = backend.read(self.settings.table, key, fields)
        status = backend.update(self.settings.table, key, values)
        end = time.perf_counter_ns()

        if self.settings.data_integrity:
            verify_row(self.schema, index, cells, self.measurements)

        self.measurements.measure(READ_MODIFY_WRITE, (end - start) // 1000)
        self.measurements.measure_intended(READ_MODIFY_WRITE, (end - intended_start) // 1000)
        return status if read_status.is_ok else read_status

    def _do_insert(self, backend: Backend) -> Status:
        index = self.keyspace.next_insert_index()
        try:
            key = self.keyspace.key_for_index(index)
            values = self.schema.build_all_values(index)
            return backend.insert_with_expiry(
                self.settings.table, key, values, self.schema.ttl_seconds(index)
            )
        finally:
            self.keyspace.acknowledge(index)


__all__ = ["COMPLIANCE_SAMPLE_FRACTION", "GDPRWorkload"]
