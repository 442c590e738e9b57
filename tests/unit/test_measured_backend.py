from __future__ import annotations

import time

from gdprbench.backends.measured import MeasuredBackend
from gdprbench.backends.memory import MemoryBackend
from gdprbench.domain.models import KEY_PATTERN, Status
from gdprbench.measurements import INTENDED_SUFFIX, Measurements

TABLE = "usertable"


class _BrokenBackend(MemoryBackend):
    def read(self, table, key, fields=None):
        raise ConnectionError("socket closed")

    def update(self, table, key, values):
        raise ConnectionError("socket closed")


def test_calls_are_timed_and_counted_per_operation(measurements: Measurements) -> None:
    backend = MeasuredBackend(MemoryBackend(), measurements)

    backend.insert_with_expiry(TABLE, "key1", {"PUR": b"purpose1"}, 60)
    backend.read(TABLE, "key1")
    backend.read(TABLE, "missing")
    backend.read_by_metadata(TABLE, 0, "purpose1", KEY_PATTERN)
    backend.read_log(TABLE, 5)
    backend.verify_expiry_compliance(TABLE, 1)

    assert measurements.count("INSERT") == 1
    assert measurements.count("READ") == 2
    assert measurements.count("READ" + INTENDED_SUFFIX) == 2
    assert measurements.status_counts("READ") == {"OK": 1, "NOT_FOUND": 1}
    assert measurements.count("READ-META") == 1
    assert measurements.count("READ-LOG") == 1
    assert measurements.count("VERIFY-TTL") == 1


def test_results_pass_through_unchanged(measurements: Measurements) -> None:
    inner = MemoryBackend()
    backend = MeasuredBackend(inner, measurements)
    backend.insert_with_expiry(TABLE, "key1", {"Data": b"abc"}, 60)

    assert backend.read(TABLE, "key1") == inner.read(TABLE, "key1")
    assert backend.name == "memory"


def test_adapter_exceptions_become_error_status(measurements: Measurements) -> None:
    backend = MeasuredBackend(_BrokenBackend(), measurements)

    assert backend.read(TABLE, "key1") == (Status.ERROR, {})
    assert backend.update(TABLE, "key1", {"Data": b"x"}) is Status.ERROR
    assert measurements.status_counts("READ") == {"ERROR": 1}
    assert measurements.status_counts("UPDATE") == {"ERROR": 1}


def test_intended_start_in_the_past_shows_up_as_extra_latency(measurements: Measurements) -> None:
    backend = MeasuredBackend(MemoryBackend(), measurements)

    measurements.set_intended_start_time_ns(time.perf_counter_ns() - 5_000_000)
    backend.scan(TABLE, "key", 1)

    summary = measurements.summary()
    assert summary["SCAN" + INTENDED_SUFFIX]["min_us"] >= 5_000
    assert summary["SCAN"]["min_us"] < summary["SCAN" + INTENDED_SUFFIX]["min_us"]
