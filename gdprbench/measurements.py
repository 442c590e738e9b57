"""
Thread-safe latency and status collection for benchmark phases.

Every backend call is reported under an operation name (``READ``,
``UPDATE-META``, ...) together with its latency in microseconds and its
`Status`. The ``VERIFY`` channel carries integrity verification outcomes.

Two latency series are kept per operation:

- raw: measured from the moment the operation actually started;
- intended: measured from the moment the throttled driver intended it to
  start, so queueing delay behind a slow backend shows up in the numbers.

The intended start time is thread-local. The driver sets it before each
operation; when it is unset, the current time is used.
"""

from __future__ import annotations

import math
import threading
import time
from collections import Counter, defaultdict
from typing import Any, Dict, List, Optional

from gdprbench.domain.models import Status

VERIFY = "VERIFY"
INTENDED_SUFFIX = "-INTENDED"
READ_MODIFY_WRITE = "READ-MODIFY-WRITE"

PERCENTILES = (50.0, 95.0, 99.0, 99.9)


def nearest_rank(sorted_values: List[int], percentile: float) -> int:
    """
    Nearest-rank percentile of an ascending list.

    Raises
    ------
    ValueError
        If ``sorted_values`` is empty.
    """
    if not sorted_values:
        raise ValueError("Cannot compute a percentile of no samples")
    rank = math.ceil(percentile / 100.0 * len(sorted_values))
    return sorted_values[max(rank, 1) - 1]


class Measurements:
    """
    Collects latency samples and status counts per operation name.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._latencies: Dict[str, List[int]] = defaultdict(list)
        self._statuses: Dict[str, Counter] = defaultdict(Counter)
        self._local = threading.local()

    def set_intended_start_time_ns(self, value: Optional[int]) -> None:
        self._local.intended_start_ns = value

    def get_intended_start_time_ns(self) -> int:
        value = getattr(self._local, "intended_start_ns", None)
        if value is None:
            return time.perf_counter_ns()
        return value

    def measure(self, name: str, latency_us: int) -> None:
        with self._lock:
            self._latencies[name].append(latency_us)

    def measure_intended(self, name: str, latency_us: int) -> None:
        self.measure(name + INTENDED_SUFFIX, latency_us)

    def report_status(self, name: str, status: Status) -> None:
        with self._lock:
            self._statuses[name][status.value] += 1

    def operations(self) -> List[str]:
        with self._lock:
            return sorted(set(self._latencies) | set(self._statuses))

    def status_counts(self, name: str) -> Dict[str, int]:
        with self._lock:
            return dict(self._statuses.get(name, {}))

    def count(self, name: str) -> int:
        with self._lock:
            return len(self._latencies.get(name, ()))

    def summary(self) -> Dict[str, Dict[str, Any]]:
        """
        Per-operation summary.

        Returns
        -------
        dict
            ``{name: {"count", "mean_us", "min_us", "max_us", "p50_us",
            "p95_us", "p99_us", "p99.9_us", "statuses"}}``. Latency keys are
            absent for channels that only reported statuses.
        """
        with self._lock:
            latencies = {name: sorted(values) for name, values in self._latencies.items()}
            statuses = {name: dict(counts) for name, counts in self._statuses.items()}

        summary: Dict[str, Dict[str, Any]] = {}
        for name in sorted(set(latencies) | set(statuses)):
            entry: Dict[str, Any] = {"count": 0, "statuses": statuses.get(name, {})}
            values = latencies.get(name)
            if values:
                entry["count"] = len(values)
                entry["mean_us"] = round(sum(values) / len(values), 2)
                entry["min_us"] = values[0]
                entry["max_us"] = values[-1]
                for percentile in PERCENTILES:
                    entry[f"p{percentile:g}_us"] = nearest_rank(values, percentile)
            elif entry["statuses"]:
                entry["count"] = sum(entry["statuses"].values())
            summary[name] = entry
        return summary

    def reset(self) -> None:
        with self._lock:
            self._latencies.clear()
            self._statuses.clear()


__all__ = [
    "INTENDED_SUFFIX",
    "Measurements",
    "PERCENTILES",
    "READ_MODIFY_WRITE",
    "VERIFY",
    "nearest_rank",
]
