"""
Driver loop: runs a workload phase on worker threads, profiles it and persists results.

Usage (example from CLI):
    from gdprbench.driver import RunConfig, run_phase

    result = run_phase(workload, backend, RunConfig(phase="run", threads=8))
    print(result["throughput_ops_per_sec"])

Outputs are saved to `results/` by default:
- `results/latest.json` (last phase)
- `results/<phase>-<timestamp>.json` (timestamped archive)
"""

from __future__ import annotations

import json
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

from gdprbench.backends.abstract import Backend
from gdprbench.backends.measured import MeasuredBackend
from gdprbench.errors import LoadPhaseError, WorkloadConfigError
from gdprbench.measurements import Measurements
from gdprbench.utils.logging import get_logger
from gdprbench.utils.profiler import ProfileStats, profile_block
from gdprbench.workload.abstract import Workload

log = get_logger(__name__)

Phase = Literal["load", "run"]
FailurePolicy = Literal["tolerant", "strict"]


@dataclass
class RunConfig:
    """
    How to drive one phase.

    Attributes
    ----------
    phase : {"load", "run"}
        ``load`` calls ``load_insert``; ``run`` calls ``transact``.
    threads : int
        Number of worker threads sharing the workload instance.
    operation_count : int, optional
        Total calls across all threads. Defaults to the workload's insert
        count (load) or operation count (run).
    target_ops_per_sec : float, optional
        Overall throughput cap. Each thread gets an equal share.
    max_execution_time : float, optional
        Seconds after which workers stop, whatever is left.
    failure_policy : {"tolerant", "strict"}
        On a failed load insert, ``tolerant`` counts it and continues;
        ``strict`` stops every worker and raises `LoadPhaseError`.
    persist : bool
        Whether to write the result JSON to ``results_dir``.
    """

    phase: Phase = "run"
    threads: int = 1
    operation_count: Optional[int] = None
    target_ops_per_sec: Optional[float] = None
    max_execution_time: Optional[float] = None
    failure_policy: FailurePolicy = "tolerant"
    persist: bool = True
    results_dir: str = "results"

    def __post_init__(self) -> None:
        if self.phase not in ("load", "run"):
            raise WorkloadConfigError(f"Unknown phase '{self.phase}'")
        if self.threads < 1:
            raise WorkloadConfigError("threads must be at least 1")
        if self.failure_policy not in ("tolerant", "strict"):
            raise WorkloadConfigError(f"Unknown failure policy '{self.failure_policy}'")
        if self.target_ops_per_sec is not None and self.target_ops_per_sec <= 0:
            raise WorkloadConfigError("target_ops_per_sec must be positive")
        if self.operation_count is not None and self.operation_count < 0:
            raise WorkloadConfigError("operation_count must not be negative")


@dataclass
class _WorkerResult:
    operations: int = 0
    failures: int = 0


def split_operations(total: int, threads: int) -> List[int]:
    """Share ``total`` operations between ``threads``; the first threads take the remainder."""
    base, remainder = divmod(total, threads)
    return [base + (1 if i < remainder else 0) for i in range(threads)]


def _round_float(value: float, decimals: int = 2) -> float:
    """Round a float to specified decimal places for human-readable output."""
    return round(value, decimals)


class _PhaseRunner:
    def __init__(
        self,
        workload: Workload,
        backend: Backend,
        config: RunConfig,
        measurements: Measurements,
    ) -> None:
        self.workload = workload
        self.backend = backend
        self.config = config
        self.measurements = measurements
        self.stop = threading.Event()
        self.deadline: Optional[float] = None
        self.abandoned = threading.Event()

    def _call(self) -> bool:
        if self.config.phase == "load":
            return self.workload.load_insert(self.backend)
        return self.workload.transact(self.backend)

    def _expired(self) -> bool:
        return self.deadline is not None and time.monotonic() >= self.deadline

    def request_stop(self) -> None:
        self.stop.set()
        self.workload.request_stop()

    def worker(self, thread_id: int, operations: int) -> _WorkerResult:
        result = _WorkerResult()
        interval_ns = 0
        if self.config.target_ops_per_sec:
            per_thread = self.config.target_ops_per_sec / self.config.threads
            interval_ns = int(1_000_000_000 / per_thread)
        start_ns = time.perf_counter_ns()
        try:
            for i in range(operations):
                if self.stop.is_set() or self._expired():
                    break
                if interval_ns:
                    intended = start_ns + i * interval_ns
                    delay_ns = intended - time.perf_counter_ns()
                    if delay_ns > 0 and self.stop.wait(delay_ns / 1_000_000_000):
                        break
                    self.measurements.set_intended_start_time_ns(intended)
                ok = self._call()
                result.operations += 1
                if ok:
                    continue
                result.failures += 1
                if self.config.phase == "load" and self.config.failure_policy == "strict":
                    log.error(
                        "Load insert failed under strict policy; stopping all workers",
                        extra={"worker": thread_id},
                    )
                    self.abandoned.set()
                    self.request_stop()
                    break
        finally:
            self.measurements.set_intended_start_time_ns(None)
        return result

    def run(self, total: int) -> List[_WorkerResult]:
        if self.config.max_execution_time:
            self.deadline = time.monotonic() + self.config.max_execution_time
        shares = split_operations(total, self.config.threads)
        with ThreadPoolExecutor(
            max_workers=self.config.threads, thread_name_prefix=f"gdpr-{self.config.phase}"
        ) as pool:
            futures = [pool.submit(self.worker, i, ops) for i, ops in enumerate(shares)]
            try:
                return [future.result() for future in futures]
            except BaseException:
                self.request_stop()
                raise


def _persist_results(payload: dict, results_dir: Path, phase: str) -> None:
    results_dir.mkdir(parents=True, exist_ok=True)
    latest_path = results_dir / "latest.json"
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    archive_path = results_dir / f"{phase}-{timestamp}.json"

    with latest_path.open("w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, sort_keys=True)
    with archive_path.open("w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, sort_keys=True)

    log.info("Results persisted", extra={"latest": str(latest_path), "archive": str(archive_path)})


def _merge_result(
    config: RunConfig, workers: List[_WorkerResult], stats: ProfileStats, measurements: Measurements
) -> Dict[str, Any]:
    """Combine worker counts, profiler stats and the measurement summary."""
    operations = sum(w.operations for w in workers)
    failures = sum(w.failures for w in workers)
    duration = stats.duration_seconds
    return {
        "phase": config.phase,
        "threads": config.threads,
        "operations": operations,
        "failures": failures,
        "duration_seconds": _round_float(duration),
        "throughput_ops_per_sec": _round_float(operations / duration) if duration else 0.0,
        "peak_rss_bytes": stats.peak_rss_bytes,
        "cpu_percent": _round_float(stats.cpu_percent, 1) if stats.cpu_percent else None,
        "measurements": measurements.summary(),
    }


def run_phase(
    workload: Workload,
    backend: Backend,
    config: RunConfig,
    measurements: Optional[Measurements] = None,
) -> Dict[str, Any]:
    """
    Drive one phase of ``workload`` against ``backend``.

    The backend is wrapped in a `MeasuredBackend` unless it already is one.
    A ``KeyboardInterrupt`` in the calling thread stops the workers before it
    propagates.

    Returns
    -------
    dict
        Operation and failure counts, duration, throughput, profiler stats and
        the per-operation measurement summary.

    Raises
    ------
    LoadPhaseError
        If a load insert failed under the strict failure policy.
    """
    measurements = measurements or getattr(workload, "measurements", None) or Measurements()
    if not isinstance(backend, MeasuredBackend):
        backend = MeasuredBackend(backend, measurements)

    total = config.operation_count
    if total is None:
        settings = workload.settings
        total = settings.effective_insert_count if config.phase == "load" else settings.operation_count

    runner = _PhaseRunner(workload, backend, config, measurements)
    log.info(
        f"[PHASE START] {config.phase}",
        extra={"phase": config.phase, "threads": config.threads, "operations": total},
    )
    with profile_block(config.phase) as stats:
        workers = runner.run(total)

    result = _merge_result(config, workers, stats, measurements)
    if runner.abandoned.is_set():
        raise LoadPhaseError(
            f"Load phase aborted after {result['failures']} failed insert(s) "
            f"({result['operations']} attempted)"
        )

    log.info(
        f"[PHASE COMPLETE] {config.phase}",
        extra={
            "phase": config.phase,
            "operations": result["operations"],
            "failures": result["failures"],
            "duration": result["duration_seconds"],
            "throughput_ops": result["throughput_ops_per_sec"],
        },
    )

    if config.persist:
        payload = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "config": asdict(config),
            "result": result,
        }
        _persist_results(payload, Path(config.results_dir), config.phase)
    return result


__all__ = ["RunConfig", "run_phase", "split_operations"]
