from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Dict, List, Optional

import typer

from gdprbench.backends import available_backends, create_backend
from gdprbench.config import WorkloadSettings, get_settings, load_workload_settings
from gdprbench.driver import RunConfig, run_phase
from gdprbench.errors import LoadPhaseError, WorkloadConfigError
from gdprbench.measurements import Measurements
from gdprbench.reporter import print_results
from gdprbench.utils.logging import configure_logging
from gdprbench.workload import GDPRWorkload, available_presets, get_preset

app = typer.Typer(help="GDPR workload benchmark CLI.")


def _parse_params(params: List[str]) -> Dict[str, str]:
    parsed: Dict[str, str] = {}
    for item in params:
        name, sep, value = item.partition("=")
        if not sep or not name.strip():
            raise typer.BadParameter(f"Expected key=value, got '{item}'", param_hint="-p")
        parsed[name.strip()] = value.strip()
    return parsed


def _workload_settings(
    properties: Optional[Path], params: List[str], preset: Optional[str]
) -> WorkloadSettings:
    defaults = dict(get_preset(preset).properties) if preset else None
    return load_workload_settings(properties, overrides=_parse_params(params), defaults=defaults)


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    workload = WorkloadSettings()
    typer.echo(
        f"DB={settings.db_user}@{settings.db_host}:{settings.db_port}/{settings.db_name} | "
        f"backend={settings.benchmark_backend} threads={settings.benchmark_threads} "
        f"target={settings.benchmark_target_ops or 'unthrottled'}"
    )
    typer.echo(
        f"table={workload.table} fieldcount={workload.field_count} "
        f"recordcount={workload.record_count} operationcount={workload.operation_count} "
        f"requestdistribution={workload.request_distribution}"
    )


@app.command()
def presets() -> None:
    """
    List the built-in actor workloads.
    """
    for name in available_presets():
        typer.echo(f"{name}: {get_preset(name).description}")


def _execute(
    phases: List[str],
    properties: Optional[Path],
    params: List[str],
    preset: Optional[str],
    threads: Optional[int],
    target: Optional[float],
    backend_name: Optional[str],
    strict: bool,
    json_logs: bool,
    json_output: bool,
    max_time: Optional[float],
) -> None:
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=json_logs or settings.log_json)

    try:
        workload_settings = _workload_settings(properties, params, preset)
        measurements = Measurements()
        workload = GDPRWorkload(workload_settings, measurements=measurements)
        backend = create_backend(backend_name or settings.benchmark_backend)
    except (WorkloadConfigError, ValueError) as exc:
        typer.echo(f"Configuration error: {exc}", err=True)
        raise typer.Exit(code=2) from exc

    try:
        for phase in phases:
            measurements.reset()
            config = RunConfig(
                phase=phase,  # type: ignore[arg-type]
                threads=threads if threads is not None else settings.benchmark_threads,
                target_ops_per_sec=target or settings.benchmark_target_ops,
                max_execution_time=max_time,
                failure_policy="strict" if strict else "tolerant",
                results_dir=settings.benchmark_results_dir,
            )
            typer.echo(
                f"Running phase='{phase}' on backend='{backend.name}' "
                f"(threads={config.threads}, target={config.target_ops_per_sec or 'unthrottled'})."
            )
            result = run_phase(workload, backend, config, measurements)
            if json_output:
                typer.echo(json.dumps(result, indent=2))
            else:
                print_results(result)
    except LoadPhaseError as exc:
        typer.echo(f"Load failed: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    except WorkloadConfigError as exc:
        typer.echo(f"Configuration error: {exc}", err=True)
        raise typer.Exit(code=2) from exc
    finally:
        backend.close()


_PROPERTIES = typer.Option(None, "--properties", "-P", help="Workload properties file.")
_PARAMS = typer.Option([], "--param", "-p", help="Workload property override, key=value (repeatable).")
_PRESET = typer.Option(None, "--preset", help="Built-in actor workload (see `presets`).")
_THREADS = typer.Option(None, "--threads", "-t", help="Worker threads (default from settings).")
_TARGET = typer.Option(None, "--target", help="Target throughput in ops/s (default unthrottled).")
_BACKEND = typer.Option(
    None, "--backend", "-b", help=f"Backend: {', '.join(available_backends())} (default from settings)."
)
_JSON_LOGS = typer.Option(False, "--json-logs", help="Emit logs as JSON.")
_JSON_OUTPUT = typer.Option(False, "--json", help="Print results as JSON instead of a table.")
_MAX_TIME = typer.Option(None, "--max-time", help="Stop the phase after this many seconds.")


@app.command()
def load(
    properties: Optional[Path] = _PROPERTIES,
    params: List[str] = _PARAMS,
    preset: Optional[str] = _PRESET,
    threads: Optional[int] = _THREADS,
    target: Optional[float] = _TARGET,
    backend: Optional[str] = _BACKEND,
    strict: bool = typer.Option(False, "--strict", help="Abort the load on the first failed insert."),
    json_logs: bool = _JSON_LOGS,
    json_output: bool = _JSON_OUTPUT,
    max_time: Optional[float] = _MAX_TIME,
) -> None:
    """
    Load the initial records.
    """
    _execute(
        ["load"], properties, params, preset, threads, target, backend, strict, json_logs,
        json_output, max_time,
    )


@app.command()
def run(
    properties: Optional[Path] = _PROPERTIES,
    params: List[str] = _PARAMS,
    preset: Optional[str] = _PRESET,
    threads: Optional[int] = _THREADS,
    target: Optional[float] = _TARGET,
    backend: Optional[str] = _BACKEND,
    with_load: bool = typer.Option(
        False, "--with-load", help="Run the load phase first (needed for the memory backend)."
    ),
    strict: bool = typer.Option(False, "--strict", help="Abort the load on the first failed insert."),
    json_logs: bool = _JSON_LOGS,
    json_output: bool = _JSON_OUTPUT,
    max_time: Optional[float] = _MAX_TIME,
) -> None:
    """
    Run the transaction phase.
    """
    phases = ["load", "run"] if with_load else ["run"]
    _execute(
        phases, properties, params, preset, threads, target, backend, strict, json_logs,
        json_output, max_time,
    )


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
