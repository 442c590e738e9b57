from __future__ import annotations

from gdprbench.domain.models import Status
from gdprbench.measurements import Measurements
from gdprbench.reporter import build_results_table, print_results


def _result() -> dict:
    measurements = Measurements()
    for latency in (100, 200, 300):
        measurements.measure("READ", latency)
        measurements.measure_intended("READ", latency + 50)
        measurements.report_status("READ", Status.OK)
    measurements.report_status("VERIFY", Status.UNEXPECTED_STATE)
    return {
        "phase": "run",
        "operations": 3,
        "failures": 0,
        "duration_seconds": 0.5,
        "throughput_ops_per_sec": 6.0,
        "measurements": measurements.summary(),
    }


def test_table_hides_intended_series_by_default() -> None:
    table = build_results_table(_result())
    assert table.row_count == 2
    assert [column.header for column in table.columns][:3] == ["Operation", "Count", "Mean"]


def test_table_can_show_intended_series() -> None:
    table = build_results_table(_result(), show_intended=True)
    assert table.row_count == 3


def test_print_results_without_measurements(capsys) -> None:
    print_results({"phase": "run", "measurements": {}})
    assert "No results to display." in capsys.readouterr().out
