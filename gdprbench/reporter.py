from __future__ import annotations

from typing import Any, Dict

from rich import box
from rich.console import Console
from rich.table import Table

from gdprbench.measurements import INTENDED_SUFFIX, PERCENTILES


def _format_us(value: Any) -> str:
    if value is None:
        return "-"
    return f"{value:,.0f}" if isinstance(value, (int, float)) else str(value)


def _format_statuses(statuses: Dict[str, int]) -> str:
    if not statuses:
        return "-"
    return ", ".join(f"{name}={count:,}" for name, count in sorted(statuses.items()))


def build_results_table(result: Dict[str, Any], show_intended: bool = False) -> Table:
    """
    Build a rich table with one row per measured operation.

    Intended-latency series are hidden unless ``show_intended`` is set.
    """
    title = (
        f"GDPR Workload Results: {result.get('phase', '?')}\n"
        f"[dim]{result.get('operations', 0):,} ops in {result.get('duration_seconds', 0.0):.2f}s "
        f"│ {result.get('throughput_ops_per_sec', 0.0):,.2f} ops/s "
        f"│ failures: {result.get('failures', 0):,}[/dim]"
    )
    table = Table(title=title, box=box.ROUNDED, caption="Latencies in microseconds")

    table.add_column("Operation", style="cyan", no_wrap=True)
    table.add_column("Count", justify="right", style="magenta")
    table.add_column("Mean", justify="right", style="green")
    for percentile in PERCENTILES:
        table.add_column(f"p{percentile:g}", justify="right", style="green")
    table.add_column("Max", justify="right", style="yellow")
    table.add_column("Statuses", style="red")

    for name, entry in sorted(result.get("measurements", {}).items()):
        if name.endswith(INTENDED_SUFFIX) and not show_intended:
            continue
        row = [name, f"{entry.get('count', 0):,}", _format_us(entry.get("mean_us"))]
        row.extend(_format_us(entry.get(f"p{percentile:g}_us")) for percentile in PERCENTILES)
        row.append(_format_us(entry.get("max_us")))
        row.append(_format_statuses(entry.get("statuses", {})))
        table.add_row(*row)
    return table


def print_results(result: Dict[str, Any], show_intended: bool = False) -> None:
    """
    Render a phase result as a rich table.
    """
    console = Console()

    if not result.get("measurements"):
        console.print("[yellow]No results to display.[/yellow]")
        return

    console.print(build_results_table(result, show_intended=show_intended))
