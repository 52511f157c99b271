from __future__ import annotations

from typing import Any, Dict, List

from rich import box
from rich.console import Console
from rich.table import Table


def _format_bytes(value: Any) -> str:
    if not value:
        return "N/A"
    return f"{value / (1024 * 1024):.2f}"


def _timing_rows(res: Dict[str, Any], is_aggregated: bool) -> List[List[str]]:
    """One table row per strategy timing of a scenario result."""
    rows: List[List[str]] = []
    for timing in res.get("timings", []):
        affected = timing.get("affected")
        affected_str = f"{affected:,}" if affected is not None else "-"
        if is_aggregated:
            stats = timing["duration_ms"]
            duration_str = f"{stats['median']:,.1f} ± {stats['stddev']:,.1f}"
        else:
            duration_str = f"{timing.get('duration_ms', 0.0):,.1f}"
        rows.append([timing["strategy"], affected_str, duration_str])
    return rows


def print_results(results: List[Dict[str, Any]], console: Console | None = None) -> None:
    """
    Render benchmark results as a rich table.

    Handles both single-run results and aggregated multi-run results. Strategies
    are listed per scenario, fastest first.
    """
    console = console or Console()

    if not results:
        console.print("[yellow]No results to display.[/yellow]")
        return

    # Aggregated results have a "runs" key > 1 and nested stats dictionaries
    is_aggregated = (
        "runs" in results[0] and isinstance(results[0]["runs"], int) and results[0]["runs"] > 1
    )

    table = Table(
        title="ORM Bulk Update Benchmark Results",
        box=box.ROUNDED,
        caption="Strategies sorted by duration within each scenario",
    )

    table.add_column("Scenario", style="cyan", no_wrap=True)
    table.add_column("Rows", justify="right", style="magenta")
    table.add_column("Strategy", style="blue")
    table.add_column("Affected", justify="right", style="magenta")
    if is_aggregated:
        table.add_column("Duration (ms)\n[dim](Median ± StdDev)[/dim]", justify="right", style="green")
    else:
        table.add_column("Duration (ms)", justify="right", style="green")
    table.add_column("Peak Memory (MB)", justify="right", style="yellow")
    table.add_column("Status", justify="center")

    def get_sort_key(row: List[str]) -> float:
        return float(row[2].split(" ")[0].replace(",", ""))

    for res in results:
        scenario = res.get("scenario", "Unknown")
        rows = f"{res.get('rows', 0):,}"
        peak = res.get("peak_rss_bytes")
        mem_str = _format_bytes(peak["median"] if isinstance(peak, dict) else peak)

        if res.get("error"):
            table.add_row(scenario, rows, "-", "-", "-", mem_str, f"[red]FAILED[/red] {res['error']}")
            continue

        status = "[green]OK[/green]"
        if res.get("failed_runs"):
            status = f"[yellow]{res['failed_runs']} failed[/yellow]"

        for strategy, affected, duration in sorted(_timing_rows(res, is_aggregated), key=get_sort_key):
            table.add_row(scenario, rows, strategy, affected, duration, mem_str, status)

    console.print(table)


__all__ = ["print_results"]
