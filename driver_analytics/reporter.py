from __future__ import annotations

from typing import Any, Dict, List

from rich import box
from rich.console import Console
from rich.table import Table


def print_results(results: List[Dict[str, Any]], console: Console | None = None) -> None:
    """
    Render load results as a rich table, best throughput first.
    """
    console = console or Console()

    if not results:
        console.print("[yellow]No results to display.[/yellow]")
        return

    table = Table(
        title="Driver Analytics Load Results",
        box=box.ROUNDED,
        caption="Sorted by Throughput (descending)",
    )

    table.add_column("Variant", style="cyan", no_wrap=True)
    table.add_column("Gateway / Aggregation", style="blue")
    table.add_column("Requests\n[dim](ok/404/err)[/dim]", justify="right", style="magenta")
    table.add_column("Throughput (req/s)", justify="right", style="bold green")
    table.add_column("Latency ms\n[dim](p50 / p95 / p99)[/dim]", justify="right", style="green")
    table.add_column("Peak In-Flight", justify="right", style="red")
    table.add_column("Peak Memory (MB)", justify="right", style="yellow")

    sorted_results = sorted(results, key=lambda r: r.get("throughput_rps", 0.0), reverse=True)

    for res in sorted_results:
        latency = res.get("latency_ms", {})
        gateway_stats = res.get("gateway_stats", {})
        mem_bytes = res.get("peak_rss_bytes") or 0

        table.add_row(
            res.get("variant", "Unknown"),
            f"{res.get('gateway', '?')} / {res.get('aggregation', '?')}",
            f"{res.get('ok', 0)}/{res.get('not_found', 0)}/{res.get('errors', 0)}",
            f"{res.get('throughput_rps', 0.0):,.2f}",
            f"{latency.get('p50', 0.0):.1f} / {latency.get('p95', 0.0):.1f} / {latency.get('p99', 0.0):.1f}",
            str(gateway_stats.get("peak_in_flight", "N/A")),
            f"{mem_bytes / (1024 * 1024):.2f}",
        )

    console.print(table)


__all__ = ["print_results"]
