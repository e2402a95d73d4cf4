"""
Rich-based terminal dashboard for speedtest results.

All formatting helpers live in ``engine.stats`` -- this module only does
presentation via the ``rich`` library.
"""
from __future__ import annotations

from typing import List, Optional, Sequence

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from engine.measurements import Direction
from engine.report import LatencyComputed, RunEvent, SpeedTestReport, TierCompleted
from engine.stats import LatencyStats, TierSummary, format_latency, format_speed
from engine.tiers import PayloadTier, format_bytes
from engine.transport import Metadata

from .boxplot import render_plot

console = Console()

_COLORS = {Direction.DOWNLOAD: "green", Direction.UPLOAD: "blue"}


# ---------------------------------------------------------------------------
# Histogram helper
# ---------------------------------------------------------------------------

_BARS = "▁▂▃▄▅▆▇█"


def create_histogram(values: Sequence[float]) -> str:
    """Return a single-line Unicode bar-chart."""
    if not values:
        return "No data"

    lo, hi = min(values), max(values)
    span = hi - lo if hi > lo else 1.0
    return "".join(
        _BARS[min(int((v - lo) / span * (len(_BARS) - 1)), len(_BARS) - 1)]
        for v in values
    )


# ---------------------------------------------------------------------------
# Print helpers
# ---------------------------------------------------------------------------

def print_header() -> None:
    console.print()
    console.print(
        Panel.fit(
            "[bold cyan]cfspeedtest[/bold cyan]\n"
            "[dim]Throughput and latency against speed.cloudflare.com[/dim]",
            border_style="cyan",
        )
    )
    console.print()


def print_metadata(metadata: Metadata) -> None:
    table = Table(show_header=False, box=None, padding=(0, 1))
    table.add_column(style="dim")
    table.add_column(style="bold")
    table.add_row("Country:", metadata.country)
    table.add_row("IP Address:", metadata.ip)
    table.add_row("Colo:", metadata.colo)
    console.print(Panel(table, title="[bold]Connection[/bold]", border_style="blue"))


def print_latency_details(stats: LatencyStats) -> None:
    """Print latency statistics and a histogram of the samples in collection order."""
    table = Table(title="Latency", box=box.ROUNDED)
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")

    table.add_row("Min", format_latency(stats.min))
    table.add_row("Max", format_latency(stats.max))
    table.add_row("Average", format_latency(stats.avg))
    table.add_row("Median", format_latency(stats.median))
    table.add_row("Jitter", f"{stats.jitter:.2f} ms")
    table.add_row("Samples", str(stats.count))
    console.print(table)

    console.print(
        Panel(
            f"[cyan]{create_histogram(stats.samples)}[/cyan]\n"
            f"[dim]Min: {stats.min:.1f} ms  Max: {stats.max:.1f} ms[/dim]",
            title="Latency Samples",
        )
    )


def print_tier_summary(summary: TierSummary, verbose: bool = False) -> None:
    color = _COLORS[summary.direction]
    console.print(
        f"[bold {color}]{summary.direction.title:<9}[/bold {color}]"
        f"{format_bytes(summary.tier.byte_count):<6}|  "
        f"min {summary.min:<8.2f} max {summary.max:<8.2f} avg {summary.mean:<8.2f} "
        f"[dim]({summary.count} runs, {summary.total_elapsed:.1f}s)[/dim]"
    )
    if verbose:
        plot = render_plot(
            summary.min, summary.p10, summary.q1, summary.median,
            summary.q3, summary.p90, summary.max,
        )
        console.print(f"  [{color}]{plot}[/{color}]")
        console.print(
            f"  [dim]p10 {summary.p10:.2f}  q1 {summary.q1:.2f}  median {summary.median:.2f}  "
            f"q3 {summary.q3:.2f}  p90 {summary.p90:.2f}  retries {summary.retries}[/dim]\n"
        )


def print_final_results(report: SpeedTestReport) -> None:
    lines: List[str] = [
        f"[bold white]   Latency:[/bold white]  [bold yellow]{report.latency.avg:.1f} ms[/bold yellow]  "
        f"[dim](jitter: {report.latency.jitter:.2f} ms)[/dim]",
    ]
    if report.download_avg is not None:
        lines.append(
            f"[bold white]   Download:[/bold white]  [bold green]{format_speed(report.download_avg)}[/bold green]"
        )
    if report.upload_avg is not None:
        lines.append(
            f"[bold white]   Upload:[/bold white]  [bold blue]{format_speed(report.upload_avg)}[/bold blue]"
        )

    console.print()
    console.print(Panel.fit("\n".join(lines), title="[bold]Results[/bold]", border_style="cyan"))
    console.print()


# ---------------------------------------------------------------------------
# Progress display
# ---------------------------------------------------------------------------

class ProgressDisplay:
    """Manages a ``rich`` progress bar counting the requests of one tier."""

    def __init__(self) -> None:
        self.progress: Optional[Progress] = None
        self._task_id = None

    @property
    def active(self) -> bool:
        return self._task_id is not None

    def start(self, description: str, total: int) -> None:
        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold]{task.description:<16}"),
            BarColumn(bar_width=40),
            MofNCompleteColumn(),
            TextColumn("[bold cyan]{task.fields[speed]}[/bold cyan]"),
            TimeElapsedColumn(),
            console=console,
            transient=True,
        )
        self.progress.start()
        self._task_id = self.progress.add_task(description, total=total, speed="")

    def update(self, completed: int, speed_mbps: float = 0.0) -> None:
        if self.progress is None or self._task_id is None:
            return
        speed_str = format_speed(speed_mbps) if speed_mbps > 0 else "..."
        self.progress.update(self._task_id, completed=completed, speed=speed_str)

    def stop(self) -> None:
        if self.progress is None:
            return
        self.progress.stop()
        self.progress = None
        self._task_id = None


class LiveReporter:
    """
    Streams a run to the console as it happens.

    Hook ``on_event``, ``on_progress`` and ``on_latency_progress`` into a
    ``SpeedTestRunner``.
    """

    def __init__(self, verbose: bool = False) -> None:
        self.verbose = verbose
        self._progress = ProgressDisplay()
        self._current: Optional[tuple] = None

    def on_latency_progress(self, completed: int, total: int) -> None:
        if not self._progress.active:
            self._progress.start("Latency", total)
        self._progress.update(completed)
        if completed >= total:
            self._progress.stop()

    def on_progress(
        self,
        direction: Direction,
        tier: PayloadTier,
        completed: int,
        total: int,
        speed_mbps: float,
    ) -> None:
        key = (direction, tier)
        if self._current != key:
            self._progress.stop()
            self._progress.start(f"{direction.title} {format_bytes(tier.byte_count)}", total)
            self._current = key
        self._progress.update(completed, speed_mbps)

    def on_event(self, event: RunEvent) -> None:
        self._progress.stop()
        self._current = None
        if isinstance(event, LatencyComputed):
            print_latency_details(event.latency)
            console.print("\n[bold]Summary Statistics[/bold]  [dim]min/max/avg in Mbps[/dim]")
        elif isinstance(event, TierCompleted):
            print_tier_summary(event.summary, verbose=self.verbose)

    def close(self) -> None:
        self._progress.stop()
