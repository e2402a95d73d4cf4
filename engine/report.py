"""
Final run report and the events emitted while it is assembled.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple, Union

from .measurements import Direction
from .stats import LatencyStats, TierSummary, overall_average


@dataclass(frozen=True)
class SpeedTestReport:
    """Aggregated result of one run.  Immutable once built."""

    latency: LatencyStats
    download: Tuple[TierSummary, ...] = ()
    upload: Tuple[TierSummary, ...] = ()
    download_avg: Optional[float] = None
    upload_avg: Optional[float] = None

    def summaries(self, direction: Direction) -> Tuple[TierSummary, ...]:
        return self.download if direction is Direction.DOWNLOAD else self.upload

    def average(self, direction: Direction) -> Optional[float]:
        return self.download_avg if direction is Direction.DOWNLOAD else self.upload_avg


class ReportBuilder:
    """Collects tier summaries as they complete; ``build()`` finalizes once."""

    def __init__(self, latency: LatencyStats) -> None:
        self._latency = latency
        self._tiers: Dict[Direction, List[TierSummary]] = {
            Direction.DOWNLOAD: [],
            Direction.UPLOAD: [],
        }
        self._report: Optional[SpeedTestReport] = None

    def add(self, summary: TierSummary) -> None:
        if self._report is not None:
            raise RuntimeError("report already finalized")
        self._tiers[summary.direction].append(summary)

    def build(self) -> SpeedTestReport:
        if self._report is None:
            download: List[TierSummary] = self._tiers[Direction.DOWNLOAD]
            upload: List[TierSummary] = self._tiers[Direction.UPLOAD]
            self._report = SpeedTestReport(
                latency=self._latency,
                download=tuple(download),
                upload=tuple(upload),
                download_avg=overall_average(download) if download else None,
                upload_avg=overall_average(upload) if upload else None,
            )
        return self._report


# ---------------------------------------------------------------------------
# Streaming events
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class LatencyComputed:
    latency: LatencyStats


@dataclass(frozen=True)
class TierCompleted:
    direction: Direction
    summary: TierSummary


@dataclass(frozen=True)
class RunFinished:
    report: SpeedTestReport


RunEvent = Union[LatencyComputed, TierCompleted, RunFinished]
EventListener = Callable[[RunEvent], None]
