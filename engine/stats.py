"""
Network measurement statistics.

Pure functions and frozen dataclasses -- no I/O, no side effects.
Everything here is deterministic and easy to unit-test.
"""
from __future__ import annotations

import statistics
from dataclasses import dataclass
from typing import List, Sequence, Tuple

from .errors import StatisticsUnderflow
from .measurements import Direction, MeasurementSet
from .tiers import PayloadTier


# ---------------------------------------------------------------------------
# Pure helper functions
# ---------------------------------------------------------------------------

def calculate_jitter(samples: Sequence[float]) -> float:
    """Mean absolute difference between consecutive samples, in collection order."""
    if len(samples) < 2:
        return 0.0
    diffs = [abs(samples[i] - samples[i - 1]) for i in range(1, len(samples))]
    return statistics.mean(diffs)


def calculate_percentile(samples: Sequence[float], percentile: float) -> float:
    """Inclusive linear-interpolation percentile (rank = p/100 * (n-1))."""
    if len(samples) < 2:
        raise StatisticsUnderflow(
            f"percentile needs at least 2 samples, got {len(samples)}"
        )
    if not 0 <= percentile <= 100:
        raise ValueError(f"percentile must be within [0, 100], got {percentile}")

    ordered = sorted(samples)
    n = len(ordered)
    idx = (percentile / 100) * (n - 1)
    lower = int(idx)
    upper = min(lower + 1, n - 1)
    weight = idx - lower
    return ordered[lower] * (1 - weight) + ordered[upper] * weight


# ---------------------------------------------------------------------------
# Latency
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class LatencyStats:
    """Latency statistics over samples kept in collection order (ms)."""

    samples: Tuple[float, ...]
    min: float
    max: float
    avg: float
    median: float
    jitter: float

    @classmethod
    def from_samples(cls, samples: Sequence[float]) -> LatencyStats:
        if not samples:
            raise StatisticsUnderflow("latency statistics need at least one sample")
        return cls(
            samples=tuple(samples),
            min=min(samples),
            max=max(samples),
            avg=statistics.mean(samples),
            median=statistics.median(samples),
            jitter=calculate_jitter(samples),
        )

    @property
    def count(self) -> int:
        return len(self.samples)

    def to_dict(self) -> dict:
        return {
            "avg_latency_ms": round(self.avg, 3),
            "min_latency_ms": round(self.min, 3),
            "max_latency_ms": round(self.max, 3),
            "median_latency_ms": round(self.median, 3),
            "jitter_ms": round(self.jitter, 3),
            "latency_measurements": [round(s, 3) for s in self.samples],
        }


# ---------------------------------------------------------------------------
# Throughput
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TierSummary:
    """Statistical reduction of one tier's repeated measurements (Mbps)."""

    direction: Direction
    tier: PayloadTier
    count: int
    min: float
    p10: float
    q1: float
    median: float
    q3: float
    p90: float
    max: float
    mean: float
    total_elapsed: float
    mean_elapsed: float
    retries: int = 0

    @classmethod
    def from_measurements(cls, mset: MeasurementSet, retries: int = 0) -> TierSummary:
        speeds: List[float] = mset.speeds
        if len(speeds) < 2:
            raise StatisticsUnderflow(
                f"{mset.direction.title} {mset.tier}: need at least 2 samples, got {len(speeds)}"
            )
        return cls(
            direction=mset.direction,
            tier=mset.tier,
            count=len(speeds),
            min=min(speeds),
            p10=calculate_percentile(speeds, 10),
            q1=calculate_percentile(speeds, 25),
            median=calculate_percentile(speeds, 50),
            q3=calculate_percentile(speeds, 75),
            p90=calculate_percentile(speeds, 90),
            max=max(speeds),
            mean=statistics.mean(speeds),
            total_elapsed=mset.total_elapsed,
            mean_elapsed=mset.mean_elapsed,
            retries=retries,
        )

    def to_dict(self) -> dict:
        return {
            "test_type": self.direction.title,
            "payload_size": self.tier.byte_count,
            "min": round(self.min, 3),
            "p10": round(self.p10, 3),
            "q1": round(self.q1, 3),
            "median": round(self.median, 3),
            "q3": round(self.q3, 3),
            "p90": round(self.p90, 3),
            "max": round(self.max, 3),
            "avg": round(self.mean, 3),
            "count": self.count,
            "total_elapsed": round(self.total_elapsed, 3),
            "retries": self.retries,
        }


def overall_average(summaries: Sequence[TierSummary]) -> float:
    """Mean speed over every measurement behind *summaries*."""
    total = sum(s.count for s in summaries)
    if total == 0:
        raise StatisticsUnderflow("no measurements to average")
    return sum(s.mean * s.count for s in summaries) / total


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------

def format_speed(speed_mbps: float) -> str:
    """Human-readable speed string."""
    if speed_mbps >= 1000:
        return f"{speed_mbps / 1000:.2f} Gbps"
    return f"{speed_mbps:.2f} Mbps"


def format_latency(latency_ms: float) -> str:
    """Human-readable latency string."""
    if latency_ms >= 1000:
        return f"{latency_ms / 1000:.2f} s"
    return f"{latency_ms:.1f} ms"
