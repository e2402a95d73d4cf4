"""
Raw per-request measurements.

A ``SingleMeasurement`` is created right after each transport call returns;
a ``MeasurementSet`` holds one tier's worth of them until it is reduced to a
``TierSummary`` and discarded.
"""
from __future__ import annotations

import statistics
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, List

from .tiers import PayloadTier


class Direction(Enum):
    DOWNLOAD = "download"
    UPLOAD = "upload"

    @property
    def title(self) -> str:
        return self.value.capitalize()


@dataclass(frozen=True)
class SingleMeasurement:
    """One timed transfer of ``byte_count`` bytes."""

    direction: Direction
    tier: PayloadTier
    byte_count: int
    elapsed: float  # seconds

    def __post_init__(self) -> None:
        if self.elapsed <= 0:
            raise ValueError(f"elapsed must be positive, got {self.elapsed!r}")

    @property
    def speed_mbps(self) -> float:
        return self.byte_count * 8 / self.elapsed / 1_000_000


@dataclass
class MeasurementSet:
    """Ordered measurements sharing the same direction and tier."""

    direction: Direction
    tier: PayloadTier
    measurements: List[SingleMeasurement] = field(default_factory=list)

    def add(self, measurement: SingleMeasurement) -> None:
        if measurement.direction is not self.direction or measurement.tier != self.tier:
            raise ValueError(
                f"{measurement.direction.title} {measurement.tier} measurement does not "
                f"belong to the {self.direction.title} {self.tier} set"
            )
        self.measurements.append(measurement)

    def __len__(self) -> int:
        return len(self.measurements)

    def __iter__(self) -> Iterator[SingleMeasurement]:
        return iter(self.measurements)

    @property
    def speeds(self) -> List[float]:
        return [m.speed_mbps for m in self.measurements]

    @property
    def total_elapsed(self) -> float:
        return sum(m.elapsed for m in self.measurements)

    @property
    def mean_elapsed(self) -> float:
        if not self.measurements:
            return 0.0
        return statistics.mean(m.elapsed for m in self.measurements)
