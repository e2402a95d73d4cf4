"""
Latency prober.

Runs a fixed number of sequential round-trip probes and reduces them to
``LatencyStats``.  A failed probe aborts the whole run: dropping it would
shrink the sample count and skew the consecutive-difference jitter.
"""
from __future__ import annotations

import logging
from typing import Callable, List, Optional

from .constants import DEFAULT_LATENCY_REPETITIONS
from .stats import LatencyStats
from .transport import Transport

logger = logging.getLogger(__name__)


class LatencyProber:
    """Time ``repetitions`` round-trips against the transport's latency endpoint."""

    def __init__(self, transport: Transport, repetitions: int = DEFAULT_LATENCY_REPETITIONS) -> None:
        if repetitions < 1:
            raise ValueError("repetitions must be >= 1")
        self.transport = transport
        self.repetitions = repetitions
        self.on_progress: Optional[Callable[[int, int], None]] = None

    async def probe(self) -> LatencyStats:
        samples: List[float] = []
        for i in range(self.repetitions):
            elapsed = await self.transport.measure_latency()
            samples.append(elapsed * 1000)
            if self.on_progress:
                self.on_progress(i + 1, self.repetitions)

        stats = LatencyStats.from_samples(samples)
        logger.debug(
            "latency over %d probes: avg=%.2fms jitter=%.2fms",
            stats.count, stats.avg, stats.jitter,
        )
        return stats
