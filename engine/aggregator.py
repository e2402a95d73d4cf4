"""
Measurement aggregator.

Runs one tier: ``repetitions`` sequential transfers of the tier's payload
size in one direction, then reduces them to a ``TierSummary``.  There is no
partial result -- if any transfer fails the ``TransportFailure`` propagates
and the tier produces nothing.
"""
from __future__ import annotations

import logging
from typing import Callable, Optional

from .measurements import Direction, MeasurementSet, SingleMeasurement
from .stats import TierSummary
from .tiers import PayloadTier, format_bytes
from .transport import Transport

logger = logging.getLogger(__name__)

# (direction, tier, completed, total, last speed in Mbps)
ProgressCallback = Callable[[Direction, PayloadTier, int, int, float], None]


class MeasurementAggregator:
    def __init__(self, transport: Transport) -> None:
        self.transport = transport
        self.on_progress: Optional[ProgressCallback] = None

    async def _transfer(self, direction: Direction, byte_count: int) -> float:
        if direction is Direction.DOWNLOAD:
            return await self.transport.measure_download(byte_count)
        return await self.transport.measure_upload(byte_count)

    async def run_tier(self, direction: Direction, tier: PayloadTier, repetitions: int) -> TierSummary:
        mset = MeasurementSet(direction=direction, tier=tier)
        retries_before = self.transport.retries

        for i in range(repetitions):
            elapsed = await self._transfer(direction, tier.byte_count)
            measurement = SingleMeasurement(
                direction=direction,
                tier=tier,
                byte_count=tier.byte_count,
                elapsed=elapsed,
            )
            mset.add(measurement)
            logger.debug(
                "%s %s #%d: %.2f mbit/s in %dms",
                direction.title, format_bytes(tier.byte_count), i + 1,
                measurement.speed_mbps, round(elapsed * 1000),
            )
            if self.on_progress:
                self.on_progress(direction, tier, i + 1, repetitions, measurement.speed_mbps)

        return TierSummary.from_measurements(mset, retries=self.transport.retries - retries_before)
