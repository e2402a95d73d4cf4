"""
Speed-test orchestration.

Latency first, then download and upload escalation in that order.  Every
transport call is awaited before the next one starts: concurrent transfers
would share bandwidth and corrupt the per-request throughput.
"""
from __future__ import annotations

import logging
from typing import Callable, Optional

from .aggregator import MeasurementAggregator, ProgressCallback
from .config import SpeedTestConfig
from .escalation import PayloadEscalationController
from .latency import LatencyProber
from .measurements import Direction
from .report import (
    EventListener,
    LatencyComputed,
    ReportBuilder,
    RunEvent,
    RunFinished,
    SpeedTestReport,
    TierCompleted,
)
from .tiers import tiers_up_to
from .transport import Transport

logger = logging.getLogger(__name__)


class SpeedTestRunner:
    """
    Drive one complete run against *transport*.

    ``on_event`` receives ``LatencyComputed``, ``TierCompleted`` and
    ``RunFinished`` in the order they happen.  ``on_progress`` is forwarded
    to the aggregator; ``on_latency_progress`` to the latency prober.
    """

    def __init__(
        self,
        transport: Transport,
        config: SpeedTestConfig,
        on_event: Optional[EventListener] = None,
        on_progress: Optional[ProgressCallback] = None,
        on_latency_progress: Optional[Callable[[int, int], None]] = None,
    ) -> None:
        self.transport = transport
        self.config = config
        self.on_event = on_event
        self.on_progress = on_progress
        self.on_latency_progress = on_latency_progress

    def _emit(self, event: RunEvent) -> None:
        if self.on_event:
            self.on_event(event)

    async def run(self) -> SpeedTestReport:
        config = self.config
        config.validate()

        prober = LatencyProber(self.transport, config.latency_repetitions)
        prober.on_progress = self.on_latency_progress
        latency = await prober.probe()
        self._emit(LatencyComputed(latency))

        builder = ReportBuilder(latency)
        aggregator = MeasurementAggregator(self.transport)
        aggregator.on_progress = self.on_progress

        for direction in config.direction_filter.directions():
            await self._escalate(direction, aggregator, builder)

        report = builder.build()
        self._emit(RunFinished(report))
        return report

    async def _escalate(
        self,
        direction: Direction,
        aggregator: MeasurementAggregator,
        builder: ReportBuilder,
    ) -> None:
        config = self.config
        controller = PayloadEscalationController(
            tiers_up_to(config.max_tier),
            dynamic_escalation_enabled=config.dynamic_escalation_enabled,
        )

        tier = controller.next_tier()
        while tier is not None:
            logger.debug("running %s tests for payload size %s", direction.value, tier)
            summary = await aggregator.run_tier(direction, tier, config.repetitions)
            builder.add(summary)
            self._emit(TierCompleted(direction, summary))
            controller.complete(summary)
            tier = controller.next_tier()

        logger.debug("%s escalation stopped (%s)", direction.value, controller.stop_reason.value)


async def run_speed_test(
    transport: Transport,
    config: SpeedTestConfig,
    on_event: Optional[EventListener] = None,
) -> SpeedTestReport:
    """Convenience wrapper: ``await run_speed_test(transport, config)``."""
    return await SpeedTestRunner(transport, config, on_event=on_event).run()
