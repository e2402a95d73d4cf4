"""
Payload escalation controller.

Walks the payload tiers smallest-first.  After each completed tier it either
advances or stops for good; with dynamic escalation enabled a tier whose
mean per-request duration exceeds the threshold stops the direction, so a
slow link never has to sit through the larger payloads.

The state machine has a single transition, ``ESCALATING -> STOPPED``.
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Optional, Sequence, Tuple

from .constants import TIME_THRESHOLD
from .stats import TierSummary
from .tiers import PayloadTier

logger = logging.getLogger(__name__)


class EscalationState(Enum):
    ESCALATING = "escalating"
    STOPPED = "stopped"


class StopReason(Enum):
    CEILING = "ceiling"
    THRESHOLD = "threshold"


class PayloadEscalationController:
    """Decides which tier runs next for one direction."""

    def __init__(
        self,
        tiers: Sequence[PayloadTier],
        dynamic_escalation_enabled: bool = True,
        threshold: float = TIME_THRESHOLD,
    ) -> None:
        if not tiers:
            raise ValueError("at least one payload tier is required")
        self.tiers: Tuple[PayloadTier, ...] = tuple(tiers)
        self.dynamic_escalation_enabled = dynamic_escalation_enabled
        self.threshold = threshold
        self._index = 0
        self._state = EscalationState.ESCALATING
        self._stop_reason: Optional[StopReason] = None

    @property
    def state(self) -> EscalationState:
        return self._state

    @property
    def stop_reason(self) -> Optional[StopReason]:
        return self._stop_reason

    def next_tier(self) -> Optional[PayloadTier]:
        """The tier to run now, or ``None`` once stopped."""
        if self._state is EscalationState.STOPPED:
            return None
        return self.tiers[self._index]

    def complete(self, summary: TierSummary) -> None:
        """Record the summary of the tier returned by ``next_tier()``."""
        if self._state is EscalationState.STOPPED:
            raise RuntimeError("escalation already stopped")
        current = self.tiers[self._index]
        if summary.tier != current:
            raise ValueError(f"expected a summary for {current}, got {summary.tier}")

        if self.dynamic_escalation_enabled and summary.mean_elapsed > self.threshold:
            logger.info(
                "Exceeded threshold: %s %s averaged %.2fs per request (limit %.1fs)",
                summary.direction.title, current, summary.mean_elapsed, self.threshold,
            )
            self._stop(StopReason.THRESHOLD)
        elif self._index + 1 < len(self.tiers):
            self._index += 1
        else:
            self._stop(StopReason.CEILING)

    def _stop(self, reason: StopReason) -> None:
        self._state = EscalationState.STOPPED
        self._stop_reason = reason
