"""
Error taxonomy for a speed-test run.

Every error raised by the measurement core derives from ``SpeedTestError`` so
the CLI can catch one type and render it in the selected output format.
"""
from __future__ import annotations

from typing import Optional


class SpeedTestError(Exception):
    """Base class for all errors surfaced by the engine."""


class TransportFailure(SpeedTestError):
    """A single request to the benchmarking endpoint failed."""

    def __init__(self, reason: str, status: Optional[int] = None) -> None:
        self.reason = reason
        self.status = status
        if status is not None:
            super().__init__(f"{reason} (HTTP {status})")
        else:
            super().__init__(reason)


class InvalidConfiguration(SpeedTestError):
    """Configuration rejected before any network activity."""


class StatisticsUnderflow(SpeedTestError):
    """Order statistics requested over fewer than two samples."""
