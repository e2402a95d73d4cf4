"""Speed-test engine -- transport, measurement orchestration, and statistics."""

from .aggregator import MeasurementAggregator
from .config import DirectionFilter, SpeedTestConfig
from .errors import (
    InvalidConfiguration,
    SpeedTestError,
    StatisticsUnderflow,
    TransportFailure,
)
from .escalation import EscalationState, PayloadEscalationController, StopReason
from .latency import LatencyProber
from .measurements import Direction, MeasurementSet, SingleMeasurement
from .report import (
    LatencyComputed,
    ReportBuilder,
    RunFinished,
    SpeedTestReport,
    TierCompleted,
)
from .runner import SpeedTestRunner, run_speed_test
from .stats import (
    LatencyStats,
    TierSummary,
    calculate_jitter,
    calculate_percentile,
    format_latency,
    format_speed,
)
from .tiers import PAYLOAD_TIERS, PayloadTier, format_bytes, parse_tier, tiers_up_to
from .transport import CloudflareTransport, Metadata, Transport

__all__ = [
    "CloudflareTransport",
    "Direction",
    "DirectionFilter",
    "EscalationState",
    "InvalidConfiguration",
    "LatencyComputed",
    "LatencyProber",
    "LatencyStats",
    "MeasurementAggregator",
    "MeasurementSet",
    "Metadata",
    "PAYLOAD_TIERS",
    "PayloadEscalationController",
    "PayloadTier",
    "ReportBuilder",
    "RunFinished",
    "SingleMeasurement",
    "SpeedTestConfig",
    "SpeedTestError",
    "SpeedTestReport",
    "SpeedTestRunner",
    "StatisticsUnderflow",
    "StopReason",
    "TierCompleted",
    "TierSummary",
    "Transport",
    "TransportFailure",
    "calculate_jitter",
    "calculate_percentile",
    "format_bytes",
    "format_latency",
    "format_speed",
    "parse_tier",
    "run_speed_test",
    "tiers_up_to",
]
