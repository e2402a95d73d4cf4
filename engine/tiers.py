"""
Payload size tiers.

The escalation order is the order of ``PAYLOAD_TIERS`` -- an explicit
sequence, smallest first.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from .errors import InvalidConfiguration


@dataclass(frozen=True)
class PayloadTier:
    """A fixed payload size bucket."""

    label: str
    byte_count: int

    def __str__(self) -> str:
        return self.label


K100 = PayloadTier("100KB", 100_000)
M1 = PayloadTier("1MB", 1_000_000)
M10 = PayloadTier("10MB", 10_000_000)
M25 = PayloadTier("25MB", 25_000_000)
M100 = PayloadTier("100MB", 100_000_000)

PAYLOAD_TIERS: Tuple[PayloadTier, ...] = (K100, M1, M10, M25, M100)

TIER_CHOICES = ("100k", "1m", "10m", "25m", "100m")

_ALIASES = {
    K100: ("100k", "100kb", "100000", "100_000"),
    M1: ("1m", "1mb", "1000000", "1_000_000"),
    M10: ("10m", "10mb", "10000000", "10_000_000"),
    M25: ("25m", "25mb", "25000000", "25_000_000"),
    M100: ("100m", "100mb", "100000000", "100_000_000"),
}


def parse_tier(text: str) -> PayloadTier:
    """Map a user-supplied size such as ``"25m"`` or ``"100KB"`` to a tier."""
    key = text.strip().lower()
    for tier, aliases in _ALIASES.items():
        if key in aliases:
            return tier
    raise InvalidConfiguration("Value needs to be one of 100k, 1m, 10m, 25m or 100m")


def tiers_up_to(ceiling: PayloadTier) -> Tuple[PayloadTier, ...]:
    """Return every tier from the smallest up to and including *ceiling*."""
    if ceiling not in PAYLOAD_TIERS:
        raise InvalidConfiguration(f"Unknown payload tier: {ceiling!r}")
    return PAYLOAD_TIERS[: PAYLOAD_TIERS.index(ceiling) + 1]


def format_bytes(count: int) -> str:
    if 1_000 <= count <= 999_999:
        return f"{count // 1_000}KB"
    if 1_000_000 <= count <= 999_999_999:
        return f"{count // 1_000_000}MB"
    return f"{count} bytes"
