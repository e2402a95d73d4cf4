"""
Text boxplot for one tier summary.

Takes already-computed order statistics; no statistics happen here.

    |....------==========:==========------....|
     min  p10   q1      median    q3   p90  max
"""
from __future__ import annotations

import logging

logger = logging.getLogger(__name__)

PLOT_WIDTH = 40


def render_plot(
    minimum: float,
    p10: float,
    q1: float,
    median: float,
    q3: float,
    p90: float,
    maximum: float,
    width: int = PLOT_WIDTH,
) -> str:
    value_range = maximum - minimum
    if value_range <= 0:
        half = width // 2
        return "|" + " " * half + ":" + " " * (width - half) + "|"

    scale = width / value_range
    segments = [
        (p10 - minimum, "."),
        (q1 - p10, "-"),
        (median - q1, "="),
        (q3 - median, "="),
        (p90 - q3, "-"),
        (maximum - p90, "."),
    ]

    parts = ["|"]
    for i, (span, char) in enumerate(segments):
        if i == 3:
            parts.append(":")
        parts.append(char * int(span * scale))
    parts.append("|")
    plot = "".join(parts)

    logger.debug(
        "boxplot input: %s, %s, %s, %s, %s, %s, %s -> %d chars",
        minimum, p10, q1, median, q3, p90, maximum, len(plot),
    )
    return plot
