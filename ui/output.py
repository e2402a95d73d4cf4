"""
Output formatting -- JSON export, plain text, and CSV.

Every function here reads the report and never modifies it.
"""
from __future__ import annotations

import csv
import io
import json
import os
from enum import Enum
from typing import Any, Dict, List, Optional

from engine.measurements import Direction
from engine.report import SpeedTestReport
from engine.transport import Metadata


class OutputMode(Enum):
    RICH = "rich"
    SIMPLE = "simple"
    JSON = "json"
    JSON_PRETTY = "json-pretty"
    CSV = "csv"

    @property
    def is_machine_readable(self) -> bool:
        return self in (OutputMode.JSON, OutputMode.JSON_PRETTY, OutputMode.CSV)


CSV_FIELDS = [
    "test_type",
    "payload_size",
    "min",
    "p10",
    "q1",
    "median",
    "q3",
    "p90",
    "max",
    "avg",
    "count",
    "total_elapsed",
    "retries",
]


# ---------------------------------------------------------------------------
# JSON
# ---------------------------------------------------------------------------

def report_to_dict(report: SpeedTestReport, metadata: Optional[Metadata] = None) -> Dict[str, Any]:
    """Build a JSON-serialisable dict of the whole run."""
    result: Dict[str, Any] = {}
    if metadata is not None:
        result["metadata"] = metadata.to_dict()

    result["latency_measurement"] = report.latency.to_dict()
    result["speed_measurements"] = [
        s.to_dict() for direction in Direction for s in report.summaries(direction)
    ]

    averages: Dict[str, float] = {}
    for direction in Direction:
        avg = report.average(direction)
        if avg is not None:
            averages[direction.value] = round(avg, 3)
    result["average_mbps"] = averages
    return result


def format_json(
    report: SpeedTestReport,
    metadata: Optional[Metadata] = None,
    pretty: bool = False,
) -> str:
    return json.dumps(report_to_dict(report, metadata), indent=2 if pretty else None)


def error_to_dict(exc: BaseException) -> Dict[str, Any]:
    """Structured form of a failed run for the JSON output modes."""
    return {"error": {"type": type(exc).__name__, "message": str(exc)}}


def save_json(result: Dict[str, Any], filepath: str) -> None:
    """Write *result* to *filepath* atomically (write-tmp then rename)."""
    dir_path = os.path.dirname(filepath) or "."
    tmp = os.path.join(dir_path, f".tmp_{os.path.basename(filepath)}")

    try:
        with open(tmp, "w", encoding="utf-8") as fh:
            json.dump(result, fh, indent=2, ensure_ascii=False)
        os.replace(tmp, filepath)
    except OSError as exc:
        # Clean up partial temp file
        try:
            os.unlink(tmp)
        except OSError:
            pass
        raise OSError(f"Failed to save JSON to {filepath}: {exc}") from exc


# ---------------------------------------------------------------------------
# CSV
# ---------------------------------------------------------------------------

def format_csv(report: SpeedTestReport) -> str:
    """One row per tier summary, download tiers first."""
    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=CSV_FIELDS, lineterminator="\n")
    writer.writeheader()
    for summary in (*report.download, *report.upload):
        row = summary.to_dict()
        writer.writerow({key: row[key] for key in CSV_FIELDS})
    return buf.getvalue()


# ---------------------------------------------------------------------------
# Plain text
# ---------------------------------------------------------------------------

def format_text_result(report: SpeedTestReport) -> str:
    """One-line summary, e.g. ``Download: 450.0 Mbps  Upload: 120.0 Mbps  Latency: 12.0 ms``."""
    parts: List[str] = []
    if report.download_avg is not None:
        parts.append(f"Download: {report.download_avg:.1f} Mbps")
    if report.upload_avg is not None:
        parts.append(f"Upload: {report.upload_avg:.1f} Mbps")
    parts.append(f"Latency: {report.latency.avg:.1f} ms (jitter: {report.latency.jitter:.2f} ms)")
    return "  ".join(parts)
