"""UI layer -- Rich dashboard, output formatters, and logging setup."""

from .boxplot import render_plot
from .dashboard import (
    LiveReporter,
    ProgressDisplay,
    console,
    create_histogram,
    print_final_results,
    print_header,
    print_latency_details,
    print_metadata,
    print_tier_summary,
)
from .logging_setup import configure_logging
from .output import (
    OutputMode,
    error_to_dict,
    format_csv,
    format_json,
    format_text_result,
    report_to_dict,
    save_json,
)

__all__ = [
    "LiveReporter",
    "OutputMode",
    "ProgressDisplay",
    "configure_logging",
    "console",
    "create_histogram",
    "error_to_dict",
    "format_csv",
    "format_json",
    "format_text_result",
    "print_final_results",
    "print_header",
    "print_latency_details",
    "print_metadata",
    "print_tier_summary",
    "render_plot",
    "report_to_dict",
    "save_json",
]
