#!/usr/bin/env python3
"""
cfspeedtest -- throughput and latency against speed.cloudflare.com.

Usage::

    python cfspeedtest.py                       # rich dashboard
    python cfspeedtest.py --simple              # one-line summary
    python cfspeedtest.py --json                # JSON to stdout
    python cfspeedtest.py --json-pretty         # indented JSON
    python cfspeedtest.py --csv                 # one CSV row per payload size
    python cfspeedtest.py -n 20 -p 100m         # 20 runs per size, up to 100MB
    python cfspeedtest.py --download-only -d    # no upload, no dynamic stop
    python cfspeedtest.py -v                    # boxplots and debug logging
    python cfspeedtest.py -o result.json        # save JSON to file
    python cfspeedtest.py -n 20 --save-defaults # remember -n 20 for later runs
"""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import Any, Dict, List, Optional

from engine.config import (
    DirectionFilter,
    SpeedTestConfig,
    check_config_types,
    config_path,
    load_config,
    save_config,
)
from engine.constants import MAX_REPETITIONS, MIN_PERCENTILE_REPETITIONS
from engine.errors import SpeedTestError
from engine.report import SpeedTestReport
from engine.runner import SpeedTestRunner
from engine.tiers import TIER_CHOICES, parse_tier
from engine.transport import CloudflareTransport
from ui.dashboard import LiveReporter, console, print_final_results, print_header, print_metadata
from ui.logging_setup import configure_logging
from ui.output import (
    OutputMode,
    error_to_dict,
    format_csv,
    format_json,
    format_text_result,
    report_to_dict,
    save_json,
)

logger = logging.getLogger("cfspeedtest")


# ---------------------------------------------------------------------------
# Core test runner
# ---------------------------------------------------------------------------

async def run_speedtest(
    config: SpeedTestConfig,
    *,
    mode: OutputMode = OutputMode.RICH,
    verbose: bool = False,
    output_file: Optional[str] = None,
) -> SpeedTestReport:
    """Execute the full speedtest sequence and report it in *mode*."""

    # Reject bad input before touching the network
    config.validate()

    show_ui = mode is OutputMode.RICH

    if show_ui:
        print_header()

    async with CloudflareTransport() as transport:

        # -- Metadata -------------------------------------------------------
        if show_ui:
            console.print("[dim]Fetching connection info...[/dim]")

        metadata = await transport.fetch_metadata()

        if show_ui:
            print_metadata(metadata)

        # -- Measurements ---------------------------------------------------
        live: Optional[LiveReporter] = None
        runner = SpeedTestRunner(transport, config)
        if show_ui:
            live = LiveReporter(verbose=verbose)
            runner.on_event = live.on_event
            runner.on_progress = live.on_progress
            runner.on_latency_progress = live.on_latency_progress

        try:
            report = await runner.run()
        finally:
            if live:
                live.close()

    # -- Report -------------------------------------------------------------
    # Saved before anything is written to stdout
    if output_file:
        save_json(report_to_dict(report, metadata), output_file)

    if show_ui:
        print_final_results(report)
    elif mode is OutputMode.SIMPLE:
        print(format_text_result(report))
    elif mode in (OutputMode.JSON, OutputMode.JSON_PRETTY):
        print(format_json(report, metadata, pretty=mode is OutputMode.JSON_PRETTY))
    elif mode is OutputMode.CSV:
        sys.stdout.write(format_csv(report))

    if output_file and show_ui:
        console.print(f"[green]Results saved to:[/green] {output_file}")

    return report


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def build_parser(defaults: Dict[str, Any]) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cfspeedtest",
        description="Unofficial CLI for speed.cloudflare.com",
        epilog=f"Defaults for -n, --nr-latency-tests, -p, -d and the output mode are read from {config_path()}",
    )
    # Test parameters
    parser.add_argument("-n", "--nr-tests", type=int, default=defaults["nr_tests"], metavar="N", help=f"Number of tests per payload size ({MIN_PERCENTILE_REPETITIONS}-{MAX_REPETITIONS}, default: {defaults['nr_tests']})")
    parser.add_argument("--nr-latency-tests", type=int, default=defaults["nr_latency_tests"], metavar="N", help=f"Number of latency tests (default: {defaults['nr_latency_tests']})")
    parser.add_argument("-p", "--max-payload-size", choices=TIER_CHOICES, type=str.lower, default=str(defaults["max_payload_size"]).lower(), help=f"Maximum payload size (default: {defaults['max_payload_size']})")
    parser.add_argument("-d", "--disable-dynamic-max-payload-size", action="store_true", default=defaults["disable_dynamic_max_payload_size"], help="Keep escalating even when a payload size averages more than 5s per request")

    # Directions
    direction = parser.add_mutually_exclusive_group()
    direction.add_argument("--download-only", action="store_true", help="Skip upload tests")
    direction.add_argument("--upload-only", action="store_true", help="Skip download tests")

    # Output modes
    output = parser.add_mutually_exclusive_group()
    output.add_argument("--simple", action="store_const", dest="output_mode", const=OutputMode.SIMPLE.value, help="One-line output (no dashboard)")
    output.add_argument("--json", action="store_const", dest="output_mode", const=OutputMode.JSON.value, help="Output results as JSON")
    output.add_argument("--json-pretty", action="store_const", dest="output_mode", const=OutputMode.JSON_PRETTY.value, help="Output results as indented JSON")
    output.add_argument("--csv", action="store_const", dest="output_mode", const=OutputMode.CSV.value, help="Output results as CSV")
    parser.set_defaults(output_mode=defaults["output"])

    parser.add_argument("-o", "--output", type=str, metavar="FILE", help="Save results to JSON file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show boxplots and debug logging")
    parser.add_argument("--save-defaults", action="store_true", help=f"Store the test parameters and output mode in {config_path()} and exit")
    return parser


def config_from_args(args: argparse.Namespace) -> SpeedTestConfig:
    if args.download_only:
        direction_filter = DirectionFilter.DOWNLOAD_ONLY
    elif args.upload_only:
        direction_filter = DirectionFilter.UPLOAD_ONLY
    else:
        direction_filter = DirectionFilter.BOTH

    return SpeedTestConfig(
        repetitions=args.nr_tests,
        latency_repetitions=args.nr_latency_tests,
        max_tier=parse_tier(args.max_payload_size),
        dynamic_escalation_enabled=not args.disable_dynamic_max_payload_size,
        direction_filter=direction_filter,
    )


def _report_error(exc: BaseException, mode: OutputMode) -> None:
    if mode in (OutputMode.JSON, OutputMode.JSON_PRETTY):
        indent = 2 if mode is OutputMode.JSON_PRETTY else None
        print(json.dumps(error_to_dict(exc), indent=indent))
    elif mode.is_machine_readable:
        print(f"Error: {exc}", file=sys.stderr)
    else:
        console.print(f"\n[red]Error: {exc}[/red]")


def main(argv: Optional[List[str]] = None) -> None:
    defaults = load_config()
    parser = build_parser(defaults)
    args = parser.parse_args(argv)

    configure_logging(args.verbose)

    try:
        mode = OutputMode(args.output_mode)
    except ValueError:
        parser.error(f"unknown output mode in config file: {args.output_mode!r}")

    try:
        check_config_types(defaults)
        config = config_from_args(args)

        if args.save_defaults:
            config.validate()
            path = save_config({
                "nr_tests": config.repetitions,
                "nr_latency_tests": config.latency_repetitions,
                "max_payload_size": args.max_payload_size,
                "disable_dynamic_max_payload_size": not config.dynamic_escalation_enabled,
                "output": mode.value,
            })
            console.print(f"[green]Defaults saved to:[/green] {path}")
            return

        asyncio.run(
            run_speedtest(config, mode=mode, verbose=args.verbose, output_file=args.output)
        )
    except KeyboardInterrupt:
        if mode.is_machine_readable:
            print("Test cancelled by user", file=sys.stderr)
        else:
            console.print("\n[yellow]Test cancelled by user[/yellow]")
        sys.exit(1)
    except SpeedTestError as exc:
        logger.debug("run failed", exc_info=True)
        _report_error(exc, mode)
        sys.exit(1)
    except OSError as exc:
        _report_error(exc, mode)
        sys.exit(1)


if __name__ == "__main__":
    main()
