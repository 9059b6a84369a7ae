#!/usr/bin/env python3
"""
Keycheck CLI

Scans a Flutter project for automation keys, compares them with an
expected-key list and reports the result in various formats.

Exit codes: 0 passed, 1 validation failed, 2 configuration error,
3 output could not be written.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

from config.loader import load_config
from config.model import KeycheckConfig
from exporters import registry_to_ascii, to_ascii, to_json, to_junit, to_markdown
from keymap.errors import ConfigurationError
from validation.expected import dump_expected_keys
from validation.filters import filter_keys
from validation.insights import registry_report
from validation.pipeline import CheckOutcome, check_project, make_cache, scan_project, update_baseline

logger = logging.getLogger("keycheck")

EXIT_OK = 0
EXIT_VALIDATION_FAILED = 1
EXIT_CONFIG_ERROR = 2
EXIT_IO_ERROR = 3


def parse_args(args=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="keycheck",
        description="Check that a Flutter project declares the automation keys its tests expect.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  keycheck . -k keys.yaml                     # Validate, ASCII report
  keycheck . -k keys.yaml -f json -o out.json # JSON report to file
  keycheck . -k keys.yaml -f junit            # JUnit XML for CI
  keycheck . --generate-keys -o keys.yaml     # Write found keys as a key list
  keycheck . --key-constants-report           # Inspect the KeyConstants class
  keycheck . --policy progressive --baseline .keycheck/baseline.json --update-baseline
        """,
    )

    # Positional arguments
    parser.add_argument(
        "root",
        nargs="?",
        default=None,
        help="Project root directory (default: config 'path' or current directory)",
    )

    # Inputs
    parser.add_argument("-k", "--keys", default=None, help="Expected-key YAML file")
    parser.add_argument("-c", "--config", default=None, help="Config file (default: ./.keycheck.yaml)")

    # Output options
    parser.add_argument(
        "-o", "--output",
        type=str,
        default=None,
        help="Output file (default: stdout)",
    )
    parser.add_argument(
        "-f", "--format",
        choices=["ascii", "json", "markdown", "junit"],
        default=None,
        help="Report format (default: ascii)",
    )
    parser.add_argument(
        "--ascii-style",
        choices=["tree", "ascii"],
        default="tree",
        help="ASCII output style: 'tree' (Unicode) or 'ascii' (pure ASCII)",
    )
    parser.add_argument(
        "--no-locations",
        action="store_true",
        help="List keys without their usage locations",
    )

    # Filtering and policy
    parser.add_argument("--include-only", nargs="+", default=None, help="Keep only keys matching any pattern")
    parser.add_argument("--exclude", nargs="+", default=None, help="Drop keys matching any pattern")
    parser.add_argument("--tracked-keys", nargs="+", default=None, help="Validate only this subset of keys")
    parser.add_argument(
        "--policy",
        choices=["strict", "lenient", "progressive"],
        default=None,
        help="Validation policy (default: strict)",
    )
    parser.add_argument(
        "--fail-on-extra",
        action="store_true",
        default=None,
        help="Strict policy: also fail when unexpected keys are found",
    )
    parser.add_argument("--baseline", default=None, help="Baseline snapshot for progressive policy")
    parser.add_argument(
        "--grace-days",
        type=float,
        default=None,
        help="Days a removed baseline key is tolerated (progressive policy)",
    )
    parser.add_argument(
        "--update-baseline",
        action="store_true",
        help="Write the found keys back to the baseline after the check",
    )

    # Scanning options
    parser.add_argument("--max-depth", type=int, default=None, help="Maximum directory depth to scan")
    parser.add_argument("--workers", type=int, default=None, help="Worker threads (default: CPU count)")
    parser.add_argument(
        "--no-cache",
        action="store_false",
        dest="cache",
        default=None,
        help="Scan every file, ignoring the scan cache",
    )

    # Alternative modes
    parser.add_argument(
        "--generate-keys",
        action="store_true",
        help="Write the found keys as an expected-key list and exit",
    )
    parser.add_argument(
        "--key-constants-report",
        action="store_true",
        help="Report on the constants registry and key declaration styles and exit",
    )

    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    verbosity.add_argument("-q", "--quiet", action="store_true", help="Only log warnings and errors")

    return parser.parse_args(args)


def configure_logging(verbose: bool = False, quiet: bool = False) -> None:
    """Send log records to stderr through a single RichHandler."""
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        if isinstance(handler, RichHandler):
            root_logger.removeHandler(handler)

    handler = RichHandler(
        console=Console(stderr=True),
        show_time=False,
        show_path=False,
        markup=False,
        rich_tracebacks=True,
    )
    root_logger.addHandler(handler)
    if verbose:
        root_logger.setLevel(logging.DEBUG)
    elif quiet:
        root_logger.setLevel(logging.WARNING)
    else:
        root_logger.setLevel(logging.INFO)


def build_config(parsed) -> KeycheckConfig:
    """Load the config file and apply command line overrides."""
    directory = Path(parsed.root) if parsed.root else None
    config = load_config(
        path=Path(parsed.config) if parsed.config else None,
        directory=directory,
    )
    return config.merge_with(
        path=Path(parsed.root) if parsed.root else None,
        keys=Path(parsed.keys) if parsed.keys else None,
        include_only=parsed.include_only,
        exclude=parsed.exclude,
        tracked_keys=parsed.tracked_keys,
        policy=parsed.policy,
        fail_on_extra=parsed.fail_on_extra,
        baseline=Path(parsed.baseline) if parsed.baseline else None,
        grace_period_days=parsed.grace_days,
        max_depth=parsed.max_depth,
        workers=parsed.workers,
        cache=parsed.cache,
        report=parsed.format,
    )


def render(outcome: CheckOutcome, config: KeycheckConfig, parsed) -> str:
    """Render the outcome in the configured report format."""
    show_locations = not parsed.no_locations
    if config.report == "json":
        return to_json(outcome, registry_class=config.registry_class)
    if config.report == "markdown":
        return to_markdown(outcome, show_locations=show_locations)
    if config.report == "junit":
        return to_junit(outcome)
    return to_ascii(outcome, style=parsed.ascii_style, show_locations=show_locations)


def write_output(output: str, destination: Optional[str]) -> int:
    output = output.rstrip("\n")
    if destination:
        try:
            output_path = Path(destination)
            output_path.write_text(output + "\n", encoding="utf-8")
            print(f"Output written to: {output_path}", file=sys.stderr)
        except OSError as e:
            print(f"Error writing output: {e}", file=sys.stderr)
            return EXIT_IO_ERROR
    else:
        print(output)
    return EXIT_OK


def generate_keys(config: KeycheckConfig, parsed) -> int:
    """Scan the project and emit its keys as an expected-key list."""
    scan = scan_project(config, make_cache(config))
    keys = filter_keys(scan.found.keys, config.include_only, config.exclude)
    logger.info("Generated %d keys from %d files", len(keys), len(scan.scanned_files))
    return write_output(dump_expected_keys(keys), parsed.output)


def key_constants_report(config: KeycheckConfig, parsed) -> int:
    """Scan the project and describe its constants registry."""
    scan = scan_project(config, make_cache(config))
    report = registry_report(scan, config.registry_class)
    if config.report == "json":
        output = json.dumps(report.to_dict(), indent=2)
    else:
        output = registry_to_ascii(report, scan.root, style=parsed.ascii_style)
    return write_output(output, parsed.output)


def main(args=None):
    """Main entry point."""
    parsed = parse_args(args)
    configure_logging(parsed.verbose, parsed.quiet)

    try:
        config = build_config(parsed)
        if parsed.update_baseline and config.baseline is None:
            raise ConfigurationError("--update-baseline requires --baseline")
        if parsed.generate_keys:
            return generate_keys(config, parsed)
        if parsed.key_constants_report:
            return key_constants_report(config, parsed)
        outcome = check_project(config)
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    status = write_output(render(outcome, config, parsed), parsed.output)
    if status != EXIT_OK:
        return status

    if parsed.update_baseline:
        try:
            update_baseline(outcome, config.baseline)
        except ConfigurationError as e:
            print(f"Error: {e}", file=sys.stderr)
            return EXIT_CONFIG_ERROR
        except OSError as e:
            print(f"Error writing baseline: {e}", file=sys.stderr)
            return EXIT_IO_ERROR

    return EXIT_OK if outcome.result.passed else EXIT_VALIDATION_FAILED


if __name__ == "__main__":
    sys.exit(main())
