"""
Deployment Diagnostic Tool

Runs ordered diagnostic suites (DNS, URL discovery, health endpoints, API
smoke tests, TLS, configuration variables, public IP, deployment package)
against a deployed web API and prints a report.

Usage:
    deploydiag dns api
    deploydiag urls --json report.json
    python -m deploydiag.main --list
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from . import __version__
from .diagnostics import DiagnosticRunner, InvalidInput, ReportGenerator, SuiteBuilder
from .diagnostics.reports import format_outcome
from .utils import Config, get_logger, setup_logging

logger = get_logger(__name__)

DEFAULT_SUITES = ["dns", "health", "api"]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="deploydiag",
        description="Diagnostic checks for a deployed web API"
    )
    parser.add_argument(
        "suites", nargs="*", metavar="SUITE",
        help=f"Suites to run in order (default: {' '.join(DEFAULT_SUITES)})"
    )
    parser.add_argument("--list", action="store_true", help="List available suites and exit")
    parser.add_argument("--all", action="store_true", help="Run every suite")
    parser.add_argument("--config", type=Path, help="Path to JSON config file")
    parser.add_argument("--api-url", help="Override the API base URL")
    parser.add_argument("--timeout", type=float, help="Override HTTP and DNS timeouts (seconds)")
    parser.add_argument("--env-file", help="Override the .env file read by the env suite")
    parser.add_argument("--package-root", help="Override the deployment package root")
    parser.add_argument(
        "--early-exit", action=argparse.BooleanOptionalAction, default=None,
        help="Stop each suite at its first successful check (default: per suite)"
    )
    parser.add_argument("--progress", action="store_true", help="Print each check as it finishes")
    parser.add_argument("--details", action="store_true", help="Include check details in the text report")
    parser.add_argument("--json", type=Path, dest="json_path", help="Also write a JSON report")
    parser.add_argument("--text", type=Path, dest="text_path", help="Also write a text report")
    parser.add_argument("--log-level", help="Logging level (DEBUG, INFO, WARNING, ...)")
    parser.add_argument("--log-file", type=Path, help="Also write logs to this file")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def apply_overrides(config: Config, args: argparse.Namespace) -> Config:
    """Apply command-line overrides on top of the loaded configuration."""
    if args.api_url:
        config.api_base_url = args.api_url
    if args.timeout:
        config.http_timeout = args.timeout
        config.dns_timeout = args.timeout
    if args.env_file:
        config.env_file = args.env_file
    if args.package_root:
        config.package_root = args.package_root
    if args.log_level:
        config.log_level = args.log_level
    return config


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    config = apply_overrides(Config.load(args.config), args)
    try:
        setup_logging(config.log_level, args.log_file)
    except ValueError as e:
        parser.error(str(e))

    builder = SuiteBuilder(config)

    if args.list:
        for name in builder.builders:
            print(f"{name:10} {builder.build(name).description}")
        return 0

    names = list(builder.builders) if args.all else (args.suites or DEFAULT_SUITES)
    unknown = [name for name in names if name not in builder.builders]
    if unknown:
        parser.error(f"unknown suite(s): {', '.join(unknown)} "
                     f"(choose from {', '.join(builder.builders)})")

    callback = None
    if args.progress:
        def callback(check, result):
            print(format_outcome(check, result), flush=True)

    runner = DiagnosticRunner(check_callback=callback)
    reports = []
    failed = False

    for name in names:
        suite = builder.build(name)
        early_exit = suite.early_exit if args.early_exit is None else args.early_exit

        try:
            report = runner.run_suite(suite.name, suite.checks, early_exit=early_exit)
        except InvalidInput as e:
            logger.error(f"Suite {name} not run: {e}")
            failed = True
            continue

        reports.append(report)
        if early_exit:
            failed = failed or report.summary.first_success is None
        else:
            failed = failed or report.summary.failure > 0

    generator = ReportGenerator(show_details=args.details)
    if reports:
        print(generator.to_text(reports, args.text_path))
        if args.json_path:
            generator.to_json(reports, args.json_path)

    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
