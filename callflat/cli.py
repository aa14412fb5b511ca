#!/usr/bin/env python3
"""
CLI entrypoint for callflat.

Usage:
    callflat <summaries.yml> [--entry NAME ...] [--smt2] [--no-warnings] [--verbose]

Returns:
    0: constraints flattened, no warnings
    1: constraints flattened, warnings emitted
    3: Error (file not found, malformed summaries, unknown entry point)
"""

import argparse
import logging
import sys
from pathlib import Path

from .analyzer import Analyzer
from .config import CallflatConfig, ConfigError
from .frontend.summary_loader import SummaryFormatError, load_summaries


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="callflat: flatten function summaries into one constraint system per entry point"
    )
    parser.add_argument("summaries", type=Path, help="YAML/JSON file of function summaries")
    parser.add_argument(
        "--entry",
        action="append",
        help="Entry function to flatten (repeatable; default: config entry-points, else all functions)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Configuration file (default: .callflat.yml next to the summaries)",
    )
    parser.add_argument("--smt2", action="store_true", help="Print constraints as SMT-LIB")
    parser.add_argument(
        "--no-warnings",
        action="store_true",
        help="Skip the unresolved-assert check",
    )
    parser.add_argument("--verbose", action="store_true", help="Verbose output")

    args = parser.parse_args(argv)

    if not args.summaries.exists():
        print(f"Error: File not found: {args.summaries}", file=sys.stderr)
        return 3

    try:
        if args.config is not None:
            config = CallflatConfig.load_file(args.config)
        else:
            config = CallflatConfig.load(args.summaries.resolve().parent)
    except (OSError, ConfigError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 3

    if args.no_warnings:
        config.analysis.warn_unresolved_asserts = False
    if args.smt2:
        config.output.format = "smt2"

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else config.logging.level,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        environment, type_environment = load_summaries(args.summaries)
    except SummaryFormatError as e:
        print(f"Error: {args.summaries}: {e}", file=sys.stderr)
        return 3

    analyzer = Analyzer(config=config, verbose=args.verbose)
    analyzer.environment = environment
    analyzer.type_environment = type_environment

    entry_points = args.entry or config.analysis.entry_points or None
    if entry_points:
        unknown = [name for name in entry_points if name not in environment]
        if unknown:
            print(f"Error: no summary for entry point(s): {', '.join(unknown)}", file=sys.stderr)
            return 3

    if args.verbose:
        print(f"Summaries: {len(environment)}")
        for name in sorted(environment):
            summary = environment[name]
            text = summary.pretty_description if config.output.pretty else str(summary)
            print(f"  {name}: {text}")
        print()

    results = analyzer.check_all(entry_points)

    total_warnings = 0
    for result in results:
        if config.output.format == "smt2":
            print(f"; {result.function_name}")
            print(result.to_smt2())
            for warning in result.warnings:
                print(f"; {warning}")
        else:
            print(result.summary())
        total_warnings += len(result.warnings)

    if total_warnings:
        print(f"\nTotal warnings: {total_warnings}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
