from __future__ import annotations

import argparse
import logging
import sys
from typing import Sequence

from cosmos.core.errors import main_with_error_handling
from cosmos.logging import configure_logging
from cosmos.openapi.changes import SEVERITY_ORDER

SEVERITY_CHOICES = [severity.value for severity in SEVERITY_ORDER]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="cosmos", description="Cosmos CLI")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command")

    validate_parser = subparsers.add_parser(
        "validate-manifest", help="Validate an openclient manifest file"
    )
    validate_parser.add_argument("file", help="Path to the manifest (JSON or YAML)")
    validate_parser.add_argument(
        "--application", help="Name of the consumer the manifest belongs to"
    )

    diff_parser = subparsers.add_parser(
        "diff", help="Compare two OpenAPI documents for compatibility"
    )
    diff_parser.add_argument("old", help="Previous document")
    diff_parser.add_argument("new", help="Candidate document")
    diff_parser.add_argument(
        "--min-severity",
        choices=SEVERITY_CHOICES,
        default="info",
        help="Hide changes below this severity (default: info)",
    )
    diff_parser.add_argument(
        "--format",
        dest="output_format",
        choices=["table", "json"],
        default="table",
        help="Output format (default: table)",
    )
    diff_parser.add_argument(
        "--fail-on",
        choices=["warning", "breaking"],
        default="breaking",
        help="Exit 1 when a change at or above this severity exists (default: breaking)",
    )

    sentinel_parser = subparsers.add_parser(
        "sentinel", help="Periodically re-monitor every application"
    )
    sentinel_parser.add_argument(
        "--once", action="store_true", help="Run a single sweep and exit"
    )

    return parser


@main_with_error_handling()
def run(args: argparse.Namespace) -> int:
    if args.command == "validate-manifest":
        from cosmos.cli.validate import validate_manifest_command

        return validate_manifest_command(args.file, args.application)

    if args.command == "diff":
        from cosmos.cli.diff import diff_command

        return diff_command(
            args.old,
            args.new,
            min_severity=args.min_severity,
            output_format=args.output_format,
            fail_on=args.fail_on,
        )

    if args.command == "sentinel":
        from cosmos.cli.sentinel import sentinel_command

        return sentinel_command(once=args.once)

    return 2


def main(argv: Sequence[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(2)

    configure_logging(logging.DEBUG if args.verbose else logging.WARNING, json_logs=False)
    sys.exit(run(args))


if __name__ == "__main__":
    main()
