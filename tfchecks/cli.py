"""Command-line entry point for the custom check scanner."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Iterable, List, Optional

from .config import CONFIG_DIR, ScanConfig, find_default_config, load_config
from .custom import CustomCheckRunner, build_registry
from .errors import CheckError
from .result import ScanResult, format_summary_table
from .rules import ScanContext
from .severity import Severity
from .utils import iac

logger = logging.getLogger(__name__)

DEFAULT_TARGET = "."
LOAD_ERROR_EXIT_CODE = 3


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    # suppressed default so a subcommand does not reset a flag given before it
    common.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        default=argparse.SUPPRESS,
        help="Enable debug logging.",
    )

    parser = argparse.ArgumentParser(
        prog="tfchecks",
        description="Evaluate declarative custom checks against Terraform JSON configuration",
        parents=[common],
    )
    subparsers = parser.add_subparsers(dest="command")

    scan = subparsers.add_parser("scan", parents=[common], help="Scan a configuration directory.")
    scan.add_argument(
        "target",
        nargs="?",
        default=DEFAULT_TARGET,
        help="Directory containing *.tf.json files (defaults to the current directory).",
    )
    scan.add_argument(
        "--checks",
        dest="check_paths",
        action="append",
        default=[],
        help=f"Checks file or directory (repeatable, defaults to <target>/{CONFIG_DIR}).",
    )
    scan.add_argument(
        "--config",
        dest="config_path",
        default=None,
        help=f"Scan config file (defaults to <target>/{CONFIG_DIR}/config.yml when present).",
    )
    scan.add_argument(
        "--exclude",
        "-e",
        action="append",
        default=[],
        help="Check code to skip (repeatable).",
    )
    scan.add_argument(
        "--minimum-severity",
        choices=[severity.value for severity in Severity],
        default=None,
        type=str.upper,
        help="Drop findings below this severity.",
    )
    scan.add_argument("--workers", type=int, default=None, help="Number of evaluation threads.")
    scan.add_argument(
        "--format",
        choices=["json"],
        default="json",
        help="Report format for file output (defaults to json).",
    )
    scan.add_argument(
        "--out",
        "--output",
        dest="output_path",
        type=str,
        default=None,
        help="Path to write the structured report (e.g., artifacts/scan.json).",
    )

    validate = subparsers.add_parser("validate", parents=[common], help="Load and validate checks files.")
    validate.add_argument("paths", nargs="+", help="Checks files or directories to validate.")
    return parser


def resolve_config(
    target: str,
    config_path: Optional[str] = None,
    exclude: Iterable[str] = (),
    minimum_severity: Optional[str] = None,
    workers: Optional[int] = None,
) -> ScanConfig:
    path = Path(config_path) if config_path else find_default_config(target)
    config = load_config(path) if path else ScanConfig()
    return config.merged(exclude=exclude, minimum_severity=minimum_severity, workers=workers)


def run_scan(target: str, check_paths: Iterable[str], config: Optional[ScanConfig] = None) -> ScanResult:
    paths = list(check_paths)
    searched = paths
    if not paths:
        default_dir = Path(target) / CONFIG_DIR
        searched = [str(default_dir)]
        # only explicitly requested paths must exist
        if default_dir.is_dir():
            paths = searched
    registry = build_registry(paths)
    if not registry:
        logger.warning("No custom checks found in %s", ", ".join(searched))
    modules = iac.load_modules(Path(target))
    context = ScanContext(modules=modules, target=target)
    result = ScanResult()
    CustomCheckRunner(registry, config).scan(context, result)
    return result


def write_output(result: ScanResult, output_path: str | None, report_format: str) -> None:
    summary = format_summary_table(result)
    print(summary)

    if report_format == "json":
        payload = json.dumps(result.to_dict(), indent=2)
        if output_path:
            output_file = Path(output_path)
            output_file.parent.mkdir(parents=True, exist_ok=True)
            output_file.write_text(payload, encoding="utf-8")
            print(f"\nReport written to {output_path}")
        else:
            print("\nJSON Report")
            print(payload)


def validate_checks(paths: Iterable[str]) -> int:
    for path in paths:
        registry = build_registry([path])
        for code, check in registry.items():
            print(f"{code}\t{check.severity.value}\t{check.source}")
        print(f"{path}: {len(registry)} check(s) OK")
    return 0


def main(argv: List[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if getattr(args, "verbose", False) else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        return 0

    try:
        if args.command == "validate":
            return validate_checks(args.paths)
        config = resolve_config(
            args.target,
            args.config_path,
            exclude=args.exclude,
            minimum_severity=args.minimum_severity,
            workers=args.workers,
        )
        result = run_scan(args.target, args.check_paths, config)
    except CheckError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return LOAD_ERROR_EXIT_CODE

    write_output(result, args.output_path, args.format)
    return result.exit_code()


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
