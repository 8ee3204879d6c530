from __future__ import annotations

import argparse
import logging
from pathlib import Path
import sys
from typing import Any

from backupverify.config import MAX_VERBOSITY, FileSettings, VerifyConfig, build_config, load_config_file
from backupverify.output import format_command_line
from backupverify.run_service import (
    EXIT_INVALID_CONFIG,
    LOGGER_NAME,
    configure_file_logging,
    run_verification,
)


PROG = "backup-verify"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=PROG,
        description="Verify backup integrity by comparing directory trees",
    )
    parser.add_argument("original", type=Path, help="Original directory")
    parser.add_argument("backup", type=Path, help="Backup directory")
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=None,
        help="Verbose output (-v for dirs, -vv for files)",
    )
    parser.add_argument(
        "-s",
        "--samples",
        type=int,
        default=None,
        help="Number of random samples to compare per file",
    )
    parser.add_argument(
        "-a",
        "--all",
        dest="hash_all",
        action="store_true",
        default=None,
        help="Full BLAKE3 hash comparison",
    )
    parser.add_argument("--follow", action="store_true", default=None, help="Follow symlinks")
    parser.add_argument(
        "-o",
        "--one-filesystem",
        dest="one_filesystem",
        action="store_true",
        default=None,
        help="Stay on one filesystem",
    )
    parser.add_argument(
        "-i",
        "--ignore",
        action="append",
        type=Path,
        default=[],
        help="Path to ignore in both trees (repeatable)",
    )
    parser.add_argument(
        "-e",
        "--exclude",
        action="append",
        default=[],
        help="Gitignore-style pattern to skip in both trees (repeatable)",
    )
    parser.add_argument("-c", "--config", type=Path, help="YAML or JSON file with default options")
    parser.add_argument("--log-file", type=Path, help="Write a rotating run log to this file")
    return parser


def _pick(cli_value: Any, file_value: Any, default: Any) -> Any:
    if cli_value is not None:
        return cli_value
    if file_value is not None:
        return file_value
    return default


def _config_from_args(args: argparse.Namespace) -> VerifyConfig:
    settings = load_config_file(args.config) if args.config else FileSettings()
    return build_config(
        original=args.original,
        backup=args.backup,
        verbosity=_pick(args.verbose, settings.verbose, 0),
        samples=_pick(args.samples, settings.samples, 0),
        hash_all=_pick(args.hash_all, settings.hash_all, False),
        follow=_pick(args.follow, settings.follow, False),
        one_filesystem=_pick(args.one_filesystem, settings.one_filesystem, False),
        ignore_paths=[Path(raw).expanduser() for raw in settings.ignore] + list(args.ignore),
        exclude_patterns=settings.exclude + list(args.exclude),
    )


def main(argv: list[str] | None = None) -> int:
    raw_argv = list(sys.argv[1:] if argv is None else argv)
    parser = _build_parser()
    args = parser.parse_args(raw_argv)

    if args.verbose is not None and args.verbose > MAX_VERBOSITY:
        print(
            f"Error: verbosity may be specified at most twice (specified {args.verbose} times)",
            file=sys.stderr,
        )
        return EXIT_INVALID_CONFIG

    try:
        config = _config_from_args(args)
    except Exception as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_INVALID_CONFIG

    if config.same_roots:
        print("Warning: original and backup are the same directory", file=sys.stderr)

    logger = logging.getLogger(LOGGER_NAME)
    handler = configure_file_logging(args.log_file, logger) if args.log_file else None

    print(format_command_line([PROG, *raw_argv]), flush=True)
    try:
        exit_code, _stats = run_verification(config, stream=sys.stdout, logger=logger)
    finally:
        if handler is not None:
            logger.removeHandler(handler)
            handler.close()
    return exit_code


if __name__ == "__main__":
    raise SystemExit(main())
