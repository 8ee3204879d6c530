from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
import random
import sys
from typing import TextIO

from backupverify.compare_engine import TreeComparator
from backupverify.config import VerifyConfig
from backupverify.models import VerifyStats
from backupverify.output import EventWriter


EXIT_SUCCESS = 0
EXIT_DIFFERENCES = 1
EXIT_INVALID_CONFIG = 2
EXIT_INTERRUPTED = 130

# Deep enough for trees nested up to the OS path length limit.
RECURSION_LIMIT = 20_000

LOGGER_NAME = "backupverify.run"


def configure_file_logging(log_file: Path, logger: logging.Logger | None = None) -> logging.Handler:
    log = logger or logging.getLogger(LOGGER_NAME)
    log.setLevel(logging.INFO)
    log_file.parent.mkdir(parents=True, exist_ok=True)

    handler = RotatingFileHandler(log_file, maxBytes=1_000_000, backupCount=3, encoding="utf-8")
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(message)s"))
    log.addHandler(handler)
    return handler


def _raise_recursion_limit() -> None:
    if sys.getrecursionlimit() < RECURSION_LIMIT:
        sys.setrecursionlimit(RECURSION_LIMIT)


def run_verification(
    config: VerifyConfig,
    stream: TextIO | None = None,
    logger: logging.Logger | None = None,
    rng: random.Random | None = None,
) -> tuple[int, VerifyStats]:
    log = logger or logging.getLogger(LOGGER_NAME)
    writer = EventWriter(stream, verbosity=config.verbosity)
    stats = VerifyStats()

    log.info(
        "Verifying %s against %s | samples=%s all=%s follow=%s one_filesystem=%s",
        config.original,
        config.backup,
        config.samples,
        config.hash_all,
        config.follow,
        config.one_filesystem,
    )

    _raise_recursion_limit()
    comparator = TreeComparator(config, stats, writer, rng=rng)
    try:
        comparator.run()
    except KeyboardInterrupt:
        print("\nInterrupted!", file=sys.stderr)
        writer.summary(stats)
        writer.flush()
        log.warning("Interrupted after %s original and %s backup items", stats.original_items, stats.backup_items)
        return EXIT_INTERRUPTED, stats

    writer.summary(stats)
    writer.flush()

    log.info(
        "Finished %s | missing=%s different=%s extras=%s special=%s similar=%s skipped=%s errors=%s",
        config.original,
        stats.missing,
        stats.differences,
        stats.extras,
        stats.special_files,
        stats.similarities,
        stats.skipped,
        stats.errors,
    )

    exit_code = EXIT_DIFFERENCES if stats.has_differences() else EXIT_SUCCESS
    return exit_code, stats
