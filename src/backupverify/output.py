from __future__ import annotations

from pathlib import Path
import shlex
import sys
from typing import TextIO

from backupverify.models import VerifyStats


VERBOSITY_QUIET = 0
VERBOSITY_DIRS = 1
VERBOSITY_FILES = 2


def _percent(part: int, whole: int) -> float:
    if whole <= 0:
        return 0.0
    return part / whole * 100.0


def format_summary(stats: VerifyStats) -> str:
    lines = [
        "SUMMARY:",
        f"    Original items processed: {stats.original_items}",
        f"    Backup items processed: {stats.backup_items}",
        f"    Missing: {stats.missing} ({_percent(stats.missing, stats.original_items):.2f}%)",
        f"    Different: {stats.differences} ({_percent(stats.differences, stats.original_items):.2f}%)",
        f"    Extras: {stats.extras} ({_percent(stats.extras, stats.backup_items):.2f}%)",
        f"    Special files: {stats.special_files}",
        f"    Similarities: {stats.similarities}",
        f"    Skipped: {stats.skipped}",
        f"    Errors: {stats.errors}",
    ]
    return "\n".join(lines)


def format_command_line(argv: list[str]) -> str:
    return f"CMD: {shlex.join(argv)}"


class EventWriter:
    """Write one line per comparison event to a text stream.

    Event lines look like ``LABEL: [path]`` with an optional ``(detail)``
    suffix. DEBUG lines are dropped below their verbosity level.
    """

    def __init__(self, stream: TextIO | None = None, verbosity: int = VERBOSITY_QUIET) -> None:
        self.stream = stream if stream is not None else sys.stdout
        self.verbosity = verbosity

    def _write(self, line: str) -> None:
        self.stream.write(line + "\n")

    def event(self, label: str, path: Path, detail: str | None = None) -> None:
        suffix = f" ({detail})" if detail else ""
        self._write(f"{label}: [{path}]{suffix}")

    def error(self, message: str) -> None:
        self._write(f"ERROR: {message}")

    def debug(self, level: int, message: str) -> None:
        if self.verbosity >= level:
            self._write(f"DEBUG: {message}")

    def summary(self, stats: VerifyStats) -> None:
        self._write(format_summary(stats))

    def flush(self) -> None:
        self.stream.flush()
