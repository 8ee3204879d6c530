from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable

import pathspec


ROOT = Path(".")


def _absolute(path: Path) -> Path:
    # Lexical only: symlinked parents in the typed path are kept as typed.
    return Path(os.path.abspath(path))


def _relative_to_any(path: Path, roots: Iterable[Path]) -> Path | None:
    for root in roots:
        if path.is_relative_to(root):
            return path.relative_to(root)
    return None


def resolve_ignore_paths(
    raw_paths: Iterable[Path],
    original_input: Path,
    backup_input: Path,
    original: Path,
    backup: Path,
) -> frozenset[Path]:
    """Turn ignore paths into root-relative paths shared by both trees.

    A path is accepted when it lies under either root as typed on the command
    line or under either canonical root.
    """
    roots = [_absolute(original_input), original, _absolute(backup_input), backup]
    resolved: set[Path] = set()
    for raw in raw_paths:
        if not os.path.lexists(raw):
            raise ValueError(f"Ignore path {raw} does not exist or cannot be resolved")
        relative = _relative_to_any(_absolute(raw), roots)
        if relative is None:
            raise ValueError(
                f"Ignore path {raw} is not within the original ({original}) "
                f"or backup ({backup}) directory"
            )
        resolved.add(relative)
    return frozenset(resolved)


class IgnoreEngine:
    def __init__(self, ignored: Iterable[Path] = (), patterns: Iterable[str] = ()) -> None:
        self._ignored = frozenset(ignored)
        self._patterns = [pattern for pattern in patterns if pattern.strip()]
        self._spec = pathspec.PathSpec.from_lines("gitignore", self._patterns) if self._patterns else None

    @property
    def ignored(self) -> frozenset[Path]:
        return self._ignored

    @property
    def patterns(self) -> list[str]:
        return list(self._patterns)

    def is_ignored(self, relative_path: Path) -> bool:
        if relative_path in self._ignored:
            return True
        if self._spec is None or relative_path == ROOT:
            return False
        unix_path = relative_path.as_posix()
        return self._spec.match_file(unix_path) or self._spec.match_file(f"{unix_path}/")
