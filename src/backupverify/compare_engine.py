from __future__ import annotations

import os
from pathlib import Path
import random
from typing import TYPE_CHECKING

from backupverify.content import ContentComparer
from backupverify.metadata import describe_os_error, load_entry, sorted_names
from backupverify.models import (
    DanglingEntry,
    DiffReason,
    Direction,
    DirEntry,
    EntryKind,
    ErrorEntry,
    FileEntry,
    SpecialEntry,
    SymlinkEntry,
    VerifyStats,
    is_error_or_dangling,
    kind_label,
)
from backupverify.output import VERBOSITY_DIRS, VERBOSITY_FILES, EventWriter

if TYPE_CHECKING:
    from backupverify.config import VerifyConfig


class TreeComparator:
    """Walk an original and a backup tree side by side.

    Every method counts only the entries it owns: callers never pre-count an
    entry before handing it over. Counters live in ``stats`` and only grow.
    """

    def __init__(
        self,
        config: VerifyConfig,
        stats: VerifyStats,
        writer: EventWriter,
        rng: random.Random | None = None,
    ) -> None:
        self.config = config
        self.stats = stats
        self.writer = writer
        self.content = ContentComparer(
            writer,
            stats,
            samples=config.samples,
            hash_all=config.hash_all,
            rng=rng,
        )
        self._root_devices: tuple[int, int] | None = None
        if config.one_filesystem:
            self._root_devices = (
                os.stat(config.original).st_dev,
                os.stat(config.backup).st_dev,
            )

    def run(self) -> VerifyStats:
        self.compare(self.config.original, self.config.backup)
        return self.stats

    # -- helpers --------------------------------------------------------

    def _is_ignored(self, path: Path, root: Path) -> bool:
        return self.config.ignore.is_ignored(path.relative_to(root))

    def _skip(self, path: Path) -> None:
        self.writer.event("SKIP", path)
        self.stats.skipped += 1

    def _on_other_filesystem(self, entry: DirEntry, direction: Direction) -> bool:
        if self._root_devices is None:
            return False
        root_device = self._root_devices[0 if direction is Direction.MISSING else 1]
        return entry.device != root_device

    def _count_failure(self, path: Path, entry: EntryKind) -> None:
        if isinstance(entry, ErrorEntry):
            self.writer.error(entry.cause)
        else:
            self.writer.event("DANGLING-SYMLINK", path)
        self.stats.errors += 1

    # -- pairwise comparison --------------------------------------------

    def compare(self, orig: Path, backup: Path, follow: bool = False) -> None:
        if self._is_ignored(orig, self.config.original) or self._is_ignored(backup, self.config.backup):
            self._skip(orig)
            return

        meta_orig = load_entry(orig, follow)
        meta_back = load_entry(backup, follow)
        orig_done = False
        back_done = False

        if is_error_or_dangling(meta_orig):
            self.stats.original_items += 1
            self._count_failure(orig, meta_orig)
            orig_done = True
        if is_error_or_dangling(meta_back):
            self.stats.backup_items += 1
            self._count_failure(backup, meta_back)
            back_done = True
        if orig_done and back_done:
            return

        if isinstance(meta_orig, SpecialEntry):
            self.stats.original_items += 1
            self.writer.event("NOT_A_FILE_OR_DIR", orig)
            self.stats.special_files += 1
            orig_done = True
        if isinstance(meta_back, SpecialEntry):
            self.stats.backup_items += 1
            self.writer.event("NOT_A_FILE_OR_DIR", backup)
            self.stats.special_files += 1
            back_done = True
        if orig_done and back_done:
            return

        if orig_done:
            self._recover_backup_side(backup, meta_orig, follow)
            return
        if back_done:
            self._recover_original_side(orig, meta_orig, meta_back, follow)
            return

        if isinstance(meta_orig, FileEntry) and isinstance(meta_back, FileEntry):
            self.compare_files(orig, backup, meta_orig, meta_back)
            return
        if isinstance(meta_orig, DirEntry) and isinstance(meta_back, DirEntry):
            self.compare_directories(orig, backup, meta_orig, meta_back)
            return
        if isinstance(meta_orig, SymlinkEntry) and isinstance(meta_back, SymlinkEntry):
            self.compare_symlinks(orig, backup)
            return

        if isinstance(meta_orig, SymlinkEntry) or isinstance(meta_back, SymlinkEntry):
            self.writer.event("DIFFERENT-SYMLINK-STATUS", orig, "symlink mismatch")
        else:
            detail = "file vs dir" if isinstance(meta_orig, FileEntry) else "dir vs file"
            self.writer.event(f"DIFFERENT-FILE [{DiffReason.TYPE.value}]", orig, detail)
        self.stats.differences += 1

        self.report(orig, Direction.MISSING, follow)
        self.report(backup, Direction.EXTRA, follow)

    def _recover_backup_side(self, backup: Path, meta_orig: EntryKind, follow: bool) -> None:
        # An unreadable original never turns its backup counterpart into an extra.
        if isinstance(meta_orig, ErrorEntry):
            self.stats.backup_items += 1
            self.writer.debug(VERBOSITY_DIRS, f"Not reporting [{backup}] as extra: original could not be read")
            return
        self.report(backup, Direction.EXTRA, follow)

    def _recover_original_side(
        self,
        orig: Path,
        meta_orig: EntryKind,
        meta_back: EntryKind,
        follow: bool,
    ) -> None:
        if isinstance(meta_back, ErrorEntry) and not isinstance(meta_orig, DirEntry):
            self.stats.original_items += 1
            self.writer.debug(VERBOSITY_DIRS, f"Not reporting [{orig}] as missing: backup could not be read")
            return
        self.report(orig, Direction.MISSING, follow)

    def compare_files(self, orig: Path, backup: Path, meta_orig: FileEntry, meta_back: FileEntry) -> None:
        self.stats.original_items += 1
        self.stats.backup_items += 1
        self.writer.debug(VERBOSITY_FILES, f"Comparing file [{orig}] to [{backup}]")

        verdict = self.content.compare(orig, backup, meta_orig.size, meta_back.size)
        if verdict.read_failed:
            return
        if verdict.reason is not None:
            self.writer.event(f"DIFFERENT-FILE [{verdict.reason.value}]", orig)
            self.stats.differences += 1
        else:
            self.stats.similarities += 1

    def compare_directories(self, orig: Path, backup: Path, meta_orig: DirEntry, meta_back: DirEntry) -> None:
        self.writer.debug(VERBOSITY_DIRS, f"Comparing [{orig}] to [{backup}]")
        self.stats.original_items += 1
        self.stats.backup_items += 1

        if self._on_other_filesystem(meta_orig, Direction.MISSING) or self._on_other_filesystem(
            meta_back, Direction.EXTRA
        ):
            self.writer.event("DIFFERENT-FS", orig)
            self.stats.skipped += 1
            return

        self.stats.similarities += 1

        backup_names = set(meta_back.names)
        for name in meta_orig.names:
            if name in backup_names:
                backup_names.remove(name)
                self.compare(orig / name, backup / name)
            else:
                self.report(orig / name, Direction.MISSING)

        for name in sorted_names(list(backup_names)):
            self.report(backup / name, Direction.EXTRA)

    def compare_symlinks(self, orig: Path, backup: Path) -> None:
        try:
            orig_target = os.readlink(orig)
        except OSError as exc:
            self.stats.original_items += 1
            self.writer.error(f"Cannot read symlink target for [{orig}]: {describe_os_error(exc)}")
            self.stats.errors += 1
            self.report(backup, Direction.EXTRA)
            return
        try:
            backup_target = os.readlink(backup)
        except OSError as exc:
            self.stats.backup_items += 1
            self.writer.error(f"Cannot read symlink target for [{backup}]: {describe_os_error(exc)}")
            self.stats.errors += 1
            self.report(orig, Direction.MISSING)
            return

        self.stats.original_items += 1
        self.stats.backup_items += 1

        if orig_target != backup_target:
            self.writer.event(
                "DIFFERENT-SYMLINK-TARGET",
                orig,
                f"targets differ: {orig_target!r} vs {backup_target!r}",
            )
            self.stats.differences += 1
        else:
            self.stats.similarities += 1

        if not self.config.follow:
            self.writer.event("SYMLINK", orig, "symlink, use --follow to compare content")
            self.stats.skipped += 1
            return

        # Dereferenced metadata never yields a symlink, so this cannot recurse back here.
        self.compare(orig, backup, follow=True)

    # -- one-sided subtrees ---------------------------------------------

    def report(self, path: Path, direction: Direction, follow: bool = False, announce: bool = True) -> None:
        """Count and report ``path`` and everything below it as missing or extra.

        ``announce`` controls the MISSING/EXTRA line for this entry; children
        are announced only at file-level verbosity. Errors, dangling links,
        skips and filesystem crossings are always printed.
        """
        root = self.config.original if direction is Direction.MISSING else self.config.backup
        if self._is_ignored(path, root):
            self._skip(path)
            return

        direction.count_item(self.stats)
        entry = load_entry(path, follow)

        if isinstance(entry, (ErrorEntry, DanglingEntry)):
            self._count_failure(path, entry)
            return
        if isinstance(entry, SpecialEntry):
            if announce:
                self.writer.event("NOT_A_FILE_OR_DIR", path)
            self.stats.special_files += 1
            return
        if isinstance(entry, DirEntry) and self._on_other_filesystem(entry, direction):
            self.writer.event("DIFFERENT-FS", path)
            self.stats.skipped += 1
            return

        if announce:
            self.writer.event(direction.label(kind_label(entry)), path)
        direction.count_result(self.stats)

        announce_children = self.writer.verbosity >= VERBOSITY_FILES
        if isinstance(entry, DirEntry):
            for name in entry.names:
                self.report(path / name, direction, announce=announce_children)
        elif isinstance(entry, SymlinkEntry) and self.config.follow:
            self.report(path, direction, follow=True, announce=announce_children)
