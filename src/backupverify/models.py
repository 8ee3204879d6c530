from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union


@dataclass(slots=True)
class VerifyStats:
    original_items: int = 0
    backup_items: int = 0
    similarities: int = 0
    differences: int = 0
    missing: int = 0
    extras: int = 0
    special_files: int = 0
    skipped: int = 0
    errors: int = 0

    def has_differences(self) -> bool:
        return bool(
            self.missing
            or self.differences
            or self.extras
            or self.special_files
            or self.errors
        )


class Direction(Enum):
    MISSING = "MISSING"
    EXTRA = "EXTRA"

    def label(self, kind: str) -> str:
        return f"{self.value}-{kind}"

    def count_item(self, stats: VerifyStats) -> None:
        if self is Direction.MISSING:
            stats.original_items += 1
        else:
            stats.backup_items += 1

    def count_result(self, stats: VerifyStats) -> None:
        if self is Direction.MISSING:
            stats.missing += 1
        else:
            stats.extras += 1


class DiffReason(str, Enum):
    SIZE = "SIZE"
    SAMPLE = "SAMPLE"
    HASH = "HASH"
    TYPE = "TYPE"


# Entry kinds produced by metadata.load_entry. Each call returns a fresh value.


@dataclass(frozen=True, slots=True)
class ErrorEntry:
    cause: str


@dataclass(frozen=True, slots=True)
class DanglingEntry:
    pass


@dataclass(frozen=True, slots=True)
class SpecialEntry:
    pass


@dataclass(frozen=True, slots=True)
class FileEntry:
    size: int


@dataclass(frozen=True, slots=True)
class DirEntry:
    names: tuple[str, ...]
    device: int


@dataclass(frozen=True, slots=True)
class SymlinkEntry:
    pass


EntryKind = Union[ErrorEntry, DanglingEntry, SpecialEntry, FileEntry, DirEntry, SymlinkEntry]


def kind_label(entry: EntryKind) -> str:
    if isinstance(entry, FileEntry):
        return "FILE"
    if isinstance(entry, DirEntry):
        return "DIR"
    if isinstance(entry, SymlinkEntry):
        return "SYMLINK"
    raise ValueError(f"No label for entry kind: {entry!r}")


def is_error_or_dangling(entry: EntryKind) -> bool:
    return isinstance(entry, (ErrorEntry, DanglingEntry))
