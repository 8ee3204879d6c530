from __future__ import annotations

import os
from pathlib import Path
import stat

from backupverify.models import (
    DanglingEntry,
    DirEntry,
    EntryKind,
    ErrorEntry,
    FileEntry,
    SpecialEntry,
    SymlinkEntry,
)


def describe_os_error(exc: OSError) -> str:
    return exc.strerror or str(exc)


def sorted_names(names: list[str]) -> tuple[str, ...]:
    return tuple(sorted(names, key=os.fsencode))


def load_entry(path: Path, follow: bool) -> EntryKind:
    """Classify ``path`` into an entry kind.

    With ``follow`` false the terminal symlink is never dereferenced. With
    ``follow`` true it is, and a missing target yields ``DanglingEntry``.
    Symlink loops surface as an ordinary ``ErrorEntry`` (ELOOP).
    """
    try:
        st = os.stat(path) if follow else os.lstat(path)
    except FileNotFoundError as exc:
        if follow:
            return DanglingEntry()
        return ErrorEntry(f"Cannot stat [{path}]: {describe_os_error(exc)}")
    except OSError as exc:
        return ErrorEntry(f"Cannot stat [{path}]: {describe_os_error(exc)}")

    mode = st.st_mode
    if not follow and stat.S_ISLNK(mode):
        return SymlinkEntry()

    if stat.S_ISDIR(mode):
        try:
            names = os.listdir(path)
        except OSError as exc:
            return ErrorEntry(f"Cannot read directory [{path}]: {describe_os_error(exc)}")
        return DirEntry(names=sorted_names(names), device=st.st_dev)

    if stat.S_ISREG(mode):
        return FileEntry(size=st.st_size)

    return SpecialEntry()
