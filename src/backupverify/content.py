from __future__ import annotations

from dataclasses import dataclass
import errno
from pathlib import Path
import random

from blake3 import blake3

from backupverify.metadata import describe_os_error
from backupverify.models import DiffReason, VerifyStats
from backupverify.output import VERBOSITY_FILES, EventWriter


SAMPLE_SIZE = 32
HASH_CHUNK_SIZE = 1024 * 1024


@dataclass(frozen=True, slots=True)
class ContentVerdict:
    reason: DiffReason | None = None
    read_failed: bool = False

    @property
    def same(self) -> bool:
        return self.reason is None and not self.read_failed


def hash_file(path: Path) -> str:
    digest = blake3()
    with path.open("rb") as handle:
        for chunk in iter(lambda: handle.read(HASH_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def read_sample(path: Path, offset: int, length: int) -> bytes:
    with path.open("rb") as handle:
        handle.seek(offset)
        data = handle.read(length)
    if len(data) != length:
        raise OSError(errno.EIO, "file is shorter than expected")
    return data


def sample_offsets(size: int, count: int, rng: random.Random) -> list[int]:
    max_offset = max(size - SAMPLE_SIZE, 0)
    return [rng.randint(0, max_offset) if max_offset else 0 for _ in range(count)]


class ContentComparer:
    """Compare two regular files by size, random samples and BLAKE3 digest.

    Tiers run in that order and stop at the first mismatch. Read failures are
    reported for each side on its own and void the verdict.
    """

    def __init__(
        self,
        writer: EventWriter,
        stats: VerifyStats,
        samples: int = 0,
        hash_all: bool = False,
        rng: random.Random | None = None,
    ) -> None:
        self.writer = writer
        self.stats = stats
        self.samples = samples
        self.hash_all = hash_all
        self.rng = rng or random.Random()

    def compare(self, orig: Path, backup: Path, orig_size: int, backup_size: int) -> ContentVerdict:
        if orig_size != backup_size:
            return ContentVerdict(reason=DiffReason.SIZE)

        if self.samples > 0 and orig_size > 0:
            verdict = self._compare_samples(orig, backup, orig_size)
            if not verdict.same:
                return verdict

        if self.hash_all:
            return self._compare_hashes(orig, backup)

        return ContentVerdict()

    def _compare_samples(self, orig: Path, backup: Path, size: int) -> ContentVerdict:
        length = min(SAMPLE_SIZE, size)
        for offset in sample_offsets(size, self.samples, self.rng):
            orig_data = self._read_side(orig, offset, length)
            backup_data = self._read_side(backup, offset, length)
            if orig_data is None or backup_data is None:
                return ContentVerdict(read_failed=True)
            if orig_data != backup_data:
                return ContentVerdict(reason=DiffReason.SAMPLE)
        return ContentVerdict()

    def _read_side(self, path: Path, offset: int, length: int) -> bytes | None:
        try:
            return read_sample(path, offset, length)
        except OSError as exc:
            self.writer.error(f"Cannot read sample from [{path}]: {describe_os_error(exc)}")
            self.stats.errors += 1
            return None

    def _compare_hashes(self, orig: Path, backup: Path) -> ContentVerdict:
        orig_hash = self._hash_side(orig)
        backup_hash = self._hash_side(backup)
        if orig_hash is None or backup_hash is None:
            return ContentVerdict(read_failed=True)

        self.writer.debug(VERBOSITY_FILES, f"BLAKE3 {orig_hash} [{orig}]")
        self.writer.debug(VERBOSITY_FILES, f"BLAKE3 {backup_hash} [{backup}]")

        if orig_hash != backup_hash:
            return ContentVerdict(reason=DiffReason.HASH)
        return ContentVerdict()

    def _hash_side(self, path: Path) -> str | None:
        try:
            return hash_file(path)
        except OSError as exc:
            self.writer.error(f"Cannot hash [{path}]: {describe_os_error(exc)}")
            self.stats.errors += 1
            return None
