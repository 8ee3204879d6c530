import io
from pathlib import Path
import random

from backupverify.content import ContentComparer, hash_file, read_sample, sample_offsets
from backupverify.models import DiffReason, VerifyStats
from backupverify.output import EventWriter


HELLO_WORLD_BLAKE3 = "dc5a4edb8240b018124052c330270696f96771a63b45250a5c17d3000e823355"


def _write_bytes(path: Path, content: bytes) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
    return path


def _comparer(samples: int = 0, hash_all: bool = False, verbosity: int = 0):
    stream = io.StringIO()
    stats = VerifyStats()
    comparer = ContentComparer(
        EventWriter(stream, verbosity=verbosity),
        stats,
        samples=samples,
        hash_all=hash_all,
        rng=random.Random(1234),
    )
    return comparer, stats, stream


def test_hash_file_matches_known_digest(tmp_path: Path) -> None:
    path = _write_bytes(tmp_path / "hello.txt", b"hello world\n")

    assert hash_file(path) == HELLO_WORLD_BLAKE3


def test_read_sample_short_read_raises(tmp_path: Path) -> None:
    path = _write_bytes(tmp_path / "short.bin", b"abc")

    assert read_sample(path, 1, 2) == b"bc"
    try:
        read_sample(path, 2, 5)
    except OSError as exc:
        assert "shorter" in str(exc)
    else:
        raise AssertionError("expected OSError")


def test_sample_offsets_stay_in_range() -> None:
    offsets = sample_offsets(100, 50, random.Random(7))

    assert len(offsets) == 50
    assert all(0 <= offset <= 68 for offset in offsets)
    assert sample_offsets(10, 3, random.Random(7)) == [0, 0, 0]


def test_size_difference_wins_before_reading(tmp_path: Path) -> None:
    orig = _write_bytes(tmp_path / "a", b"1234")
    backup = _write_bytes(tmp_path / "b", b"12345")
    comparer, stats, _ = _comparer(samples=3, hash_all=True)

    verdict = comparer.compare(orig, backup, 4, 5)

    assert verdict.reason is DiffReason.SIZE
    assert stats.errors == 0


def test_sample_detects_single_block_difference(tmp_path: Path) -> None:
    orig = _write_bytes(tmp_path / "a", b"x" * 20)
    backup = _write_bytes(tmp_path / "b", b"y" * 20)
    comparer, _, _ = _comparer(samples=1)

    verdict = comparer.compare(orig, backup, 20, 20)

    assert verdict.reason is DiffReason.SAMPLE


def test_hash_tier_catches_what_samples_miss(tmp_path: Path) -> None:
    body = b"a" * 4096
    orig = _write_bytes(tmp_path / "a", body + b"1")
    backup = _write_bytes(tmp_path / "b", body + b"2")

    without_hash, _, _ = _comparer(samples=0)
    with_hash, _, _ = _comparer(samples=0, hash_all=True)

    assert without_hash.compare(orig, backup, 4097, 4097).same
    assert with_hash.compare(orig, backup, 4097, 4097).reason is DiffReason.HASH


def test_hash_digests_are_printed_at_file_verbosity(tmp_path: Path) -> None:
    orig = _write_bytes(tmp_path / "a.txt", b"hello world\n")
    backup = _write_bytes(tmp_path / "b.txt", b"hello world\n")
    comparer, stats, stream = _comparer(hash_all=True, verbosity=2)

    verdict = comparer.compare(orig, backup, 12, 12)

    assert verdict.same
    lines = stream.getvalue().splitlines()
    assert f"DEBUG: BLAKE3 {HELLO_WORLD_BLAKE3} [{orig}]" in lines
    assert f"DEBUG: BLAKE3 {HELLO_WORLD_BLAKE3} [{backup}]" in lines
    assert stats.errors == 0


def test_empty_files_skip_sampling(tmp_path: Path) -> None:
    orig = _write_bytes(tmp_path / "a", b"")
    backup = _write_bytes(tmp_path / "b", b"")
    comparer, stats, stream = _comparer(samples=5)

    assert comparer.compare(orig, backup, 0, 0).same
    assert stream.getvalue() == ""
    assert stats.errors == 0


def test_read_failure_on_each_side_is_reported(tmp_path: Path) -> None:
    missing_orig = tmp_path / "gone-a"
    missing_backup = tmp_path / "gone-b"
    comparer, stats, stream = _comparer(hash_all=True)

    verdict = comparer.compare(missing_orig, missing_backup, 3, 3)

    assert verdict.read_failed
    assert verdict.reason is None
    assert stats.errors == 2
    lines = stream.getvalue().splitlines()
    assert lines[0].startswith(f"ERROR: Cannot hash [{missing_orig}]: ")
    assert lines[1].startswith(f"ERROR: Cannot hash [{missing_backup}]: ")


def test_sample_read_failure_voids_verdict(tmp_path: Path) -> None:
    orig = _write_bytes(tmp_path / "a", b"abcdef")
    comparer, stats, stream = _comparer(samples=2)

    verdict = comparer.compare(orig, tmp_path / "gone", 6, 6)

    assert verdict.read_failed
    assert stats.errors == 1
    assert stream.getvalue().startswith(f"ERROR: Cannot read sample from [{tmp_path / 'gone'}]: ")
