from pathlib import Path

import pytest

from backupverify.config import FileSettings, build_config, load_config_file


def _write(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def test_load_yaml_config_reads_all_keys(tmp_path: Path) -> None:
    config_file = tmp_path / "verify.yaml"
    config_file.write_text(
        """
verbose: 1
samples: 4
all: true
follow: false
oneFilesystem: true
ignore:
  - /mnt/orig/cache
exclude:
  - "*.tmp"
  - ""
""".strip(),
        encoding="utf-8",
    )

    loaded = load_config_file(config_file)

    assert loaded == FileSettings(
        verbose=1,
        samples=4,
        hash_all=True,
        follow=False,
        one_filesystem=True,
        ignore=["/mnt/orig/cache"],
        exclude=["*.tmp"],
    )


def test_load_json_config_leaves_absent_keys_unset(tmp_path: Path) -> None:
    config_file = tmp_path / "verify.json"
    config_file.write_text('{"samples": 2}', encoding="utf-8")

    loaded = load_config_file(config_file)

    assert loaded.samples == 2
    assert loaded.verbose is None
    assert loaded.hash_all is None
    assert loaded.ignore == []


def test_empty_yaml_config_is_allowed(tmp_path: Path) -> None:
    config_file = tmp_path / "verify.yml"
    config_file.write_text("", encoding="utf-8")

    assert load_config_file(config_file) == FileSettings()


@pytest.mark.parametrize(
    ("content", "message"),
    [
        ("samples: -1", "samples must be >= 0"),
        ("samples: many", "samples must be an integer"),
        ("all: yes please", "all must be a boolean"),
        ("ignore: cache", "ignore must be a list of strings"),
        ("- just\n- a list", "Config root must be an object"),
    ],
)
def test_load_config_rejects_invalid_values(tmp_path: Path, content: str, message: str) -> None:
    config_file = tmp_path / "verify.yaml"
    config_file.write_text(content, encoding="utf-8")

    with pytest.raises(ValueError, match=message):
        load_config_file(config_file)


def test_load_config_rejects_unknown_suffix_and_missing_file(tmp_path: Path) -> None:
    config_file = tmp_path / "verify.toml"
    config_file.write_text("samples = 1", encoding="utf-8")

    with pytest.raises(ValueError, match="must be .yaml/.yml or .json"):
        load_config_file(config_file)
    with pytest.raises(ValueError, match="does not exist"):
        load_config_file(tmp_path / "missing.yaml")


def test_build_config_canonicalizes_roots(tmp_path: Path) -> None:
    (tmp_path / "orig").mkdir()
    (tmp_path / "backup").mkdir()
    (tmp_path / "alias").symlink_to(tmp_path / "orig")

    config = build_config(tmp_path / "alias", tmp_path / "backup", samples=3, hash_all=True)

    assert config.original == (tmp_path / "orig").resolve()
    assert config.original_input == tmp_path / "alias"
    assert config.samples == 3
    assert config.hash_all is True
    assert not config.same_roots


def test_build_config_rejects_missing_root(tmp_path: Path) -> None:
    (tmp_path / "backup").mkdir()

    with pytest.raises(ValueError, match="Cannot resolve original directory"):
        build_config(tmp_path / "orig", tmp_path / "backup")


def test_build_config_rejects_file_root(tmp_path: Path) -> None:
    (tmp_path / "orig").mkdir()
    _write(tmp_path / "backup", "not a dir")

    with pytest.raises(ValueError, match="is not a directory"):
        build_config(tmp_path / "orig", tmp_path / "backup")


def test_build_config_rejects_bad_verbosity_and_samples(tmp_path: Path) -> None:
    (tmp_path / "orig").mkdir()
    (tmp_path / "backup").mkdir()

    with pytest.raises(ValueError, match="verbose must be between 0 and 2"):
        build_config(tmp_path / "orig", tmp_path / "backup", verbosity=3)
    with pytest.raises(ValueError, match="samples must be >= 0"):
        build_config(tmp_path / "orig", tmp_path / "backup", samples=-1)


def test_build_config_detects_same_roots(tmp_path: Path) -> None:
    (tmp_path / "orig").mkdir()

    config = build_config(tmp_path / "orig", tmp_path / "orig")

    assert config.same_roots


def test_build_config_compiles_ignores_and_excludes(tmp_path: Path) -> None:
    _write(tmp_path / "orig" / "cache" / "a", "a")
    (tmp_path / "backup").mkdir()

    config = build_config(
        tmp_path / "orig",
        tmp_path / "backup",
        ignore_paths=[tmp_path / "orig" / "cache"],
        exclude_patterns=["*.log"],
    )

    assert config.ignore.ignored == frozenset({Path("cache")})
    assert config.ignore.is_ignored(Path("x.log"))
