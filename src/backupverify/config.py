from __future__ import annotations

from dataclasses import dataclass, field
import os
from pathlib import Path
from typing import Any, Iterable

import json
import yaml

from backupverify.ignore_engine import IgnoreEngine, resolve_ignore_paths


MAX_VERBOSITY = 2


@dataclass(frozen=True, slots=True)
class VerifyConfig:
    original: Path
    backup: Path
    original_input: Path
    backup_input: Path
    verbosity: int = 0
    samples: int = 0
    hash_all: bool = False
    follow: bool = False
    one_filesystem: bool = False
    ignore: IgnoreEngine = field(default_factory=IgnoreEngine)

    @property
    def same_roots(self) -> bool:
        return self.original == self.backup


@dataclass(slots=True)
class FileSettings:
    """Options read from a config file. ``None`` means the key was absent."""

    verbose: int | None = None
    samples: int | None = None
    hash_all: bool | None = None
    follow: bool | None = None
    one_filesystem: bool | None = None
    ignore: list[str] = field(default_factory=list)
    exclude: list[str] = field(default_factory=list)


def _as_bool(value: Any, field_name: str) -> bool | None:
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    raise ValueError(f"{field_name} must be a boolean")


def _as_int(value: Any, field_name: str, minimum: int = 0) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{field_name} must be an integer")
    if value < minimum:
        raise ValueError(f"{field_name} must be >= {minimum}")
    return value


def _as_list_of_strings(value: Any, field_name: str) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list) or any(not isinstance(item, str) for item in value):
        raise ValueError(f"{field_name} must be a list of strings")
    return [item for item in value if item.strip()]


def _load_raw_config(config_path: Path) -> dict[str, Any]:
    if not config_path.exists():
        raise ValueError(f"Config file does not exist: {config_path}")

    suffix = config_path.suffix.lower()
    text = config_path.read_text(encoding="utf-8")
    if suffix in {".yml", ".yaml"}:
        loaded = yaml.safe_load(text)
    elif suffix == ".json":
        loaded = json.loads(text)
    else:
        raise ValueError("Config file must be .yaml/.yml or .json")

    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ValueError("Config root must be an object")
    return loaded


def load_config_file(config_path: Path) -> FileSettings:
    raw = _load_raw_config(config_path)
    return FileSettings(
        verbose=_as_int(raw.get("verbose"), "verbose"),
        samples=_as_int(raw.get("samples"), "samples"),
        hash_all=_as_bool(raw.get("all"), "all"),
        follow=_as_bool(raw.get("follow"), "follow"),
        one_filesystem=_as_bool(raw.get("oneFilesystem"), "oneFilesystem"),
        ignore=_as_list_of_strings(raw.get("ignore"), "ignore"),
        exclude=_as_list_of_strings(raw.get("exclude"), "exclude"),
    )


def _resolve_root(raw: Path, label: str) -> Path:
    try:
        resolved = Path(os.path.realpath(raw, strict=True))
    except OSError as exc:
        raise ValueError(f"Cannot resolve {label} directory {str(raw)!r}: {exc.strerror or exc}") from exc
    if not resolved.is_dir():
        raise ValueError(f"{str(resolved)!r} is not a directory")
    return resolved


def build_config(
    original: Path,
    backup: Path,
    verbosity: int = 0,
    samples: int = 0,
    hash_all: bool = False,
    follow: bool = False,
    one_filesystem: bool = False,
    ignore_paths: Iterable[Path] = (),
    exclude_patterns: Iterable[str] = (),
) -> VerifyConfig:
    if verbosity < 0 or verbosity > MAX_VERBOSITY:
        raise ValueError(f"verbose must be between 0 and {MAX_VERBOSITY}")
    if samples < 0:
        raise ValueError("samples must be >= 0")

    original_root = _resolve_root(original, "original")
    backup_root = _resolve_root(backup, "backup")

    ignored = resolve_ignore_paths(ignore_paths, original, backup, original_root, backup_root)

    return VerifyConfig(
        original=original_root,
        backup=backup_root,
        original_input=original,
        backup_input=backup,
        verbosity=verbosity,
        samples=samples,
        hash_all=hash_all,
        follow=follow,
        one_filesystem=one_filesystem,
        ignore=IgnoreEngine(ignored=ignored, patterns=exclude_patterns),
    )
