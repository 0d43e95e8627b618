from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import json
import yaml


DEFAULT_FILE_EXTENSION = "bak"
DEFAULT_DIRECTORY_SUFFIX = "_bak"


@dataclass(slots=True)
class BackupConfig:
    file_extension: str = DEFAULT_FILE_EXTENSION
    directory_suffix: str = DEFAULT_DIRECTORY_SUFFIX
    overwrite: bool = False
    follow_symlinks: bool = False
    preserve_metadata: bool = False
    excludes: list[str] = field(default_factory=list)


def _as_bool(value: Any, field_name: str, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    raise ValueError(f"{field_name} must be a boolean")


def _as_name_part(value: Any, field_name: str, default: str) -> str:
    if value is None:
        return default
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{field_name} must be a non-empty string")
    if "/" in value or "\\" in value:
        raise ValueError(f"{field_name} must not contain path separators")
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


def load_config(config_path: Path | None) -> BackupConfig:
    if config_path is None:
        return BackupConfig()

    raw = _load_raw_config(config_path)

    file_extension = _as_name_part(raw.get("fileExtension"), "fileExtension", DEFAULT_FILE_EXTENSION)
    if file_extension.startswith("."):
        raise ValueError("fileExtension must be given without a leading dot")

    return BackupConfig(
        file_extension=file_extension,
        directory_suffix=_as_name_part(
            raw.get("directorySuffix"), "directorySuffix", DEFAULT_DIRECTORY_SUFFIX
        ),
        overwrite=_as_bool(raw.get("overwrite"), "overwrite", default=False),
        follow_symlinks=_as_bool(raw.get("followSymlinks"), "followSymlinks", default=False),
        preserve_metadata=_as_bool(
            raw.get("preserveMetadata"), "preserveMetadata", default=False
        ),
        excludes=_as_list_of_strings(raw.get("excludes"), "excludes"),
    )
