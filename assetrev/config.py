"""Configuration loading for assetrev (.assetrev.yml)."""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

from .patterns import PatternRule, compile_rule
from .revisioner import DEFAULT_ALGORITHM, DEFAULT_LENGTH

CONFIG_FILENAME = ".assetrev.yml"
FILES_TARGET = "files"


class ConfigError(RuntimeError):
    """Raised when the configuration (or a rev map it points at) cannot be used."""


@dataclass
class TypeOptions:
    """Effective options for one asset type."""

    asset_type: str
    assets_dirs: List[Path] = field(default_factory=list)
    patterns: List[PatternRule] = field(default_factory=list)
    revmap: Optional[Path] = None
    block_replacement: Optional[str] = None


@dataclass
class AssetRevConfig:
    """Represents the settings defined in .assetrev.yml."""

    root: Path
    rev: List[str] = field(default_factory=list)
    ext2type: Dict[str, str] = field(default_factory=dict)
    assets_dirs: List[Path] = field(default_factory=list)
    revmap: Optional[Path] = None
    summary: Optional[Path] = None
    summary_dest: Optional[Path] = None
    hash_algorithm: str = DEFAULT_ALGORITHM
    hash_length: int = DEFAULT_LENGTH
    types: Dict[str, TypeOptions] = field(default_factory=dict)
    targets: Dict[str, List[str]] = field(default_factory=dict)
    files: Dict[str, List[str]] = field(default_factory=dict)

    def options_for(self, asset_type: str) -> TypeOptions:
        """Return per-type options, falling back to the top-level defaults."""
        declared = self.types.get(asset_type)
        if declared is None:
            return TypeOptions(
                asset_type=asset_type,
                assets_dirs=list(self.assets_dirs),
                revmap=self.revmap,
            )
        return TypeOptions(
            asset_type=asset_type,
            assets_dirs=list(declared.assets_dirs or self.assets_dirs),
            patterns=list(declared.patterns),
            revmap=declared.revmap or self.revmap,
            block_replacement=declared.block_replacement,
        )

    def type_for(self, path: Path) -> str:
        """Asset type of a file from its extension, honouring ``ext2type``."""
        suffix = path.suffix[1:] if path.suffix else path.name
        return self.ext2type.get(suffix, suffix)


def load_config(config_path: Path) -> AssetRevConfig:
    """Load configuration from disk; a missing file yields the defaults."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return AssetRevConfig(root=root)

    data = _read_config(config_file)
    return parse_config(data, root=root)


def parse_config(data: Any, *, root: Path) -> AssetRevConfig:
    """Build an :class:`AssetRevConfig` from an already decoded mapping."""
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    types: Dict[str, TypeOptions] = {}
    for name, raw in _as_dict(data.get("types"), "types").items():
        type_data = _as_dict(raw, f"types.{name}")
        types[str(name)] = TypeOptions(
            asset_type=str(name),
            assets_dirs=_as_path_list(type_data.get("assets_dirs"), root),
            patterns=_as_rules(type_data.get("patterns"), f"types.{name}.patterns"),
            revmap=_as_path(type_data.get("revmap"), root),
            block_replacement=_as_str(type_data.get("block_replacement")),
        )

    targets = {
        str(name): _as_str_list(patterns)
        for name, patterns in _as_dict(data.get("targets"), "targets").items()
    }
    if FILES_TARGET in targets:
        raise ConfigError(f"'{FILES_TARGET}' is reserved for the aggregate run; use the 'files' key")

    files = {
        str(name): _as_str_list(patterns)
        for name, patterns in _as_dict(data.get("files"), "files").items()
    }

    ext2type = {
        str(ext).lstrip("."): str(asset_type)
        for ext, asset_type in _as_dict(data.get("ext2type"), "ext2type").items()
    }

    revision = _as_dict(data.get("revision"), "revision")
    algorithm = _as_str(revision.get("algorithm")) or DEFAULT_ALGORITHM
    if algorithm not in hashlib.algorithms_available:
        raise ConfigError(f"Unsupported hash algorithm: {algorithm}")
    length = revision.get("length", DEFAULT_LENGTH)
    if isinstance(length, bool) or not isinstance(length, int) or length <= 0:
        raise ConfigError("revision.length must be a positive integer")

    return AssetRevConfig(
        root=root,
        rev=_as_str_list(data.get("rev")),
        ext2type=ext2type,
        assets_dirs=_as_path_list(data.get("assets_dirs"), root),
        revmap=_as_path(data.get("revmap"), root),
        summary=_as_path(data.get("summary"), root),
        summary_dest=_as_path(data.get("summary_dest"), root),
        hash_algorithm=algorithm,
        hash_length=length,
        types=types,
        targets=targets,
        files=files,
    )


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded or {}


def _as_rules(value: Any, label: str) -> List[PatternRule]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ConfigError(f"{label} must be a list of patterns")
    rules: List[PatternRule] = []
    for index, item in enumerate(value):
        if isinstance(item, str):
            pattern, message = item, None
        elif isinstance(item, dict):
            pattern, message = item.get("pattern"), _as_str(item.get("message"))
        elif isinstance(item, list) and item:
            pattern = item[0]
            message = _as_str(item[1]) if len(item) > 1 else None
        else:
            raise ConfigError(f"{label}[{index}] must be a string, list or mapping")
        if not isinstance(pattern, str) or not pattern:
            raise ConfigError(f"{label}[{index}] is missing a pattern")
        try:
            rules.append(compile_rule(pattern, message))
        except (re.error, ValueError) as exc:
            raise ConfigError(f"{label}[{index}]: {exc}") from exc
    return rules


def _as_dict(value: Any, label: str) -> Dict[Any, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"{label} must be a mapping")
    return value


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float)) and not isinstance(value, bool) else None


def _as_path(value: Any, root: Path) -> Optional[Path]:
    text = _as_str(value)
    if not text:
        return None
    path = Path(text).expanduser()
    return path if path.is_absolute() else (root / path).resolve()


def _as_path_list(value: Any, root: Path) -> List[Path]:
    paths: List[Path] = []
    for item in _as_str_list(value):
        path = _as_path(item, root)
        if path is not None:
            paths.append(path)
    return paths


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float))]
    return []


__all__ = [
    "AssetRevConfig",
    "CONFIG_FILENAME",
    "ConfigError",
    "FILES_TARGET",
    "TypeOptions",
    "load_config",
    "parse_config",
]
