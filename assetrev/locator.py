"""Locate the revisioned counterpart of an asset reference.

Three strategies exist, in fixed order of preference:

- an explicit ``original -> revisioned`` map read from a JSON file,
- a summary mapping handed over by a previous revisioning pass,
- a disk lookup for ``<hex>.<basename>`` files next to the original.

Only the most preferred configured strategy is consulted.
"""

from __future__ import annotations

import json
import os
import posixpath
import re
from pathlib import Path
from typing import Dict, Mapping, Optional, Protocol, Sequence

from .config import ConfigError
from .logging import get_logger
from .paths import is_external, relative_to_root, split_reference
from .revisioner import DEFAULT_LENGTH

_logger = get_logger("locator")


class LocatorStrategy(Protocol):
    source: str

    def find(self, path: str, search_dirs: Sequence[Path]) -> Optional[str]:
        """Return the revisioned form of ``path`` or ``None``."""


def _normalise(path: str) -> str:
    return posixpath.normpath(path.replace("\\", "/")).lstrip("/")


class MappingStrategy:
    """Looks revisioned paths up in an ``original -> revisioned`` mapping."""

    def __init__(self, mapping: Mapping[str, str], root: Path, *, source: str) -> None:
        self.source = source
        self.root = root.resolve()
        self._mapping: Dict[str, str] = {_normalise(key): value for key, value in mapping.items()}

    def find(self, path: str, search_dirs: Sequence[Path]) -> Optional[str]:
        direct = self._mapping.get(_normalise(path))
        if direct is not None and not search_dirs:
            return direct

        for search_dir in search_dirs:
            absolute = (Path(search_dir) / path).resolve()
            for key in (relative_to_root(absolute, self.root), absolute.as_posix()):
                value = self._mapping.get(_normalise(key))
                if value is None:
                    continue
                revved = Path(value)
                if not revved.is_absolute():
                    revved = self.root / revved
                return Path(os.path.relpath(revved.resolve(), Path(search_dir).resolve())).as_posix()
        return direct


class DiskStrategy:
    """Scans the search dirs for files named ``<hex prefix>.<basename>``.

    The prefix must be exactly ``length`` hex digits, the width the
    revisioner writes.
    """

    source = "disk"

    def __init__(self, length: int = DEFAULT_LENGTH) -> None:
        self.length = length

    def find(self, path: str, search_dirs: Sequence[Path]) -> Optional[str]:
        relative = Path(path)
        pattern = re.compile(
            rf"^[0-9a-fA-F]{{{self.length}}}\." + re.escape(relative.name) + "$"
        )
        for search_dir in search_dirs:
            directory = (Path(search_dir) / relative).parent
            if not directory.is_dir():
                continue
            candidates = [
                entry
                for entry in directory.iterdir()
                if entry.is_file() and pattern.match(entry.name)
            ]
            if not candidates:
                continue
            candidates.sort(key=lambda entry: (-entry.stat().st_mtime_ns, entry.name))
            return (relative.parent / candidates[0].name).as_posix()
        return None


class Locator:
    """Resolves original asset references to their revisioned counterpart."""

    def __init__(self, strategy: LocatorStrategy, root: Path) -> None:
        self.strategy = strategy
        self.root = root.resolve()

    @property
    def source(self) -> str:
        return self.strategy.source

    def resolve(self, original: str, search_dirs: Sequence[Path] = ()) -> Optional[str]:
        """Return the revisioned reference for ``original`` or ``None`` when unknown.

        The leading ``/`` and any query string or fragment of the original are
        carried over to the result.
        """
        if is_external(original):
            return None
        path_part, suffix = split_reference(original)
        anchored = path_part.startswith("/")
        stripped = path_part.lstrip("/")
        if not stripped:
            return None

        dirs = list(search_dirs)
        if not dirs and self.strategy.source == "disk":
            dirs = [self.root]
        found = self.strategy.find(stripped, dirs)
        if found is None:
            return None
        if anchored and not found.startswith("/"):
            found = f"/{found}"
        return f"{found}{suffix}"


def load_revmap(path: Path, *, label: str = "rev map") -> Dict[str, str]:
    """Read an ``original -> revisioned`` JSON map; malformed content raises ``ConfigError``."""
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise ConfigError(f"{label.capitalize()} not found: {path}") from exc
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Failed to parse {label} {path.name}: {exc}") from exc
    return _validate_mapping(data, str(path))


def _validate_mapping(data: object, label: str) -> Dict[str, str]:
    if not isinstance(data, dict):
        raise ConfigError(f"{label} must contain a JSON object mapping original to revisioned paths")
    mapping: Dict[str, str] = {}
    for key, value in data.items():
        if not isinstance(key, str) or not isinstance(value, str):
            raise ConfigError(f"{label}: entry {key!r} must map a path to a path")
        mapping[key] = value
    return mapping


def build_locator(
    root: Path,
    *,
    revmap: Path | None = None,
    summary: Mapping[str, str] | None = None,
    hash_length: int = DEFAULT_LENGTH,
) -> Locator:
    """Pick the locator strategy by precedence: rev map, then summary, then disk."""
    strategy: LocatorStrategy
    if revmap is not None:
        strategy = MappingStrategy(load_revmap(revmap), root, source="revmap")
    elif summary is not None:
        strategy = MappingStrategy(_validate_mapping(dict(summary), "summary"), root, source="summary")
    else:
        strategy = DiskStrategy(hash_length)
    _logger.debug("Using %s locator", strategy.source)
    return Locator(strategy, root)


__all__ = [
    "DiskStrategy",
    "Locator",
    "LocatorStrategy",
    "MappingStrategy",
    "build_locator",
    "load_revmap",
]
