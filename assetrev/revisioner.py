"""Content-hash renaming of finalized files."""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Dict

from .logging import get_logger
from .paths import relative_to_root

DEFAULT_ALGORITHM = "md5"
DEFAULT_LENGTH = 8


def hash_file(path: Path, algorithm: str = DEFAULT_ALGORITHM) -> str:
    digest = hashlib.new(algorithm)
    with path.open("rb") as handle:
        for chunk in iter(lambda: handle.read(1024 * 1024), b""):
            digest.update(chunk)
    return digest.hexdigest()


class Revisioner:
    """Renames files to ``<hash prefix>.<basename>`` and remembers what it renamed.

    Each call hashes the bytes currently on disk and renames again, so callers
    must revision a file at most once per run and only once its content is final.
    """

    def __init__(self, algorithm: str = DEFAULT_ALGORITHM, length: int = DEFAULT_LENGTH) -> None:
        hashlib.new(algorithm)  # unknown algorithms raise ValueError here
        if length <= 0:
            raise ValueError("hash prefix length must be positive")
        self.algorithm = algorithm
        self.length = length
        self.summary: Dict[Path, Path] = {}
        self.logger = get_logger("revisioner")

    def prefix(self, path: Path) -> str:
        return hash_file(path, self.algorithm)[: self.length]

    def revision(self, path: Path) -> Path:
        """Rename ``path`` after its content hash and return the new path."""
        self.logger.debug("Hashing %s", path)
        renamed = path.with_name(f"{self.prefix(path)}.{path.name}")
        path.rename(renamed)
        self.summary[path] = renamed
        self.logger.info("%s -> %s", path, renamed.name)
        return renamed

    def summary_for(self, root: Path) -> Dict[str, str]:
        """Summary as ``original -> revisioned`` paths relative to ``root``."""
        return {
            relative_to_root(original, root): relative_to_root(revved, root)
            for original, revved in self.summary.items()
        }

    def write_summary(self, dest: Path, root: Path) -> None:
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_text(
            json.dumps(self.summary_for(root), indent=2, sort_keys=True), encoding="utf-8"
        )
        self.logger.info("Revision summary written to %s", dest)


__all__ = ["DEFAULT_ALGORITHM", "DEFAULT_LENGTH", "Revisioner", "hash_file"]
