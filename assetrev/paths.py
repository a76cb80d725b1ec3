"""Path helpers: pattern expansion and reference normalisation."""

from __future__ import annotations

import glob
import os
import re
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple

_SCHEME_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*:")
_SUFFIX_PATTERN = re.compile(r"[?#]")


def expand_patterns(root: Path, patterns: Iterable[str]) -> List[Path]:
    """Expand glob patterns relative to ``root`` into existing files.

    Patterns are applied in order; a leading ``!`` removes earlier matches.
    ``**`` matches across directories. Results keep first-match order.
    """
    selected: List[Path] = []
    seen: set[Path] = set()
    for raw in patterns:
        pattern = raw.strip()
        if not pattern:
            continue
        negate = pattern.startswith("!")
        if negate:
            pattern = pattern[1:]
        matches = _glob_files(root, pattern)
        if negate:
            excluded = set(matches)
            selected = [path for path in selected if path not in excluded]
            seen.difference_update(excluded)
            continue
        for path in matches:
            if path not in seen:
                seen.add(path)
                selected.append(path)
    return selected


def _glob_files(root: Path, pattern: str) -> List[Path]:
    joined = os.path.join(str(root), pattern)
    return [
        Path(match).resolve()
        for match in sorted(glob.glob(joined, recursive=True))
        if os.path.isfile(match)
    ]


def is_external(reference: str) -> bool:
    """Return True for references that never point at a local build output."""
    target = reference.strip()
    if not target or target.startswith(("#", "//")):
        return True
    if "://" in target:
        return True
    return bool(_SCHEME_PATTERN.match(target)) and not re.match(r"^[A-Za-z]:[\\/]", target)


def split_reference(reference: str) -> Tuple[str, str]:
    """Split ``reference`` into its path and its query/fragment suffix."""
    match = _SUFFIX_PATTERN.search(reference)
    if match is None:
        return reference, ""
    return reference[: match.start()], reference[match.start():]


def resolve_reference(reference: str, search_dirs: Sequence[Path]) -> Optional[Path]:
    """Resolve a reference to the first existing file under ``search_dirs``."""
    if is_external(reference):
        return None
    path_part, _ = split_reference(reference)
    path_part = path_part.lstrip("/")
    if not path_part:
        return None
    for search_dir in search_dirs:
        candidate = (Path(search_dir) / path_part).resolve()
        if candidate.is_file():
            return candidate
    return None


def relative_to_root(path: Path, root: Path) -> str:
    """Render ``path`` relative to ``root`` when possible (posix separators)."""
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return path.as_posix()


__all__ = [
    "expand_patterns",
    "is_external",
    "relative_to_root",
    "resolve_reference",
    "split_reference",
]
