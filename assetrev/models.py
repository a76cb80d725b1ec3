"""Core data models shared across assetrev components."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from pathlib import Path
from typing import List, Optional


class StateTransitionError(RuntimeError):
    """Raised when a file record is moved backwards through its lifecycle."""


class FileState(IntEnum):
    """Lifecycle of a file record within a single run."""

    UNVISITED = 0
    LEVEL_ASSIGNED = 1
    CONTENT_STABILIZED = 2
    FINALIZED = 3


@dataclass(frozen=True)
class AssetReference:
    """A reference to another asset found inside a file's content."""

    matched_text: str
    reference: str
    asset_type: str


@dataclass(frozen=True)
class ScannedReference:
    """A reference together with the file it resolves to, if any."""

    matched_text: str
    reference: str
    resolved_path: Optional[Path]


@dataclass(eq=False)
class FileRecord:
    """A file taking part in an aggregate run.

    Records compare by identity; the graph indexes them by their original path.
    """

    path: Path
    asset_type: str
    dependencies: List["FileRecord"] = field(default_factory=list)
    level: int = 0
    canonical_key: Optional[Path] = None
    state: FileState = FileState.UNVISITED
    original_path: Path = field(init=False)

    def __post_init__(self) -> None:
        self.original_path = self.path

    def advance(self, state: FileState) -> None:
        if state < self.state:
            raise StateTransitionError(
                f"{self.original_path}: cannot move from {self.state.name} to {state.name}"
            )
        self.state = state

    def relocate(self, new_path: Path) -> None:
        if self.path != self.original_path:
            raise StateTransitionError(f"{self.original_path} was already revisioned")
        self.path = new_path


@dataclass
class RevCandidate:
    """Tracks whether a rev-eligible file has been revisioned in this run."""

    path: Path
    revved: bool = False


__all__ = [
    "AssetReference",
    "FileRecord",
    "FileState",
    "RevCandidate",
    "ScannedReference",
    "StateTransitionError",
]
