"""Dependency graph construction and level assignment.

Edges point from a file to the files it references. Levels grow from the
roots (files nothing references) towards the leaves, so walking the levels
from the highest down finalizes every dependency before its dependents.

A file's level is accumulated over *every* root-to-file path: each path of
length ``d`` adds ``d``. For the diamond ``A -> {B, C} -> D`` this gives
``A=0, B=1, C=1, D=4`` rather than the longest path length 2. The value is
computed in topological order from two running totals per file (number of
root paths and summed path length) instead of enumerating paths.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, List, Mapping, Optional, Protocol, Sequence, Set

from .logging import get_logger
from .models import FileRecord, FileState
from .processor import FileProcessor

_logger = get_logger("graph")


class DependencyCycleError(RuntimeError):
    """Raised when files reference each other in a cycle."""

    def __init__(self, paths: Sequence[Path]) -> None:
        self.paths = list(paths)
        listed = ", ".join(str(path) for path in self.paths)
        super().__init__(f"Reference cycle between: {listed}")


class ScanContext(Protocol):
    """What the graph builder needs to know about the run."""

    def processor_for(self, asset_type: str) -> Optional[FileProcessor]: ...

    def search_dirs_for(self, asset_type: str, path: Path) -> List[Path]: ...

    def type_for(self, path: Path) -> str: ...


@dataclass
class DependencyGraph:
    """Files indexed by stable integers with dependent -> dependency edges."""

    records: List[FileRecord] = field(default_factory=list)
    edges: List[List[int]] = field(default_factory=list)
    _index: Dict[Path, int] = field(default_factory=dict, repr=False)

    def add(self, path: Path, asset_type: str) -> int:
        index = self._index.get(path)
        if index is not None:
            return index
        index = len(self.records)
        self.records.append(FileRecord(path=path, asset_type=asset_type))
        self.edges.append([])
        self._index[path] = index
        return index

    def add_edge(self, dependent: int, dependency: int) -> None:
        targets = self.edges[dependent]
        if dependency in targets:
            return
        targets.append(dependency)
        self.records[dependent].dependencies.append(self.records[dependency])

    def index_of(self, path: Path) -> Optional[int]:
        return self._index.get(path)

    def record(self, path: Path) -> FileRecord:
        return self.records[self._index[path]]

    def indegrees(self) -> List[int]:
        counts = [0] * len(self.records)
        for targets in self.edges:
            for target in targets:
                counts[target] += 1
        return counts

    def roots(self) -> List[int]:
        """Indices of files that no other file depends on."""
        return [index for index, count in enumerate(self.indegrees()) if count == 0]

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[FileRecord]:
        return iter(self.records)


def build_graph(
    files_by_type: Mapping[str, Sequence[Path]], context: ScanContext
) -> DependencyGraph:
    """Scan every declared file and connect it to the files it references.

    A reference back to the scanned file itself sets its canonical key
    instead of adding an edge. Referenced files outside the declared set
    join the graph with the type derived from their extension, and are
    scanned in turn when that type has a processor.
    """
    graph = DependencyGraph()
    declared: Set[Path] = set()
    pending: deque[int] = deque()
    for asset_type, paths in files_by_type.items():
        for path in paths:
            index = graph.add(path, asset_type)
            graph.records[index].asset_type = asset_type
            declared.add(path)
            pending.append(index)

    scanned: Set[int] = set()
    while pending:
        index = pending.popleft()
        if index in scanned:
            continue
        scanned.add(index)
        record = graph.records[index]
        path = record.path
        processor = context.processor_for(record.asset_type)
        if processor is None:
            if path in declared:
                _logger.warning(
                    "No processor for type %s; %s is not scanned", record.asset_type, path
                )
            continue
        search_dirs = context.search_dirs_for(record.asset_type, path)
        for reference in processor.scan_dependencies(path, search_dirs):
            resolved = reference.resolved_path
            if resolved is None:
                continue
            if resolved == path:
                record.canonical_key = path
                continue
            known = graph.index_of(resolved) is not None
            dependency = graph.add(resolved, context.type_for(resolved))
            dependency_record = graph.records[dependency]
            if dependency_record.canonical_key is None:
                dependency_record.canonical_key = resolved
            graph.add_edge(index, dependency)
            if not known:
                pending.append(dependency)
    _logger.debug(
        "Dependency graph has %d files and %d edges",
        len(graph),
        sum(len(targets) for targets in graph.edges),
    )
    return graph


class LevelMap:
    """Files grouped by level."""

    def __init__(self, records: Sequence[FileRecord]) -> None:
        self._levels: Dict[int, List[FileRecord]] = {}
        for record in records:
            self._levels.setdefault(record.level, []).append(record)

    @property
    def max_level(self) -> int:
        return max(self._levels, default=-1)

    def descending(self) -> List[int]:
        return sorted(self._levels, reverse=True)

    def files_at(self, level: int) -> List[FileRecord]:
        return list(self._levels.get(level, ()))

    def as_dict(self) -> Dict[int, List[Path]]:
        return {
            level: [record.original_path for record in records]
            for level, records in self._levels.items()
        }


def assign_levels(graph: DependencyGraph) -> LevelMap:
    """Assign every record its level and return the records grouped by level.

    Raises :class:`DependencyCycleError` when some files can never be ordered.
    """
    size = len(graph)
    remaining = graph.indegrees()
    path_counts = [0] * size
    accumulated = [0] * size

    worklist = deque(index for index, count in enumerate(remaining) if count == 0)
    for index in worklist:
        path_counts[index] = 1

    ordered = 0
    while worklist:
        index = worklist.popleft()
        ordered += 1
        for dependency in graph.edges[index]:
            path_counts[dependency] += path_counts[index]
            accumulated[dependency] += accumulated[index] + path_counts[index]
            remaining[dependency] -= 1
            if remaining[dependency] == 0:
                worklist.append(dependency)

    if ordered < size:
        stuck = [graph.records[index].path for index in range(size) if remaining[index] > 0]
        raise DependencyCycleError(stuck)

    # The accumulator is shared by all roots and only grows, so the maximum
    # over the per-root traversals is its final value.
    for record, level in zip(graph.records, accumulated):
        record.level = level
        record.advance(FileState.LEVEL_ASSIGNED)

    levels = LevelMap(graph.records)
    _logger.debug("Assigned %d files to %d levels", size, len(levels.descending()))
    return levels


__all__ = [
    "DependencyCycleError",
    "DependencyGraph",
    "LevelMap",
    "ScanContext",
    "assign_levels",
    "build_graph",
]
