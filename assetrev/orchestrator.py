"""Run orchestration for single-target and aggregate ("files") runs."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional

from .blocks import BlockRenderer
from .config import FILES_TARGET, AssetRevConfig, ConfigError
from .graph import assign_levels, build_graph
from .locator import Locator, build_locator, load_revmap
from .logging import get_logger
from .models import FileRecord, FileState, RevCandidate
from .paths import expand_patterns
from .patterns import rules_for
from .processor import FileProcessor
from .revisioner import Revisioner

_BUILTIN_TYPES = ("html", "css", "js", "json")


@dataclass
class RunResult:
    """Outcome of a run."""

    target: str
    rewritten: List[Path] = field(default_factory=list)
    revisioned: Dict[Path, Path] = field(default_factory=dict)
    levels: Dict[int, List[Path]] = field(default_factory=dict)


class RunContext:
    """Per-run lookup tables: processors by type, rev candidates and the revisioner."""

    def __init__(
        self,
        config: AssetRevConfig,
        processors: Mapping[str, FileProcessor],
        rev_candidates: Mapping[Path, RevCandidate],
        revisioner: Revisioner,
    ) -> None:
        self.config = config
        self.processors = dict(processors)
        self.rev_candidates = dict(rev_candidates)
        self.revisioner = revisioner

    @classmethod
    def build(
        cls,
        config: AssetRevConfig,
        asset_types: Iterable[str],
        *,
        summary: Mapping[str, str] | None = None,
        revisioner: Revisioner | None = None,
        with_rev_candidates: bool = False,
    ) -> "RunContext":
        """Create processors for ``asset_types``; rev maps are read here, before any file is touched."""
        renderer = BlockRenderer(
            {
                name: options.block_replacement
                for name, options in config.types.items()
                if options.block_replacement
            }
        )
        locators: Dict[Optional[Path], Locator] = {}
        processors: Dict[str, FileProcessor] = {}
        for asset_type in dict.fromkeys(asset_types):
            options = config.options_for(asset_type)
            rules = rules_for(asset_type, {asset_type: options.patterns})
            if not rules:
                continue
            locator = locators.get(options.revmap)
            if locator is None:
                locator = build_locator(
                    config.root,
                    revmap=options.revmap,
                    summary=summary,
                    hash_length=config.hash_length,
                )
                locators[options.revmap] = locator
            processors[asset_type] = FileProcessor(asset_type, rules, locator, renderer)

        candidates: Dict[Path, RevCandidate] = {}
        if with_rev_candidates:
            for path in expand_patterns(config.root, config.rev):
                candidates[path] = RevCandidate(path=path)
        return cls(
            config,
            processors,
            candidates,
            revisioner or Revisioner(config.hash_algorithm, config.hash_length),
        )

    def processor_for(self, asset_type: str) -> Optional[FileProcessor]:
        return self.processors.get(asset_type)

    def search_dirs_for(self, asset_type: str, path: Path) -> List[Path]:
        dirs = self.config.options_for(asset_type).assets_dirs
        return list(dirs) if dirs else [path.parent]

    def type_for(self, path: Path) -> str:
        return self.config.type_for(path)

    def candidate_for(self, record: FileRecord) -> Optional[RevCandidate]:
        if record.canonical_key is None:
            return None
        return self.rev_candidates.get(record.canonical_key)


class Orchestrator:
    """Sequences scanning, leveling, rewriting and revisioning for one run."""

    def __init__(
        self,
        config: AssetRevConfig,
        *,
        summary: Mapping[str, str] | None = None,
        revisioner: Revisioner | None = None,
    ) -> None:
        self.config = config
        self._summary = summary
        self._revisioner = revisioner
        self.logger = get_logger("orchestrator")

    def run(self, target: str) -> RunResult:
        """Run ``target``; the reserved ``files`` target triggers the aggregate run."""
        if target == FILES_TARGET:
            return self.run_files()
        return self.run_target(target)

    def run_target(self, target: str) -> RunResult:
        """Rewrite the files of one target in place. Nothing is revisioned."""
        patterns = self.config.targets.get(target)
        if patterns is None:
            raise ConfigError(f"Unknown target '{target}'")
        context = self._build_context([target])
        processor = context.processor_for(target)
        if processor is None:
            raise ConfigError(f"No reference patterns known for type '{target}'")

        result = RunResult(target=target)
        files = expand_patterns(self.config.root, patterns)
        self.logger.info("Processing %d %s file(s)", len(files), target)
        for path in files:
            self.logger.debug("Processing as %s - %s", target.upper(), path)
            processor.process(path, context.search_dirs_for(target, path))
            result.rewritten.append(path)
        self.logger.info(
            "Replaced references to assets in %d %s",
            len(files),
            "file" if len(files) == 1 else "files",
        )
        return result

    def run_files(self) -> RunResult:
        """Rewrite and revision every declared file bottom-up, then revision leftovers."""
        if not self.config.files:
            raise ConfigError("No files declared for the aggregate run")
        declared = list(self.config.files)
        context = self._build_context(
            [*declared, *self.config.types, *_BUILTIN_TYPES], with_rev_candidates=True
        )
        self.logger.info("%d rev candidate(s)", len(context.rev_candidates))

        files_by_type = {
            asset_type: expand_patterns(self.config.root, patterns)
            for asset_type, patterns in self.config.files.items()
        }
        graph = build_graph(files_by_type, context)
        levels = assign_levels(graph)

        result = RunResult(target=FILES_TARGET, levels=levels.as_dict())
        for level in levels.descending():
            records = levels.files_at(level)
            self.logger.info("Level %d: %d file(s)", level, len(records))
            # The deepest level only references files outside the graph, which are
            # already final, so it is rewritten once and hashed afterwards.
            if level != levels.max_level:
                for record in records:
                    self._rewrite(record, context, skip_substitution=True)
                    record.advance(FileState.CONTENT_STABILIZED)
            for record in records:
                if self._rewrite(record, context, skip_substitution=False):
                    result.rewritten.append(record.original_path)
                self._revision_if_eligible(record, context)
                record.advance(FileState.FINALIZED)

        self._revision_leftovers(context)
        result.revisioned = dict(context.revisioner.summary)

        if self.config.summary_dest is not None:
            context.revisioner.write_summary(self.config.summary_dest, self.config.root)
        return result

    def _build_context(
        self, asset_types: Iterable[str], *, with_rev_candidates: bool = False
    ) -> RunContext:
        summary = self._summary
        if summary is None and self.config.summary is not None:
            summary = load_revmap(self.config.summary, label="summary")
        return RunContext.build(
            self.config,
            asset_types,
            summary=summary,
            revisioner=self._revisioner,
            with_rev_candidates=with_rev_candidates,
        )

    def _rewrite(self, record: FileRecord, context: RunContext, *, skip_substitution: bool) -> bool:
        processor = context.processor_for(record.asset_type)
        if processor is None:
            self.logger.info(
                "Skip replacing revved files in %s (no patterns for type %s)",
                record.path,
                record.asset_type,
            )
            return False
        self.logger.debug(
            "Processing as %s - %s%s",
            record.asset_type.upper(),
            record.path,
            " (references kept)" if skip_substitution else "",
        )
        processor.process(
            record.path,
            context.search_dirs_for(record.asset_type, record.path),
            skip_substitution,
        )
        return True

    def _revision_if_eligible(self, record: FileRecord, context: RunContext) -> None:
        if record.canonical_key is None:
            self.logger.debug("%s has no canonical key; revision deferred", record.path)
            return
        candidate = context.candidate_for(record)
        if candidate is None or candidate.revved:
            return
        record.relocate(context.revisioner.revision(record.path))
        candidate.revved = True

    def _revision_leftovers(self, context: RunContext) -> None:
        leftovers = [candidate for candidate in context.rev_candidates.values() if not candidate.revved]
        if not leftovers:
            return
        self.logger.info("Revisioning %d file(s) without dependents", len(leftovers))
        for candidate in leftovers:
            context.revisioner.revision(candidate.path)
            candidate.revved = True


__all__ = ["Orchestrator", "RunContext", "RunResult"]
