"""Reference scanning and content rewriting for a single file."""

from __future__ import annotations

import re
from functools import partial
from pathlib import Path
from typing import List, Optional, Sequence

from .blocks import BlockRenderer
from .locator import Locator
from .logging import get_logger
from .models import AssetReference, ScannedReference
from .paths import resolve_reference
from .patterns import PatternRule


class FileProcessor:
    """Finds asset references in one type of file and points them at revved files."""

    def __init__(
        self,
        asset_type: str,
        rules: Sequence[PatternRule],
        locator: Locator,
        block_renderer: BlockRenderer | None = None,
    ) -> None:
        self.asset_type = asset_type
        self.rules = list(rules)
        self.locator = locator
        self.block_renderer = block_renderer or BlockRenderer()
        self.logger = get_logger("processor")

    def references(self, content: str) -> List[AssetReference]:
        """Return every reference matched by the rules, in rule then match order."""
        found: List[AssetReference] = []
        for rule in self.rules:
            for match in rule.regex.finditer(content):
                reference = match.group(1)
                if reference is None:
                    continue
                found.append(
                    AssetReference(
                        matched_text=match.group(0),
                        reference=rule.filter_in(reference),
                        asset_type=self.asset_type,
                    )
                )
        return found

    def scan_dependencies(
        self, path: Path, search_dirs: Sequence[Path] | None = None
    ) -> List[ScannedReference]:
        """List the references of ``path`` with the files they resolve to."""
        dirs = self._search_dirs(path, search_dirs)
        content = self.block_renderer.replace_blocks(path.read_text(encoding="utf-8"))
        scanned = [
            ScannedReference(
                matched_text=ref.matched_text,
                reference=ref.reference,
                resolved_path=resolve_reference(ref.reference, dirs),
            )
            for ref in self.references(content)
        ]
        self.logger.debug("%s: %d references found", path, len(scanned))
        return scanned

    def rewrite(
        self,
        path: Path,
        search_dirs: Sequence[Path] | None = None,
        skip_substitution: bool = False,
    ) -> str:
        """Return the content of ``path`` with references pointed at revved files.

        Build blocks are always collapsed. With ``skip_substitution`` the
        references themselves are kept as written.
        """
        dirs = self._search_dirs(path, search_dirs)
        content = path.read_text(encoding="utf-8")
        content = self.block_renderer.replace_blocks(content)
        if skip_substitution:
            return content
        for rule in self.rules:
            self.logger.debug(rule.message)
            content = rule.regex.sub(partial(self._substitute, rule=rule, search_dirs=dirs), content)
        return content

    def process(
        self,
        path: Path,
        search_dirs: Sequence[Path] | None = None,
        skip_substitution: bool = False,
    ) -> str:
        """Rewrite ``path`` and persist the result in place."""
        content = self.rewrite(path, search_dirs, skip_substitution)
        path.write_text(content, encoding="utf-8")
        return content

    def _substitute(
        self, match: re.Match[str], rule: PatternRule, search_dirs: Sequence[Path]
    ) -> str:
        matched = match.group(0)
        captured = match.group(1)
        if captured is None:
            return matched
        revved = self.locator.resolve(rule.filter_in(captured), search_dirs)
        if revved is None:
            return matched
        replacement = rule.filter_out(revved)
        if replacement == captured:
            return matched
        start = match.start(1) - match.start(0)
        end = match.end(1) - match.start(0)
        updated = f"{matched[:start]}{replacement}{matched[end:]}"
        self.logger.debug("%s changed to %s", matched, updated)
        return updated

    @staticmethod
    def _search_dirs(path: Path, search_dirs: Optional[Sequence[Path]]) -> List[Path]:
        if search_dirs:
            return [Path(directory) for directory in search_dirs]
        return [path.parent]


__all__ = ["FileProcessor"]
