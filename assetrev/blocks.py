"""Build block parsing and replacement.

Markup declares which inputs end up in one optimized output with comments:

    <!-- build:js(.tmp) js/app.js -->
      <script src="js/one.js"></script>
      <script src="js/two.js"></script>
    <!-- endbuild -->

The whole block is replaced by a single reference to the output path.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional

from jinja2 import Environment

from .logging import get_logger

_logger = get_logger("blocks")

_START_PATTERN = re.compile(
    r"<!--\s*build:(?P<type>\w+)(?:\((?P<alt>[^)]*)\))?\s*(?P<dest>[^\s]+)?\s*-->"
)
_END_PATTERN = re.compile(r"<!--\s*endbuild\s*-->")
_INPUT_PATTERN = re.compile(r"""(?:src|href)\s*=\s*['"]([^'"]+)['"]""")

DEFAULT_BLOCK_REPLACEMENTS: Dict[str, str] = {
    "js": '<script src="{{ dest }}"></script>',
    "css": '<link rel="stylesheet" href="{{ dest }}">',
}
REMOVE_TYPE = "remove"


@dataclass
class BuildBlock:
    """A ``build:<type>`` block found in markup."""

    asset_type: str
    output_path: Optional[str]
    alternate_search_path: Optional[str]
    indent: str
    raw: str
    line_ending: str = ""
    input_paths: List[str] = field(default_factory=list)

    def as_triple(self) -> tuple[str, Optional[str], List[str]]:
        return self.asset_type, self.output_path, list(self.input_paths)


def parse_blocks(content: str) -> List[BuildBlock]:
    """Return the build blocks of ``content`` in document order.

    A start marker without a matching ``endbuild`` is ignored.
    """
    blocks: List[BuildBlock] = []
    current: Optional[BuildBlock] = None
    collected: List[str] = []

    for line in content.splitlines(keepends=True):
        if current is None:
            match = _START_PATTERN.search(line)
            if match is None:
                continue
            alt = match.group("alt")
            current = BuildBlock(
                asset_type=match.group("type"),
                output_path=match.group("dest"),
                alternate_search_path=alt.strip() if alt else None,
                indent=line[: len(line) - len(line.lstrip())],
                raw="",
            )
            collected = [line]
            continue

        collected.append(line)
        if _END_PATTERN.search(line):
            current.raw = "".join(collected)
            current.line_ending = line[len(line.rstrip("\r\n")):]
            blocks.append(current)
            current = None
            continue
        current.input_paths.extend(_INPUT_PATTERN.findall(line))

    if current is not None:
        _logger.warning("Unterminated build:%s block ignored", current.asset_type)
    return blocks


class BlockRenderer:
    """Renders the replacement of a build block from per-type templates."""

    def __init__(self, templates: Mapping[str, str] | None = None) -> None:
        self._env = Environment(autoescape=False, keep_trailing_newline=False)
        self._templates: Dict[str, str] = dict(DEFAULT_BLOCK_REPLACEMENTS)
        if templates:
            self._templates.update(templates)

    def render(self, block: BuildBlock) -> Optional[str]:
        """Return the replacement text for ``block`` or ``None`` to keep it."""
        if block.asset_type == REMOVE_TYPE:
            return ""
        source = self._templates.get(block.asset_type)
        if source is None or not block.output_path:
            return None
        template = self._env.from_string(source)
        rendered = template.render(
            dest=block.output_path,
            type=block.asset_type,
            inputs=block.input_paths,
            alternate_search_path=block.alternate_search_path,
        )
        return f"{block.indent}{rendered}{block.line_ending}"

    def replace_blocks(self, content: str) -> str:
        """Replace every renderable build block in ``content``."""
        updated = content
        for block in parse_blocks(content):
            replacement = self.render(block)
            if replacement is None:
                _logger.debug("No replacement template for build:%s; block kept", block.asset_type)
                continue
            updated = updated.replace(block.raw, replacement, 1)
        return updated


__all__ = [
    "BlockRenderer",
    "BuildBlock",
    "DEFAULT_BLOCK_REPLACEMENTS",
    "parse_blocks",
]
