"""Reference pattern rules used to find asset references in file content."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Mapping, Optional, Sequence


def _identity(value: str) -> str:
    return value


@dataclass(frozen=True)
class PatternRule:
    """A regex whose single capturing group yields the referenced path.

    ``filter_in`` maps the captured text to the path looked up on disk and
    ``filter_out`` maps a resolved path back to the form written in the file.
    """

    regex: re.Pattern[str]
    message: str
    filter_in: Callable[[str], str] = _identity
    filter_out: Callable[[str], str] = _identity


def _with_js_suffix(value: str) -> str:
    return value if value.endswith(".js") else f"{value}.js"


def _without_js_suffix(value: str) -> str:
    return value[:-3] if value.endswith(".js") else value


_DEFAULT_RULES: Dict[str, List[PatternRule]] = {
    "html": [
        PatternRule(
            re.compile(r"""<script.+src=['"]([^"']+)["']""", re.M),
            "Update the HTML to reference revved script files",
        ),
        PatternRule(
            re.compile(r"""<link[^>]+href=['"]([^"']+)["']""", re.M),
            "Update the HTML with the new css filenames",
        ),
        PatternRule(
            re.compile(r"""<img[^>]*[^>\S]+src=['"]([^"']+)["']""", re.M),
            "Update the HTML with the new img filenames",
        ),
        PatternRule(
            re.compile(r"""data-main\s*=['"]([^"']+)['"]""", re.M),
            "Update the HTML with data-main tags",
            filter_in=_with_js_suffix,
            filter_out=_without_js_suffix,
        ),
        PatternRule(
            re.compile(r"""url\(\s*['"]?([^"')]+)["']?\s*\)""", re.M),
            "Update the HTML with background images in inline styles",
        ),
        PatternRule(
            re.compile(r"""<source[^>]+src=['"]([^"']+)["']""", re.M),
            "Update the HTML with the new source filenames",
        ),
        PatternRule(
            re.compile(r"""<object[^>]+data=['"]([^"']+)["']""", re.M),
            "Update the HTML with the new object filenames",
        ),
    ],
    "css": [
        PatternRule(
            re.compile(r"""(?:src=|url\(\s*)['"]?([^'"()?#]+)['"]?\s*\)?""", re.M),
            "Update the CSS to reference revved images and fonts",
        ),
    ],
    "js": [
        PatternRule(
            re.compile(r"""require\(\s*['"]([^'"]+\.js)['"]\s*\)""", re.M),
            "Update the JS require calls",
        ),
        PatternRule(
            re.compile(r"""\bimport\s+(?:[\w*{}\s,]+\s+from\s+)?['"]([^'"]+\.js)['"]""", re.M),
            "Update the JS module imports",
        ),
        PatternRule(
            re.compile(r"""importScripts\(\s*['"]([^'"]+)['"]\s*\)""", re.M),
            "Update the JS worker imports",
        ),
    ],
    "json": [
        PatternRule(
            re.compile(r""":\s*['"]([^"']+\.[A-Za-z0-9]+)["']""", re.M),
            "Update the JSON to reference revved assets",
        ),
    ],
}


def default_rules(asset_type: str) -> List[PatternRule]:
    """Return the built-in rules for an asset type (empty when none exist)."""
    return list(_DEFAULT_RULES.get(asset_type, ()))


def compile_rule(pattern: str, message: Optional[str] = None) -> PatternRule:
    """Compile a user supplied pattern; raises ``re.error`` or ``ValueError``."""
    regex = re.compile(pattern, re.M)
    if regex.groups != 1:
        raise ValueError(
            f"pattern {pattern!r} must define exactly one capturing group, found {regex.groups}"
        )
    return PatternRule(regex, message or f"Update references matching {pattern}")


def rules_for(
    asset_type: str, user_rules: Mapping[str, Sequence[PatternRule]] | None = None
) -> List[PatternRule]:
    """Built-in rules for the type followed by any user rules configured for it."""
    rules = default_rules(asset_type)
    if user_rules:
        rules.extend(user_rules.get(asset_type, ()))
    return rules


__all__ = ["PatternRule", "compile_rule", "default_rules", "rules_for"]
