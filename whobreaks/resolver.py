"""Map raw module specifiers to file identities.

Resolution is purely table/filesystem-name driven: a candidate path only
counts as found when it is a member of the known-files set handed in by the
caller, so resolution never touches the disk.
"""

from __future__ import annotations

import os
from typing import AbstractSet, Dict, List, Optional

from .config import SUPPORTED_EXTENSIONS

BASE_URL_KEY = "_baseUrl"

# Alias pattern -> ordered candidate target roots (absolute)
AliasTable = Dict[str, List[str]]

JS_TO_SOURCE_EXT = {
    ".js": ".ts",
    ".jsx": ".tsx",
    ".mjs": ".mts",
    ".cjs": ".cts",
}


def probe(base: str, known_files: AbstractSet[str]) -> Optional[str]:
    """Find the known file *base* refers to, trying extensions and index files."""
    if base in known_files:
        return base

    stem, ext = os.path.splitext(base)
    source_ext = JS_TO_SOURCE_EXT.get(ext)
    if source_ext:
        candidate = stem + source_ext
        if candidate in known_files:
            return candidate

    for ext in SUPPORTED_EXTENSIONS:
        candidate = base + ext
        if candidate in known_files:
            return candidate

    for ext in SUPPORTED_EXTENSIONS:
        candidate = os.path.join(base, "index" + ext)
        if candidate in known_files:
            return candidate

    return None


def _strip_star(value: str) -> str:
    return value[:-1] if value.endswith("*") else value


def is_relative_specifier(specifier: str) -> bool:
    return specifier.startswith(".") or specifier.startswith("/")


def resolve_specifier(
    specifier: str,
    source_dir: str,
    aliases: AliasTable,
    known_files: AbstractSet[str],
) -> str:
    """Resolve *specifier* imported from a file in *source_dir*.

    Returns the target identity, or ``""`` when a bare specifier cannot be
    mapped to a project file.  Relative specifiers that fail probing still
    yield their normalised path so the edge is kept.
    """
    if is_relative_specifier(specifier):
        base = os.path.normpath(os.path.join(source_dir, specifier))
        return probe(base, known_files) or base

    base_urls = aliases.get(BASE_URL_KEY)
    if base_urls:
        hit = probe(os.path.normpath(os.path.join(base_urls[0], specifier)), known_files)
        if hit:
            return hit

    for pattern, targets in aliases.items():
        if pattern == BASE_URL_KEY:
            continue
        prefix = _strip_star(pattern)
        if not specifier.startswith(prefix):
            continue
        rest = specifier[len(prefix):]
        for target in targets:
            hit = probe(os.path.normpath(_strip_star(target) + rest), known_files)
            if hit:
                return hit

    return ""
