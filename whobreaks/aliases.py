"""Build the alias table from tsconfig path mappings and workspace packages."""

from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .config_manager import ScanSettings
from .resolver import BASE_URL_KEY, AliasTable
from .scanner import strip_source

logger = logging.getLogger(__name__)

PACKAGE_ENTRY_CANDIDATES = (
    "src/index.ts", "src/index.tsx", "src/index.js",
    "index.ts", "index.tsx", "index.js",
)

_TRAILING_COMMA_RE = re.compile(r",(\s*[}\]])")


def read_jsonc(path: Path) -> Any:
    """Parse a JSON file that may contain comments and trailing commas."""
    text = path.read_text(encoding="utf-8")
    cleaned = _TRAILING_COMMA_RE.sub(r"\1", strip_source(text, keep_strings=True))
    return json.loads(cleaned)


def find_package_entry(package_dir: Path) -> Optional[str]:
    for candidate in PACKAGE_ENTRY_CANDIDATES:
        full = package_dir / candidate
        if full.is_file():
            return str(full)
    return None


def build_alias_table(
    project_root: str,
    base_url: Optional[str] = None,
    paths: Optional[Mapping[str, Sequence[str]]] = None,
    workspaces: Optional[Mapping[str, str]] = None,
) -> AliasTable:
    """Normalise alias inputs into the resolver's table shape.

    *base_url* and *paths* targets may be relative; they are anchored at the
    project root and base URL respectively.  *workspaces* maps a package name
    to its directory.
    """
    root = os.path.abspath(project_root)
    base = os.path.normpath(os.path.join(root, base_url)) if base_url else root
    table: AliasTable = {BASE_URL_KEY: [base]}

    for pattern, targets in (paths or {}).items():
        table[pattern] = [os.path.normpath(os.path.join(base, t)) for t in targets]

    for name, package_dir in (workspaces or {}).items():
        directory = Path(root, package_dir)
        entry = find_package_entry(directory)
        if entry is None:
            logger.debug("Workspace package %s has no entry file", name)
            continue
        table[name] = [entry]
        table[name + "/*"] = [os.path.join(str(directory), "*")]

    return table


def _load_tsconfig(project_root: Path) -> Dict[str, Any]:
    tsconfig = project_root / "tsconfig.json"
    if not tsconfig.is_file():
        return {}
    try:
        payload = read_jsonc(tsconfig)
    except (OSError, ValueError) as exc:
        logger.warning("Ignoring malformed %s: %s", tsconfig, exc)
        return {}
    options = payload.get("compilerOptions") if isinstance(payload, dict) else None
    return options if isinstance(options, dict) else {}


def _workspace_patterns(project_root: Path) -> List[str]:
    package_json = project_root / "package.json"
    if not package_json.is_file():
        return []
    try:
        payload = json.loads(package_json.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.warning("Ignoring malformed %s: %s", package_json, exc)
        return []
    if not isinstance(payload, dict):
        return []
    workspaces = payload.get("workspaces")
    if isinstance(workspaces, dict):
        workspaces = workspaces.get("packages")
    if not isinstance(workspaces, list):
        return []
    return [w for w in workspaces if isinstance(w, str)]


def discover_workspaces(project_root: Path) -> Dict[str, str]:
    """Map workspace package names to their directories (relative to root)."""
    dirs: List[Path] = []
    for pattern in _workspace_patterns(project_root):
        if "*" in pattern:
            dirs.extend(sorted(p for p in project_root.glob(pattern) if p.is_dir()))
        else:
            dirs.append(project_root / pattern)

    result: Dict[str, str] = {}
    for directory in dirs:
        package_json = directory / "package.json"
        try:
            payload = json.loads(package_json.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            continue
        name = payload.get("name") if isinstance(payload, dict) else None
        if isinstance(name, str) and name and name not in result:
            result[name] = os.path.relpath(directory, project_root)
    return result


def load_path_aliases(project_root: Path, settings: Optional[ScanSettings] = None) -> AliasTable:
    """Read tsconfig/package.json (plus config overrides) into an alias table."""
    project_root = Path(project_root).resolve()
    options = _load_tsconfig(project_root)

    base_url = options.get("baseUrl") if isinstance(options.get("baseUrl"), str) else None
    paths: Dict[str, List[str]] = {}
    raw_paths = options.get("paths")
    if isinstance(raw_paths, dict):
        for pattern, targets in raw_paths.items():
            if isinstance(targets, list):
                paths[pattern] = [t for t in targets if isinstance(t, str)]

    if settings is not None:
        if settings.base_url:
            base_url = settings.base_url
        paths.update(settings.paths)

    return build_alias_table(
        str(project_root),
        base_url=base_url,
        paths=paths,
        workspaces=discover_workspaces(project_root),
    )
