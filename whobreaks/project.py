"""Project file discovery and full scans."""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional

from .aliases import load_path_aliases
from .analyzer import ProgressCallback, analyze_files
from .config import SKIP_DIRS, SUPPORTED_EXTENSIONS
from .config_manager import ScanSettings, load_settings
from .graph import get_summary
from .models import GraphSummary
from .resolver import AliasTable
from .storage import GraphStore

logger = logging.getLogger(__name__)


@dataclass
class ScanResult:
    store: GraphStore
    summary: GraphSummary
    file_count: int
    elapsed_ms: float


def is_supported_file(path: str, extensions: Iterable[str] = SUPPORTED_EXTENSIONS) -> bool:
    return os.path.splitext(path)[1] in tuple(extensions)


def is_skipped_path(path: Path, project_root: Path, skip_dirs: Iterable[str] = SKIP_DIRS) -> bool:
    """True when any directory between *project_root* and *path* is skipped."""
    try:
        parts = path.relative_to(project_root).parts
    except ValueError:
        return True
    skip = set(skip_dirs)
    return any(part in skip for part in parts[:-1])


def discover_files(
    project_root: Path,
    extensions: Iterable[str] = SUPPORTED_EXTENSIONS,
    skip_dirs: Iterable[str] = SKIP_DIRS,
    max_files: Optional[int] = None,
) -> List[str]:
    """Sorted absolute paths of every script file under *project_root*."""
    root = Path(project_root).resolve()
    exts = tuple(extensions)
    skip = set(skip_dirs)
    found: List[str] = []

    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if d not in skip)
        for filename in filenames:
            if filename.endswith(exts):
                found.append(os.path.join(dirpath, filename))

    found.sort()
    if max_files is not None and len(found) > max_files:
        logger.info("Limiting scan to %d of %d files", max_files, len(found))
        found = found[:max_files]
    return found


def build_store(
    project_root: Path,
    file_paths: List[str],
    aliases: AliasTable,
    settings: ScanSettings,
    on_progress: Optional[ProgressCallback] = None,
) -> GraphStore:
    nodes = analyze_files(
        file_paths,
        str(project_root),
        aliases,
        batch_size=settings.batch_size,
        max_workers=settings.max_workers,
        on_progress=on_progress,
    )
    store = GraphStore(str(project_root))
    for node in nodes:
        store.add_node(node)
    return store


def scan_project(
    project_root: Path,
    settings: Optional[ScanSettings] = None,
    aliases: Optional[AliasTable] = None,
    on_progress: Optional[ProgressCallback] = None,
) -> ScanResult:
    """Discover, analyze and summarise every script file in the project."""
    started = time.perf_counter()
    root = Path(project_root).resolve()
    settings = settings or load_settings(root)
    aliases = aliases if aliases is not None else load_path_aliases(root, settings)

    files = discover_files(
        root,
        skip_dirs=SKIP_DIRS | set(settings.exclude),
        max_files=settings.max_files,
    )
    store = build_store(root, files, aliases, settings, on_progress=on_progress)
    summary = get_summary(store)
    elapsed_ms = (time.perf_counter() - started) * 1000

    logger.info(
        "Scanned %d files (%d edges) in %.0f ms",
        len(store), store.edge_count(), elapsed_ms,
    )
    return ScanResult(store=store, summary=summary, file_count=len(files), elapsed_ms=elapsed_ms)
