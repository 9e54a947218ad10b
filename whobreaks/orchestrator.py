"""Single entry point used by the CLI and watch mode.

Every transport goes through these operations; none of them re-implements
graph logic.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Set

from . import config
from .aliases import load_path_aliases
from .analyzer import ProgressCallback, analyze_path
from .config_manager import ScanSettings, load_settings
from .graph import get_impact, get_summary
from .models import FileMatch, FileNode, GraphSummary, ImpactAnalysis
from .project import ScanResult, scan_project
from .resolver import AliasTable
from .storage import GraphStore, load_snapshot, save_snapshot

logger = logging.getLogger(__name__)

CREATED = "created"
MODIFIED = "modified"
DELETED = "deleted"
CHANGE_KINDS = (CREATED, MODIFIED, DELETED)


class Orchestrator:
    """Owns one project's graph store and alias table."""

    def __init__(self, project_root: Path, settings: Optional[ScanSettings] = None) -> None:
        self.project_root = Path(project_root).resolve()
        self.settings = settings or load_settings(self.project_root)
        self._aliases: Optional[AliasTable] = None
        self.store = GraphStore(str(self.project_root))

    @property
    def aliases(self) -> AliasTable:
        if self._aliases is None:
            self._aliases = load_path_aliases(self.project_root, self.settings)
        return self._aliases

    @property
    def snapshot_path(self) -> Path:
        return config.graph_file(self.project_root)

    # ------------------------------------------------------------------
    # Building
    # ------------------------------------------------------------------

    def scan(self, on_progress: Optional[ProgressCallback] = None) -> ScanResult:
        result = scan_project(
            self.project_root,
            settings=self.settings,
            aliases=self.aliases,
            on_progress=on_progress,
        )
        self.store = result.store
        return result

    def load_or_scan(self, rescan: bool = False) -> GraphStore:
        """Use the persisted snapshot when present, else scan from scratch."""
        if not rescan:
            store = load_snapshot(self.snapshot_path)
            if store is not None:
                self.store = store
                return store
        self.scan()
        return self.store

    def persist(self) -> Path:
        return save_snapshot(self.store, self.snapshot_path)

    # ------------------------------------------------------------------
    # Incremental updates
    # ------------------------------------------------------------------

    def apply_change(self, path: str, kind: str) -> Optional[FileNode]:
        """React to one file event. Returns the new node, if any."""
        if kind not in CHANGE_KINDS:
            raise ValueError(f"Unknown change kind: {kind}")
        path = self.resolve_path(path)

        if kind == DELETED:
            self.store.remove_node(path)
            logger.debug("Removed %s", path)
            return None

        known: Set[str] = self.store.known_files()
        known.add(path)
        node = analyze_path(path, str(self.project_root), self.aliases, known)
        if node is None:
            logger.debug("Skipped unreadable %s", path)
            return None
        self.store.add_node(node)
        logger.debug("Re-analyzed %s (%d imports)", path, len(node.imports))
        return node

    def apply_changes(self, changes: Mapping[str, str]) -> int:
        for path, kind in changes.items():
            self.apply_change(path, kind)
        return len(changes)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def resolve_path(self, file: str) -> str:
        if os.path.isabs(file):
            return os.path.normpath(file)
        return os.path.normpath(os.path.join(str(self.project_root), file))

    def relative(self, path: str) -> str:
        return os.path.relpath(path, str(self.project_root))

    def impact(self, file: str) -> Optional[ImpactAnalysis]:
        return get_impact(self.store, self.resolve_path(file))

    def summary(self) -> GraphSummary:
        return get_summary(self.store)

    def serialize(self) -> Dict:
        return self.store.serialize()

    def dependents(self, file: str) -> Set[str]:
        return self.store.dependents_of(self.resolve_path(file))

    def dependencies(self, file: str) -> Set[str]:
        return self.store.dependencies_of(self.resolve_path(file))

    def node(self, file: str) -> Optional[FileNode]:
        return self.store.get_node(self.resolve_path(file))

    def find(self, query: str) -> List[FileMatch]:
        return self.store.find(query)
