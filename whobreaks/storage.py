"""In-memory dependency graph store and its JSON snapshot.

The store keeps every analyzed :class:`~whobreaks.models.FileNode` plus two
adjacency maps:

- ``dependencies[a]``: files ``a`` imports.
- ``dependents[b]``: files importing ``b``.

``b in dependencies[a]`` holds exactly when ``a in dependents[b]``.  The
adjacency maps may also hold keys for edge targets that were never scanned
(known edge target, unscanned node).  Only :meth:`GraphStore.add_node` and
:meth:`GraphStore.remove_node` mutate the maps.
"""

from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import Any, Dict, List, Optional, Set

from .config import SNAPSHOT_VERSION
from .models import FileMatch, FileNode

logger = logging.getLogger(__name__)


class GraphStore:
    """File-level dependency graph with forward and reverse adjacency."""

    def __init__(self, project_root: str) -> None:
        self.project_root = str(project_root)
        self.nodes: Dict[str, FileNode] = {}
        self.dependents: Dict[str, Set[str]] = {}
        self.dependencies: Dict[str, Set[str]] = {}
        self.last_update = time.time()

    def __len__(self) -> int:
        return len(self.nodes)

    def __contains__(self, path: object) -> bool:
        return path in self.nodes

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def _retract_outgoing(self, path: str) -> None:
        for target in self.dependencies.get(path, ()):
            dependents = self.dependents.get(target)
            if dependents is not None:
                dependents.discard(path)

    def add_node(self, node: FileNode) -> None:
        """Insert *node*, replacing any previous node at the same path."""
        path = node.path
        if path in self.nodes:
            self._retract_outgoing(path)

        self.nodes[path] = node
        deps: Set[str] = set()
        self.dependencies[path] = deps
        self.dependents.setdefault(path, set())

        for edge in node.imports:
            if not edge.target:
                continue
            deps.add(edge.target)
            self.dependents.setdefault(edge.target, set()).add(path)
            self.dependencies.setdefault(edge.target, set())

        self.last_update = time.time()

    def remove_node(self, path: str) -> None:
        """Drop *path* and its adjacency entries. No-op for unknown paths.

        Former dependents lose the adjacency link but keep their import
        edges as written until they are re-analyzed themselves.
        """
        if path not in self.nodes:
            return

        self._retract_outgoing(path)
        for dependent in self.dependents.get(path, ()):
            deps = self.dependencies.get(dependent)
            if deps is not None:
                deps.discard(path)

        del self.nodes[path]
        self.dependencies.pop(path, None)
        self.dependents.pop(path, None)
        self.last_update = time.time()

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_node(self, path: str) -> Optional[FileNode]:
        return self.nodes.get(path)

    def dependents_of(self, path: str) -> Set[str]:
        return set(self.dependents.get(path, ()))

    def dependencies_of(self, path: str) -> Set[str]:
        return set(self.dependencies.get(path, ()))

    def known_files(self) -> Set[str]:
        return set(self.nodes)

    def edge_count(self) -> int:
        return sum(len(deps) for deps in self.dependencies.values())

    def find(self, query: str) -> List[FileMatch]:
        """Nodes whose path or relative path contains *query*."""
        matches: List[FileMatch] = []
        for node in self.nodes.values():
            if query in node.path or query in node.relative_path:
                matches.append(FileMatch(
                    node=node,
                    dependent_count=len(self.dependents.get(node.path, ())),
                    export_names=node.export_names,
                ))
        return matches

    # ------------------------------------------------------------------
    # Projection
    # ------------------------------------------------------------------

    def serialize(self) -> Dict[str, Any]:
        nodes: List[Dict[str, Any]] = []
        edges: List[Dict[str, Any]] = []
        seen: Set[tuple] = set()

        for node in self.nodes.values():
            record = node.to_dict()
            record["dependent_count"] = len(self.dependents.get(node.path, ()))
            record["dependency_count"] = len(self.dependencies.get(node.path, ()))
            record["dependencies"] = sorted(self.dependencies.get(node.path, ()))
            nodes.append(record)

            for edge in node.imports:
                if not edge.target or edge.target not in self.nodes:
                    continue
                key = (node.path, edge.target)
                if key in seen:
                    continue
                seen.add(key)
                edges.append({
                    "source": node.path,
                    "target": edge.target,
                    "symbols": list(edge.symbols),
                })

        return {
            "version": SNAPSHOT_VERSION,
            "project_root": self.project_root,
            "last_update": self.last_update,
            "nodes": nodes,
            "edges": edges,
        }

    @classmethod
    def from_serialized(cls, payload: Dict[str, Any]) -> "GraphStore":
        """Rebuild a store from :meth:`serialize` output.

        Adjacency comes from each record's saved ``dependencies`` rather than
        its import edges, which may be stale after a removal.
        """
        store = cls(payload["project_root"])
        for record in payload.get("nodes", []):
            node = FileNode.from_dict(record)
            store.nodes[node.path] = node
            store.dependents.setdefault(node.path, set())
            deps = set(record["dependencies"])
            store.dependencies[node.path] = deps
            for target in deps:
                store.dependents.setdefault(target, set()).add(node.path)
                store.dependencies.setdefault(target, set())
        store.last_update = payload.get("last_update", store.last_update)
        return store


# ===================================================================
# Snapshot persistence
# ===================================================================

def save_snapshot(store: GraphStore, path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(store.serialize(), indent=2), encoding="utf-8")
    logger.debug("Wrote graph snapshot to %s", path)
    return path


def load_snapshot(path: Path) -> Optional[GraphStore]:
    """Rebuild a store from a snapshot. ``None`` when missing or corrupt."""
    if not path.exists():
        return None
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
        return GraphStore.from_serialized(payload)
    except (OSError, ValueError, KeyError, TypeError) as exc:
        logger.warning("Ignoring unreadable snapshot %s: %s", path, exc)
        return None
