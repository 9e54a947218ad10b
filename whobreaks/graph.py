"""Read-only algorithms over a :class:`~whobreaks.storage.GraphStore`.

Traversals use explicit stacks so deep import chains cannot exhaust the
interpreter's recursion limit.  Only edges landing on known nodes are
walked by cycle and depth detection.
"""

from __future__ import annotations

from collections import deque
from typing import Dict, Iterator, List, Optional, Set, Tuple

from .config import CRITICAL_EXPORT_MIN_USERS, GOD_MODULE_THRESHOLD, HIGH_IMPACT_THRESHOLD
from .models import (
    CircularDependency,
    GodModule,
    GraphSummary,
    HighImpactFile,
    ImpactAnalysis,
)
from .storage import GraphStore


def _known_dependencies(store: GraphStore, path: str) -> List[str]:
    return sorted(dep for dep in store.dependencies.get(path, ()) if dep in store.nodes)


def get_impact(store: GraphStore, path: str) -> Optional[ImpactAnalysis]:
    """Direct and transitive dependents of *path*; ``None`` if not in the graph."""
    node = store.get_node(path)
    if node is None:
        return None

    direct = sorted(store.dependents.get(path, ()))
    direct_set = set(direct)

    visited: Set[str] = {path}
    transitive: List[str] = []
    queue = deque(direct)
    visited.update(direct)
    while queue:
        current = queue.popleft()
        for upstream in sorted(store.dependents.get(current, ())):
            if upstream in visited:
                continue
            visited.add(upstream)
            if upstream not in direct_set:
                transitive.append(upstream)
            queue.append(upstream)

    critical: List[str] = []
    for exp in node.exports:
        users = 0
        for dependent in direct:
            dep_node = store.get_node(dependent)
            if dep_node is None:
                continue
            if any(edge.target == path and exp.name in edge.symbols for edge in dep_node.imports):
                users += 1
        if users > CRITICAL_EXPORT_MIN_USERS:
            critical.append(exp.name)

    return ImpactAnalysis(
        file=path,
        direct_dependents=direct,
        transitive_dependents=transitive,
        total_affected=len(direct) + len(transitive),
        critical_exports=critical,
    )


def detect_circular_dependencies(store: GraphStore) -> List[CircularDependency]:
    """Find import cycles among known nodes, each reported once."""
    cycles: List[CircularDependency] = []
    seen_keys: Set[str] = set()
    visited: Set[str] = set()

    for root in sorted(store.nodes):
        if root in visited:
            continue

        visited.add(root)
        path: List[str] = [root]
        on_path: Set[str] = {root}
        frames: List[Iterator[str]] = [iter(_known_dependencies(store, root))]

        while frames:
            dep = next(frames[-1], None)
            if dep is None:
                frames.pop()
                on_path.discard(path.pop())
                continue

            if dep not in visited:
                visited.add(dep)
                path.append(dep)
                on_path.add(dep)
                frames.append(iter(_known_dependencies(store, dep)))
            elif dep in on_path:
                cycle = path[path.index(dep):] + [dep]
                key = "|".join(sorted(set(cycle)))
                if key not in seen_keys:
                    seen_keys.add(key)
                    cycles.append(CircularDependency(cycle=cycle))

    return cycles


def compute_max_depth(store: GraphStore) -> Tuple[int, List[str]]:
    """Longest simple dependency chain, counted in files.

    Every node is tried as a root; a node is only excluded while it is on
    the current path, so it may appear at different depths from different
    roots.
    """
    max_depth = 0
    max_path: List[str] = []
    adjacency: Dict[str, List[str]] = {p: _known_dependencies(store, p) for p in store.nodes}

    for root in store.nodes:
        path: List[str] = [root]
        on_path: Set[str] = {root}
        frames: List[Iterator[str]] = [iter(adjacency[root])]
        if len(path) > max_depth:
            max_depth = len(path)
            max_path = list(path)

        while frames:
            dep = next(frames[-1], None)
            if dep is None:
                frames.pop()
                on_path.discard(path.pop())
                continue
            if dep in on_path:
                continue
            path.append(dep)
            on_path.add(dep)
            frames.append(iter(adjacency[dep]))
            if len(path) > max_depth:
                max_depth = len(path)
                max_path = list(path)

    return max_depth, max_path


def get_summary(store: GraphStore) -> GraphSummary:
    total_files = len(store.nodes)

    orphan_files: List[str] = []
    god_modules: List[GodModule] = []
    high_impact: List[HighImpactFile] = []
    max_dependents = 0
    max_dependents_file = ""
    total_dependents = 0

    for path in store.nodes:
        count = len(store.dependents.get(path, ()))
        total_dependents += count
        if count == 0:
            orphan_files.append(path)
        if count > max_dependents:
            max_dependents = count
            max_dependents_file = path
        if count >= GOD_MODULE_THRESHOLD:
            god_modules.append(GodModule(path=path, dependent_count=count))

        impact = get_impact(store, path)
        if impact is not None and impact.total_affected >= HIGH_IMPACT_THRESHOLD:
            high_impact.append(HighImpactFile(path=path, affected_count=impact.total_affected))

    god_modules.sort(key=lambda g: (-g.dependent_count, g.path))
    high_impact.sort(key=lambda h: (-h.affected_count, h.path))

    max_depth, max_depth_path = compute_max_depth(store)

    return GraphSummary(
        total_files=total_files,
        total_edges=store.edge_count(),
        avg_dependents_per_file=total_dependents / total_files if total_files else 0.0,
        max_dependents=max_dependents,
        max_dependents_file=max_dependents_file,
        # Cheap proxy: half the longest chain, not a mean over all chains
        avg_depth=max_depth / 2,
        max_depth=max_depth,
        max_depth_path=max_depth_path,
        orphan_files=orphan_files,
        god_modules=god_modules,
        circular_dependencies=detect_circular_dependencies(store),
        high_impact_files=high_impact,
    )
