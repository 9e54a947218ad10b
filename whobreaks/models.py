"""Core data models shared by the analyzer, graph store, and algorithms."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

EXPORT_KINDS = (
    "function", "class", "interface", "type",
    "variable", "enum", "namespace", "unknown",
)


@dataclass(frozen=True)
class ImportEdge:
    source: str
    target: str
    raw_specifier: str
    symbols: List[str] = field(default_factory=list)
    is_type_only: bool = False
    is_dynamic: bool = False
    line: int = 1

    @property
    def is_resolved(self) -> bool:
        return bool(self.target)


@dataclass(frozen=True)
class ExportInfo:
    name: str
    kind: str
    line: int
    is_re_export: bool = False
    re_export_source: Optional[str] = None


@dataclass(frozen=True)
class FileNode:
    """One analyzed file. Replaced wholesale when the file changes."""

    path: str
    relative_path: str
    imports: List[ImportEdge]
    exports: List[ExportInfo]
    last_modified: float
    hash: str
    size_bytes: int
    lines_of_code: int

    @property
    def export_names(self) -> List[str]:
        return [exp.name for exp in self.exports]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "FileNode":
        return cls(
            path=payload["path"],
            relative_path=payload["relative_path"],
            imports=[ImportEdge(**edge) for edge in payload.get("imports", [])],
            exports=[ExportInfo(**exp) for exp in payload.get("exports", [])],
            last_modified=payload.get("last_modified", 0.0),
            hash=payload.get("hash", ""),
            size_bytes=payload.get("size_bytes", 0),
            lines_of_code=payload.get("lines_of_code", 0),
        )


@dataclass
class ImpactAnalysis:
    file: str
    direct_dependents: List[str]
    transitive_dependents: List[str]
    total_affected: int
    critical_exports: List[str]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class CircularDependency:
    # Walk order, closing node repeated at the end
    cycle: List[str]

    @property
    def files(self) -> List[str]:
        seen: List[str] = []
        for path in self.cycle:
            if path not in seen:
                seen.append(path)
        return seen

    def to_dict(self) -> Dict[str, Any]:
        return {"cycle": list(self.cycle)}


@dataclass
class GodModule:
    path: str
    dependent_count: int


@dataclass
class HighImpactFile:
    path: str
    affected_count: int


@dataclass
class GraphSummary:
    total_files: int
    total_edges: int
    avg_dependents_per_file: float
    max_dependents: int
    max_dependents_file: str
    avg_depth: float
    max_depth: int
    max_depth_path: List[str]
    orphan_files: List[str]
    god_modules: List[GodModule]
    circular_dependencies: List[CircularDependency]
    high_impact_files: List[HighImpactFile]

    @property
    def has_issues(self) -> bool:
        return bool(
            self.circular_dependencies
            or self.orphan_files
            or self.god_modules
            or self.high_impact_files
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class FileMatch:
    node: FileNode
    dependent_count: int
    export_names: List[str]
