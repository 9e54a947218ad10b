"""Pytest configuration and fixtures for whobreaks tests."""

import shutil
import tempfile
from pathlib import Path
from typing import Callable, Dict, Generator, Iterable, List, Optional

import pytest

from whobreaks.models import ExportInfo, FileNode, ImportEdge
from whobreaks.storage import GraphStore

FAKE_ROOT = "/proj"


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    tmp = Path(tempfile.mkdtemp()).resolve()
    yield tmp
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture
def sample_project_path() -> Path:
    """Get path to the sample TypeScript project."""
    return Path(__file__).parent / "fixtures" / "sample_project"


@pytest.fixture
def sample_project(temp_dir: Path, sample_project_path: Path) -> Path:
    """A writable copy of the sample project (scans may write .whobreaks/)."""
    target = temp_dir / "sample_project"
    shutil.copytree(sample_project_path, target)
    return target


@pytest.fixture
def write_project(temp_dir: Path) -> Callable[[Dict[str, str]], Path]:
    """Write ``{relative_path: content}`` files under a fresh project root."""

    def _write(files: Dict[str, str]) -> Path:
        root = temp_dir / "project"
        for rel, content in files.items():
            path = root / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        root.mkdir(parents=True, exist_ok=True)
        return root

    return _write


def _abs(name: str) -> str:
    return name if name.startswith("/") else f"{FAKE_ROOT}/{name}"


@pytest.fixture
def make_node() -> Callable[..., FileNode]:
    """Build a FileNode from short names (``"a.ts"`` -> ``/proj/a.ts``)."""

    def _make(
        name: str,
        imports: Iterable[str] = (),
        exports: Iterable[str] = (),
        symbols: Optional[Dict[str, List[str]]] = None,
    ) -> FileNode:
        path = _abs(name)
        symbols = symbols or {}
        edges = [
            ImportEdge(
                source=path,
                target=_abs(target) if target else "",
                raw_specifier=f"./{target}",
                symbols=list(symbols.get(target, [])),
            )
            for target in imports
        ]
        return FileNode(
            path=path,
            relative_path=path[len(FAKE_ROOT) + 1:],
            imports=edges,
            exports=[ExportInfo(name=e, kind="function", line=1) for e in exports],
            last_modified=0.0,
            hash="0" * 16,
            size_bytes=0,
            lines_of_code=1,
        )

    return _make


@pytest.fixture
def build_graph(make_node) -> Callable[[Dict[str, List[str]]], GraphStore]:
    """Build a store from ``{file: [imported files]}``."""

    def _build(adjacency: Dict[str, List[str]]) -> GraphStore:
        store = GraphStore(FAKE_ROOT)
        for name, targets in adjacency.items():
            store.add_node(make_node(name, imports=targets))
        return store

    return _build
