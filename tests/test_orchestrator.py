"""Tests for the Orchestrator: scans, snapshots and incremental updates."""

from pathlib import Path

import pytest

from whobreaks.config import graph_file
from whobreaks.orchestrator import CREATED, DELETED, MODIFIED, Orchestrator


@pytest.fixture
def orchestrator(sample_project: Path) -> Orchestrator:
    orch = Orchestrator(sample_project)
    orch.scan()
    return orch


def _names(paths) -> set:
    return {Path(p).name for p in paths}


class TestQueries:
    def test_resolve_path(self, orchestrator: Orchestrator, sample_project: Path):
        assert orchestrator.resolve_path("src/a.ts") == str(sample_project / "src" / "a.ts")
        assert orchestrator.resolve_path("/abs/x.ts") == "/abs/x.ts"
        assert orchestrator.relative(str(sample_project / "src" / "a.ts")) == "src/a.ts"

    def test_impact_by_relative_path(self, orchestrator: Orchestrator):
        impact = orchestrator.impact("src/utils.ts")

        assert _names(impact.direct_dependents) == {"auth.ts", "index.ts", "orphan.js"}
        assert _names(impact.transitive_dependents) == {"user.ts"}
        assert impact.total_affected == 4

    def test_impact_unknown(self, orchestrator: Orchestrator):
        assert orchestrator.impact("src/nope.ts") is None

    def test_dependents_and_dependencies(self, orchestrator: Orchestrator):
        assert _names(orchestrator.dependents("src/auth.ts")) == {"index.ts", "user.ts"}
        assert _names(orchestrator.dependencies("src/auth.ts")) == {"user.ts", "utils.ts"}
        assert orchestrator.dependents("src/nope.ts") == set()

    def test_node_and_find(self, orchestrator: Orchestrator):
        node = orchestrator.node("src/types.ts")
        assert node.export_names == ["Session", "Role"]
        assert orchestrator.node("src/nope.ts") is None

        matches = orchestrator.find("src/us")
        assert [m.node.relative_path for m in matches] == ["src/user.ts"]

    def test_summary_and_serialize(self, orchestrator: Orchestrator):
        assert orchestrator.summary().total_files == 7
        payload = orchestrator.serialize()
        assert len(payload["nodes"]) == 7
        assert len(payload["edges"]) == 8


class TestSnapshot:
    def test_persist_and_load(self, orchestrator: Orchestrator, sample_project: Path):
        path = orchestrator.persist()
        assert path == graph_file(sample_project)
        assert path.exists()

        fresh = Orchestrator(sample_project)
        store = fresh.load_or_scan()

        assert store.known_files() == orchestrator.store.known_files()
        assert fresh.store is store

    def test_load_or_scan_without_snapshot_scans(self, sample_project: Path):
        orch = Orchestrator(sample_project)
        store = orch.load_or_scan()
        assert len(store) == 7
        assert not graph_file(sample_project).exists()

    def test_rescan_ignores_snapshot(self, orchestrator: Orchestrator, sample_project: Path):
        orchestrator.persist()
        (sample_project / "src" / "extra.ts").write_text("export const extra = 1;\n")

        cached = Orchestrator(sample_project)
        assert len(cached.load_or_scan()) == 7

        rescanned = Orchestrator(sample_project)
        assert len(rescanned.load_or_scan(rescan=True)) == 8

    def test_deleted_file_stays_gone_after_reload(self, orchestrator: Orchestrator, sample_project: Path):
        types = sample_project / "src" / "types.ts"
        types.unlink()
        orchestrator.apply_change(str(types), DELETED)
        orchestrator.persist()

        fresh = Orchestrator(sample_project)
        fresh.load_or_scan()

        assert fresh.dependents("src/types.ts") == set()
        assert "types.ts" not in _names(fresh.dependencies("src/user.ts"))


class TestIncrementalUpdates:
    """File events applied one by one."""

    def test_created_file_joins_graph(self, orchestrator: Orchestrator, sample_project: Path):
        new_file = sample_project / "src" / "report.ts"
        new_file.write_text("import { login } from './auth';\nexport const report = login;\n")

        node = orchestrator.apply_change(str(new_file), CREATED)

        assert node is not None
        assert _names(orchestrator.dependents("src/auth.ts")) == {"index.ts", "user.ts", "report.ts"}

    def test_modified_file_updates_edges(self, orchestrator: Orchestrator, sample_project: Path):
        orphan = sample_project / "src" / "orphan.js"
        orphan.write_text("import { Role } from './types';\nexport const r = Role;\n")

        orchestrator.apply_change(str(orphan), MODIFIED)

        assert _names(orchestrator.dependencies("src/orphan.js")) == {"types.ts"}
        assert "orphan.js" not in _names(orchestrator.dependents("src/utils.ts"))

    def test_deleted_file_leaves_graph(self, orchestrator: Orchestrator, sample_project: Path):
        types = sample_project / "src" / "types.ts"
        types.unlink()

        assert orchestrator.apply_change(str(types), DELETED) is None

        assert orchestrator.node("src/types.ts") is None
        assert "types.ts" not in _names(orchestrator.dependencies("src/user.ts"))

    def test_unreadable_file_is_skipped(self, orchestrator: Orchestrator, sample_project: Path):
        before = len(orchestrator.store)
        assert orchestrator.apply_change(str(sample_project / "src" / "gone.ts"), CREATED) is None
        assert len(orchestrator.store) == before

    def test_unknown_kind_rejected(self, orchestrator: Orchestrator):
        with pytest.raises(ValueError):
            orchestrator.apply_change("src/auth.ts", "renamed")

    def test_apply_changes_batch(self, orchestrator: Orchestrator, sample_project: Path):
        (sample_project / "src" / "a.ts").write_text("export const a = 1;\n")
        (sample_project / "src" / "b.ts").write_text("import { a } from './a';\n")

        count = orchestrator.apply_changes({
            str(sample_project / "src" / "a.ts"): CREATED,
            str(sample_project / "src" / "b.ts"): CREATED,
        })

        assert count == 2
        assert _names(orchestrator.dependents("src/a.ts")) == {"b.ts"}
