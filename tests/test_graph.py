"""Tests for impact, cycle, depth and summary algorithms."""

from whobreaks.graph import (
    compute_max_depth,
    detect_circular_dependencies,
    get_impact,
    get_summary,
)
from whobreaks.storage import GraphStore


def p(name: str) -> str:
    return f"/proj/{name}"


class TestImpact:
    """Blast radius of a single file."""

    def test_chain(self, build_graph):
        # a imports b, b imports c
        store = build_graph({"a.ts": ["b.ts"], "b.ts": ["c.ts"], "c.ts": []})

        impact = get_impact(store, p("c.ts"))

        assert impact.direct_dependents == [p("b.ts")]
        assert impact.transitive_dependents == [p("a.ts")]
        assert impact.total_affected == 2

    def test_leaf_importer_is_safe(self, build_graph):
        store = build_graph({"a.ts": ["b.ts"], "b.ts": []})
        impact = get_impact(store, p("a.ts"))
        assert impact.total_affected == 0
        assert impact.direct_dependents == []
        assert impact.transitive_dependents == []

    def test_unknown_file(self, build_graph):
        store = build_graph({"a.ts": []})
        assert get_impact(store, p("missing.ts")) is None

    def test_diamond_counts_each_file_once(self, build_graph):
        store = build_graph({
            "top.ts": ["left.ts", "right.ts"],
            "left.ts": ["base.ts"],
            "right.ts": ["base.ts"],
            "base.ts": [],
        })
        impact = get_impact(store, p("base.ts"))

        assert impact.direct_dependents == [p("left.ts"), p("right.ts")]
        assert impact.transitive_dependents == [p("top.ts")]
        assert impact.total_affected == 3

    def test_cycle_excludes_target(self, build_graph):
        store = build_graph({"a.ts": ["b.ts"], "b.ts": ["a.ts"]})
        impact = get_impact(store, p("a.ts"))

        assert impact.direct_dependents == [p("b.ts")]
        assert impact.transitive_dependents == []
        assert p("a.ts") not in impact.transitive_dependents

    def test_critical_exports_need_more_than_three_users(self, make_node):
        store = GraphStore("/proj")
        store.add_node(make_node("lib.ts", exports=["hot", "warm"]))
        for i in range(4):
            symbols = ["hot", "warm"] if i < 3 else ["hot"]
            store.add_node(make_node(f"u{i}.ts", imports=["lib.ts"], symbols={"lib.ts": symbols}))

        impact = get_impact(store, p("lib.ts"))

        assert impact.critical_exports == ["hot"]


class TestCycles:
    """Circular dependency detection."""

    def test_three_cycle(self, build_graph):
        store = build_graph({"a.ts": ["b.ts"], "b.ts": ["c.ts"], "c.ts": ["a.ts"]})

        cycles = detect_circular_dependencies(store)

        assert len(cycles) == 1
        assert cycles[0].cycle == [p("a.ts"), p("b.ts"), p("c.ts"), p("a.ts")]
        assert set(cycles[0].files) == {p("a.ts"), p("b.ts"), p("c.ts")}

    def test_two_cycle_reported_once(self, build_graph):
        store = build_graph({"a.ts": ["b.ts"], "b.ts": ["a.ts"]})

        cycles = detect_circular_dependencies(store)

        assert len(cycles) == 1
        assert cycles[0].cycle == [p("a.ts"), p("b.ts"), p("a.ts")]

    def test_self_import(self, build_graph):
        store = build_graph({"a.ts": ["a.ts"]})
        cycles = detect_circular_dependencies(store)
        assert [c.cycle for c in cycles] == [[p("a.ts"), p("a.ts")]]

    def test_acyclic(self, build_graph):
        store = build_graph({"a.ts": ["b.ts", "c.ts"], "b.ts": ["c.ts"], "c.ts": []})
        assert detect_circular_dependencies(store) == []

    def test_edges_to_unscanned_files_ignored(self, build_graph):
        store = build_graph({"a.ts": ["ghost.ts"]})
        assert detect_circular_dependencies(store) == []

    def test_deep_chain_does_not_recurse(self, build_graph):
        adjacency = {f"n{i}.ts": [f"n{i + 1}.ts"] for i in range(3000)}
        adjacency["n3000.ts"] = ["n0.ts"]
        store = build_graph(adjacency)

        cycles = detect_circular_dependencies(store)

        assert len(cycles) == 1
        assert len(cycles[0].files) == 3001


class TestMaxDepth:
    def test_empty_graph(self):
        assert compute_max_depth(GraphStore("/proj")) == (0, [])

    def test_single_file(self, build_graph):
        assert compute_max_depth(build_graph({"a.ts": []})) == (1, [p("a.ts")])

    def test_chain(self, build_graph):
        store = build_graph({"a.ts": ["b.ts"], "b.ts": ["c.ts"], "c.ts": []})
        depth, path = compute_max_depth(store)
        assert depth == 3
        assert path == [p("a.ts"), p("b.ts"), p("c.ts")]

    def test_cycle_terminates(self, build_graph):
        store = build_graph({"a.ts": ["b.ts"], "b.ts": ["a.ts"]})
        depth, _ = compute_max_depth(store)
        assert depth == 2


class TestSummary:
    """Whole-graph statistics and issue lists."""

    def test_empty_graph(self):
        summary = get_summary(GraphStore("/proj"))

        assert summary.total_files == 0
        assert summary.total_edges == 0
        assert summary.avg_dependents_per_file == 0.0
        assert summary.max_depth == 0
        assert summary.avg_depth == 0
        assert not summary.has_issues

    def test_orphans_and_averages(self, build_graph):
        store = build_graph({"a.ts": ["b.ts"], "b.ts": ["c.ts"], "c.ts": [], "d.ts": []})

        summary = get_summary(store)

        assert summary.total_files == 4
        assert summary.total_edges == 2
        assert summary.orphan_files == [p("a.ts"), p("d.ts")]
        assert summary.avg_dependents_per_file == 0.5
        assert summary.max_dependents == 1
        assert summary.max_depth == 3
        assert summary.avg_depth == 1.5

    def test_god_module_threshold(self, build_graph):
        adjacency = {f"u{i:02d}.ts": ["god.ts"] for i in range(20)}
        adjacency.update({f"v{i:02d}.ts": ["almost.ts"] for i in range(19)})
        adjacency["god.ts"] = []
        adjacency["almost.ts"] = []
        store = build_graph(adjacency)

        summary = get_summary(store)

        assert [(g.path, g.dependent_count) for g in summary.god_modules] == [(p("god.ts"), 20)]
        assert summary.max_dependents == 20
        assert summary.max_dependents_file == p("god.ts")

    def test_high_impact_sorted_descending(self, build_graph):
        adjacency = {f"a{i:02d}.ts": ["big.ts"] for i in range(12)}
        adjacency.update({f"b{i:02d}.ts": ["small.ts"] for i in range(10)})
        adjacency.update({f"c{i:02d}.ts": ["tiny.ts"] for i in range(9)})
        adjacency.update({"big.ts": [], "small.ts": [], "tiny.ts": []})
        store = build_graph(adjacency)

        summary = get_summary(store)

        assert [(h.path, h.affected_count) for h in summary.high_impact_files] == [
            (p("big.ts"), 12),
            (p("small.ts"), 10),
        ]

    def test_cycles_in_summary(self, build_graph):
        store = build_graph({"a.ts": ["b.ts"], "b.ts": ["a.ts"]})
        summary = get_summary(store)

        assert len(summary.circular_dependencies) == 1
        assert summary.has_issues
        assert summary.to_dict()["circular_dependencies"] == [
            {"cycle": [p("a.ts"), p("b.ts"), p("a.ts")]}
        ]
