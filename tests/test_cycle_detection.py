"""
tests/test_cycle_detection.py — Circular dependency detection.

Covers:
    1.  Acyclic graphs (chain, diamond, empty) report no cycles
    2.  Two- and three-node cycles, closing node not repeated
    3.  Advisory connection types never form cycles
    4.  Bidirectional ordering connection is a two-node cycle
    5.  affectedWorkItems is the sorted union of cycle members
    6.  Long chains handled without recursion
"""

from depgraph.services.cycle_detection import detect_cycles, find_cycles
from depgraph.services.graph_builder import build_dependency_graph


def _graph(ids, edges, connection_type="dependency", **extra):
    items = [{"id": i, "name": i.upper(), "status": "in_progress"} for i in ids]
    conns = [
        {
            "id": f"{s}-{t}",
            "source_item_id": s,
            "target_item_id": t,
            "connection_type": connection_type,
            **extra,
        }
        for s, t in edges
    ]
    return build_dependency_graph(items, conns)


class TestAcyclic:

    def test_empty_graph(self):
        result = detect_cycles(_graph([], []))
        assert not result.has_cycles
        assert result.to_dict() == {
            "hasCycles": False, "cycles": [], "totalCycles": 0, "affectedWorkItems": [],
        }

    def test_chain(self):
        result = detect_cycles(_graph(["a", "b", "c"], [("a", "b"), ("b", "c")]))
        assert not result.has_cycles

    def test_diamond_is_not_a_cycle(self):
        graph = _graph(["a", "b", "c", "d"], [("a", "b"), ("a", "c"), ("b", "d"), ("c", "d")])
        assert not detect_cycles(graph).has_cycles

    def test_advisory_types_ignored(self):
        graph = _graph(["a", "b"], [("a", "b"), ("b", "a")], connection_type="relates_to")
        assert not detect_cycles(graph).has_cycles

    def test_long_chain_no_recursion_limit(self):
        ids = [f"n{i:05d}" for i in range(5000)]
        edges = list(zip(ids, ids[1:]))
        assert not detect_cycles(_graph(ids, edges)).has_cycles


class TestCycles:

    def test_two_node_cycle(self):
        result = detect_cycles(_graph(["a", "b"], [("a", "b"), ("b", "a")]))
        assert result.has_cycles
        assert result.cycles == (("a", "b"),)
        assert result.total_cycles == 1
        assert result.affected_work_items == ("a", "b")

    def test_three_node_cycle(self):
        result = detect_cycles(_graph(["a", "b", "c"], [("a", "b"), ("b", "c"), ("c", "a")]))
        assert result.cycles == (("a", "b", "c"),)
        assert result.to_dict()["cycles"] == [["a", "b", "c"]]

    def test_cycle_excludes_lead_in_items(self):
        graph = _graph(["a", "b", "c", "d"], [("a", "b"), ("b", "c"), ("c", "d"), ("d", "b")])
        result = detect_cycles(graph)
        assert result.cycles == (("b", "c", "d"),)
        assert "a" not in result.affected_work_items

    def test_bidirectional_dependency_is_a_cycle(self):
        graph = _graph(["a", "b"], [("a", "b")], is_bidirectional=True)
        assert detect_cycles(graph).cycles == (("a", "b"),)

    def test_disjoint_cycles_both_reported(self):
        graph = _graph(
            ["a", "b", "x", "y", "z"],
            [("a", "b"), ("b", "a"), ("x", "y"), ("y", "z"), ("z", "x")],
        )
        result = detect_cycles(graph)
        assert result.total_cycles == 2
        assert result.affected_work_items == ("a", "b", "x", "y", "z")

    def test_deterministic_across_runs(self):
        edges = [("a", "b"), ("b", "c"), ("c", "a"), ("c", "b")]
        first = detect_cycles(_graph(["a", "b", "c"], edges)).to_dict()
        second = detect_cycles(_graph(["c", "b", "a"], list(reversed(edges)))).to_dict()
        assert first == second


class TestFindCycles:

    def test_index_level_api(self):
        assert find_cycles([(1,), (2,), (0,)]) == [[0, 1, 2]]
        assert find_cycles([(1,), (), ()]) == []
