"""
tests/test_critical_path.py — Critical Path Method over scheduled work items.

Covers:
    1.  Linear chain: every item critical, durations sum to project length
    2.  Parallel branch carries slack
    2a. Critical items on a branching graph form a source to sink path
    3.  Critical path ordered by earliest start, ties by id
    4.  Bottlenecks: critical items with two or more successors
    5.  Unscheduled items and their connections left out
    6.  Slack within tolerance snaps to zero
    7.  Cyclic input rejected when called directly
"""

import pytest

from depgraph.core.exceptions import ValidationError
from depgraph.services.critical_path import calculate_critical_path, topological_order
from depgraph.services.graph_builder import build_dependency_graph


def _graph(durations, edges):
    items = []
    for item_id, duration in durations.items():
        record = {"id": item_id, "name": item_id.upper(), "status": "in_progress"}
        if duration is not None:
            record.update(start_date="2026-03-01", end_date="2026-04-01", duration_days=duration)
        items.append(record)
    conns = [
        {"id": f"{s}-{t}", "source_item_id": s, "target_item_id": t, "connection_type": "dependency"}
        for s, t in edges
    ]
    return build_dependency_graph(items, conns)


class TestLinearChain:

    def test_chain_figures(self):
        result = calculate_critical_path(_graph({"a": 5, "b": 3, "c": 2}, [("a", "b"), ("b", "c")]))

        assert result.project_duration == 10
        assert result.critical_path == ("a", "b", "c")
        a, b, c = result.nodes["a"], result.nodes["b"], result.nodes["c"]
        assert (a.earliest_start, a.earliest_finish) == (0, 5)
        assert (b.earliest_start, b.earliest_finish) == (5, 8)
        assert (c.earliest_start, c.earliest_finish) == (8, 10)
        assert all(n.slack == 0 and n.is_critical for n in (a, b, c))

    def test_to_dict_shape(self):
        payload = calculate_critical_path(_graph({"a": 5, "b": 3}, [("a", "b")])).to_dict()
        assert payload["criticalPath"] == ["a", "b"]
        assert payload["projectDuration"] == 8
        assert payload["nodes"]["b"] == {
            "id": "b",
            "earliestStart": 5,
            "earliestFinish": 8,
            "latestStart": 5,
            "latestFinish": 8,
            "slack": 0,
            "isCritical": True,
        }
        assert payload["bottlenecks"] == []

    def test_no_scheduled_items(self):
        result = calculate_critical_path(_graph({"a": None, "b": None}, [("a", "b")]))
        assert result.to_dict() == {
            "criticalPath": [], "projectDuration": 0, "nodes": {}, "bottlenecks": [],
        }


class TestSlack:

    def test_parallel_branch_has_slack(self):
        graph = _graph({"a": 5, "b": 3, "c": 2, "d": 1}, [("a", "b"), ("b", "c"), ("d", "c")])
        result = calculate_critical_path(graph)

        d = result.nodes["d"]
        assert d.earliest_start == 0
        assert d.latest_start == 7
        assert d.slack == 7
        assert not d.is_critical
        assert "d" not in result.critical_path

    def test_slack_never_negative(self):
        graph = _graph(
            {"a": 4, "b": 2, "c": 6, "d": 1, "e": 3},
            [("a", "b"), ("a", "c"), ("b", "d"), ("c", "e"), ("d", "e")],
        )
        result = calculate_critical_path(graph)
        assert all(n.slack >= 0 for n in result.nodes.values())
        assert result.project_duration == 13

    def test_critical_items_form_source_to_sink_path(self):
        durations = {"a": 4, "b": 2, "c": 6, "d": 1, "e": 3}
        graph = _graph(
            durations,
            [("a", "b"), ("a", "c"), ("b", "d"), ("c", "e"), ("d", "e")],
        )
        result = calculate_critical_path(graph)
        path = result.critical_path

        assert path == ("a", "c", "e")
        for source, target in zip(path, path[1:]):
            assert graph.index[target] in graph.successors[graph.index[source]]
        assert graph.predecessors[graph.index[path[0]]] == ()
        assert graph.successors[graph.index[path[-1]]] == ()
        assert sum(durations[i] for i in path) == result.project_duration
        assert result.nodes["b"].slack == 3

    def test_near_zero_slack_is_critical(self):
        graph = _graph({"a": 1.0004, "b": 1, "c": 2}, [("a", "c"), ("b", "c")])
        result = calculate_critical_path(graph)
        assert result.nodes["b"].is_critical
        assert result.nodes["b"].slack == 0

    def test_zero_duration_item(self):
        graph = _graph({"a": 3, "b": 0, "c": 2}, [("a", "b"), ("b", "c")])
        result = calculate_critical_path(graph)
        assert result.project_duration == 5
        assert result.critical_path == ("a", "b", "c")


class TestOrdering:

    def test_ties_broken_by_id(self):
        graph = _graph({"b": 2, "a": 2, "c": 1}, [("a", "c"), ("b", "c")])
        result = calculate_critical_path(graph)
        assert result.critical_path == ("a", "b", "c")

    def test_output_identical_across_runs(self):
        durations = {"a": 2, "b": 2, "c": 1}
        edges = [("a", "c"), ("b", "c")]
        first = calculate_critical_path(_graph(durations, edges)).to_dict()
        second = calculate_critical_path(_graph(dict(reversed(durations.items())), edges)).to_dict()
        assert first == second


class TestBottlenecks:

    def test_critical_fan_out_is_bottleneck(self):
        graph = _graph({"a": 5, "b": 3, "x": 1}, [("a", "b"), ("a", "x")])
        result = calculate_critical_path(graph)
        assert result.bottlenecks == ("a",)

    def test_non_critical_fan_out_is_not_bottleneck(self):
        graph = _graph({"a": 10, "s": 1, "x": 1, "y": 1}, [("s", "x"), ("s", "y")])
        result = calculate_critical_path(graph)
        assert result.bottlenecks == ()


class TestUnscheduled:

    def test_unscheduled_items_excluded(self):
        graph = _graph({"a": 5, "u": None, "c": 2}, [("a", "u"), ("u", "c")])
        result = calculate_critical_path(graph)
        assert "u" not in result.nodes
        assert result.nodes["c"].earliest_start == 0
        assert result.project_duration == 5


class TestCyclicInput:

    def test_direct_call_on_cycle_raises(self):
        graph = _graph({"a": 1, "b": 1}, [("a", "b"), ("b", "a")])
        with pytest.raises(ValidationError):
            calculate_critical_path(graph)

    def test_topological_order_releases_lowest_index_first(self):
        successors = {0: [2], 1: [2], 2: []}
        predecessors = {0: [], 1: [], 2: [0, 1]}
        assert topological_order([0, 1, 2], successors, predecessors) == [0, 1, 2]
