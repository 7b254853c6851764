"""
tests/test_graph_builder.py — Snapshot construction from raw records.

Covers:
    1.  Dense indices follow ascending item id
    2.  Ordering adjacency only from dependency / blocks / enables
    3.  Bidirectional ordering connections expand both ways
    4.  Inactive connections skipped silently
    5.  Dangling, self-referencing and unknown-type connections dropped with warnings
    6.  Strength / confidence defaults and clamping
    7.  Schedule triple parsing (partial, negative, non-numeric)
    8.  Structurally corrupt input raises GraphInputError
"""

import pytest

from depgraph.core.exceptions import GraphInputError
from depgraph.services.graph_builder import build_dependency_graph


# ═════════════════════════════════════════════════════════════════════════════
# Helpers
# ═════════════════════════════════════════════════════════════════════════════


def _item(item_id, status="not_started", duration=None):
    record = {"id": item_id, "name": f"Item {item_id}", "status": status}
    if duration is not None:
        record.update(start_date="2026-01-01", end_date="2026-02-01", duration_days=duration)
    return record


def _conn(source, target, connection_type="dependency", **extra):
    record = {
        "id": f"{source}-{target}",
        "source_item_id": source,
        "target_item_id": target,
        "connection_type": connection_type,
        "status": "active",
    }
    record.update(extra)
    return record


# ═════════════════════════════════════════════════════════════════════════════
# Tests
# ═════════════════════════════════════════════════════════════════════════════


class TestNodes:

    def test_items_indexed_by_ascending_id(self):
        graph = build_dependency_graph([_item("c"), _item("a"), _item("b")], [])
        assert [n.id for n in graph.nodes] == ["a", "b", "c"]
        assert graph.index == {"a": 0, "b": 1, "c": 2}
        assert len(graph) == 3

    def test_numeric_ids_normalised_to_strings(self):
        graph = build_dependency_graph([{"id": 7, "name": "Seven"}], [])
        assert graph.node_id(0) == "7"
        assert graph.nodes[0].status == "not_started"

    def test_unknown_status_kept_with_warning(self):
        graph = build_dependency_graph([_item("a", status="archived")], [])
        assert graph.nodes[0].status == "archived"
        assert any("unknown status" in w for w in graph.warnings)

    def test_none_collections_are_empty(self):
        graph = build_dependency_graph(None, None)
        assert len(graph) == 0
        assert graph.edges == ()


class TestSchedule:

    def test_full_triple_is_scheduled(self):
        graph = build_dependency_graph([_item("a", duration=5)], [])
        assert graph.nodes[0].is_scheduled
        assert graph.nodes[0].duration_days == 5

    def test_integral_float_kept_as_int(self):
        graph = build_dependency_graph([_item("a", duration=4.0)], [])
        assert graph.nodes[0].duration_days == 4
        assert isinstance(graph.nodes[0].duration_days, int)

    def test_fractional_duration_preserved(self):
        graph = build_dependency_graph([_item("a", duration=2.5)], [])
        assert graph.nodes[0].duration_days == 2.5

    def test_partial_triple_unscheduled_with_warning(self):
        record = {"id": "a", "name": "A", "status": "in_progress", "duration_days": 3}
        graph = build_dependency_graph([record], [])
        assert not graph.nodes[0].is_scheduled
        assert any("incomplete schedule" in w for w in graph.warnings)

    def test_no_schedule_fields_no_warning(self):
        graph = build_dependency_graph([_item("a")], [])
        assert not graph.nodes[0].is_scheduled
        assert graph.warnings == ()

    def test_negative_duration_unscheduled(self):
        graph = build_dependency_graph([_item("a", duration=-2)], [])
        assert not graph.nodes[0].is_scheduled
        assert any("negative duration_days" in w for w in graph.warnings)

    def test_non_numeric_duration_unscheduled(self):
        graph = build_dependency_graph([_item("a", duration="soon")], [])
        assert not graph.nodes[0].is_scheduled
        assert any("not a number" in w for w in graph.warnings)

    def test_zero_duration_is_scheduled(self):
        graph = build_dependency_graph([_item("a", duration=0)], [])
        assert graph.nodes[0].is_scheduled


class TestEdges:

    def test_ordering_adjacency(self):
        items = [_item("a"), _item("b"), _item("c")]
        conns = [_conn("a", "b"), _conn("b", "c", "enables"), _conn("a", "c", "relates_to")]
        graph = build_dependency_graph(items, conns)

        assert graph.successors == ((1,), (2,), ())
        assert graph.predecessors == ((), (0,), (1,))
        # advisory connections still count as edges
        assert len(graph.edges) == 3

    def test_duplicate_ordering_edges_deduplicated_in_adjacency(self):
        items = [_item("a"), _item("b")]
        conns = [_conn("a", "b", id="c1"), _conn("a", "b", "blocks", id="c2")]
        graph = build_dependency_graph(items, conns)
        assert graph.successors[0] == (1,)
        assert len(graph.edges) == 2

    def test_bidirectional_ordering_expands(self):
        items = [_item("a"), _item("b")]
        graph = build_dependency_graph(items, [_conn("a", "b", is_bidirectional=True)])
        assert graph.successors == ((1,), (0,))
        assert graph.predecessors == ((1,), (0,))

    def test_inactive_skipped_silently(self):
        items = [_item("a"), _item("b")]
        graph = build_dependency_graph(items, [_conn("a", "b", status="inactive")])
        assert graph.edges == ()
        assert graph.warnings == ()

    def test_dangling_reference_dropped(self):
        graph = build_dependency_graph([_item("a")], [_conn("a", "ghost")])
        assert graph.edges == ()
        assert any("unknown work item(s) ghost" in w for w in graph.warnings)

    def test_self_loop_dropped(self):
        graph = build_dependency_graph([_item("a")], [_conn("a", "a")])
        assert graph.edges == ()
        assert any("self-referencing" in w for w in graph.warnings)

    def test_unknown_type_dropped(self):
        graph = build_dependency_graph([_item("a"), _item("b")], [_conn("a", "b", "mentions")])
        assert graph.edges == ()
        assert any("unknown connection type" in w for w in graph.warnings)

    def test_missing_endpoint_dropped(self):
        record = {"id": "c1", "source_item_id": "a", "connection_type": "dependency"}
        graph = build_dependency_graph([_item("a")], [record])
        assert graph.edges == ()
        assert any("missing source or target" in w for w in graph.warnings)

    def test_strength_and_confidence_default_to_one(self):
        graph = build_dependency_graph([_item("a"), _item("b")], [_conn("a", "b")])
        edge = graph.edges[0]
        assert edge.strength == 1.0
        assert edge.confidence == 1.0

    def test_out_of_range_strength_clamped(self):
        items = [_item("a"), _item("b")]
        graph = build_dependency_graph(items, [_conn("a", "b", strength=1.7, confidence=-0.2)])
        edge = graph.edges[0]
        assert edge.strength == 1.0
        assert edge.confidence == 0.0
        assert sum("clamped" in w for w in graph.warnings) == 2

    def test_nan_strength_falls_back_to_default(self):
        items = [_item("a"), _item("b")]
        conns = [_conn("a", "b", strength=float("nan"), confidence=float("inf"))]
        graph = build_dependency_graph(items, conns)
        edge = graph.edges[0]
        assert edge.strength == 1.0
        assert edge.confidence == 1.0
        assert sum("is not finite" in w for w in graph.warnings) == 2

    def test_bidirectional_false_string_is_one_way(self):
        items = [_item("a"), _item("b")]
        graph = build_dependency_graph(items, [_conn("a", "b", is_bidirectional="false")])
        assert graph.edges[0].is_bidirectional is False
        assert graph.successors == ((1,), ())
        assert graph.warnings == ()

    def test_bidirectional_true_string_expands(self):
        items = [_item("a"), _item("b")]
        graph = build_dependency_graph(items, [_conn("a", "b", is_bidirectional="TRUE")])
        assert graph.successors == ((1,), (0,))

    def test_bidirectional_non_boolean_warns(self):
        items = [_item("a"), _item("b")]
        graph = build_dependency_graph(items, [_conn("a", "b", is_bidirectional="yes")])
        assert graph.edges[0].is_bidirectional is False
        assert graph.successors == ((1,), ())
        assert any("is not a boolean" in w for w in graph.warnings)


class TestCorruptInput:

    def test_work_items_not_a_list(self):
        with pytest.raises(GraphInputError):
            build_dependency_graph({"id": "a"}, [])

    def test_connections_string_rejected(self):
        with pytest.raises(GraphInputError):
            build_dependency_graph([], "a->b")

    def test_record_not_a_mapping(self):
        with pytest.raises(GraphInputError) as exc:
            build_dependency_graph([_item("a"), "b"], [])
        assert "work_items[1]" in str(exc.value)

    def test_missing_item_id(self):
        with pytest.raises(GraphInputError):
            build_dependency_graph([{"name": "nameless"}], [])

    def test_duplicate_item_id(self):
        with pytest.raises(GraphInputError) as exc:
            build_dependency_graph([_item("a"), _item("a")], [])
        assert exc.value.details == {"work_items": "duplicate id a"}
