"""
Graph Builder — dependency analysis, step 1.

Normalises raw work-item and connection records into an immutable,
index-based snapshot for a single analysis request:

    - items are sorted by id and assigned dense indices (0..n-1), so
      "ascending id" and "ascending index" are the same tie-break
    - ordering successors / predecessors are deduplicated, sorted index tuples
      restricted to dependency / blocks / enables connections, with
      bidirectional connections expanded into both directions
    - every valid active connection (any type) is kept for scoring and stats

Bad records degrade gracefully: dangling references, self loops and unknown
connection types are dropped into ``warnings``.  Only structural corruption
(not a list, not a mapping, missing or duplicate item id) raises
``GraphInputError``.

Usage:
    from depgraph.services.graph_builder import build_dependency_graph
    graph = build_dependency_graph(work_items, connections)
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from depgraph.core.exceptions import GraphInputError
from depgraph.models.workspace import (
    CONNECTION_TYPES,
    ORDERING_CONNECTION_TYPES,
    WORK_ITEM_STATUSES,
)

logger = logging.getLogger(__name__)

DEFAULT_STRENGTH = 1.0
DEFAULT_CONFIDENCE = 1.0

_SCHEDULE_FIELDS = ("start_date", "end_date", "duration_days")


# ═════════════════════════════════════════════════════════════════════════════
# Snapshot types
# ═════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class GraphNode:
    """A work item inside one analysis snapshot."""
    id: str
    name: str
    status: str
    duration_days: int | float | None = None

    @property
    def is_scheduled(self) -> bool:
        return self.duration_days is not None


@dataclass(frozen=True)
class GraphEdge:
    """A valid active connection; ``source`` / ``target`` are node indices."""
    id: str
    source: int
    target: int
    connection_type: str
    strength: float = DEFAULT_STRENGTH
    confidence: float = DEFAULT_CONFIDENCE
    is_bidirectional: bool = False

    @property
    def is_ordering(self) -> bool:
        return self.connection_type in ORDERING_CONNECTION_TYPES


@dataclass(frozen=True)
class DependencyGraph:
    """Immutable arena of nodes plus index-based adjacency."""
    nodes: tuple[GraphNode, ...]
    index: Mapping[str, int]
    edges: tuple[GraphEdge, ...]
    successors: tuple[tuple[int, ...], ...]
    predecessors: tuple[tuple[int, ...], ...]
    warnings: tuple[str, ...] = ()

    def __len__(self) -> int:
        return len(self.nodes)

    def node_id(self, idx: int) -> str:
        return self.nodes[idx].id

    def ids(self, indices) -> list[str]:
        return [self.nodes[i].id for i in indices]


# ═════════════════════════════════════════════════════════════════════════════
# Record parsing
# ═════════════════════════════════════════════════════════════════════════════


def _as_records(value: Any, label: str) -> list[Mapping]:
    """Validate a collection of records; ``None`` means empty."""
    if value is None:
        return []
    if isinstance(value, (str, bytes, Mapping)) or not hasattr(value, "__iter__"):
        raise GraphInputError(
            f"{label} must be a list of records",
            details={label: type(value).__name__},
        )
    records = list(value)
    for pos, record in enumerate(records):
        if not isinstance(record, Mapping):
            raise GraphInputError(
                f"{label}[{pos}] must be an object",
                details={label: f"position {pos} is {type(record).__name__}"},
            )
    return records


def _present(value: Any) -> bool:
    return value is not None and value != ""


def _parse_duration(raw: Any) -> int | float | None:
    """Return a finite number, keeping integral values as ints."""
    if isinstance(raw, bool):
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(value):
        return None
    return int(value) if value.is_integer() else value


def _parse_unit_interval(raw: Any, default: float, label: str, conn_id: str,
                         warnings: list[str]) -> float:
    """Parse strength / confidence into [0, 1], clamping with a warning."""
    if raw is None:
        return default
    try:
        value = float(raw)
    except (TypeError, ValueError):
        warnings.append(f"Connection {conn_id}: {label} {raw!r} is not a number; using {default}")
        return default
    if not math.isfinite(value):
        warnings.append(f"Connection {conn_id}: {label} {value:g} is not finite; using {default}")
        return default
    if not 0.0 <= value <= 1.0:
        clamped = min(max(value, 0.0), 1.0)
        warnings.append(f"Connection {conn_id}: {label} {value:g} outside [0, 1]; clamped to {clamped:g}")
        return clamped
    return value


def _parse_flag(raw: Any, label: str, conn_id: str, warnings: list[str]) -> bool:
    """A real boolean or a "true" / "false" string; anything else is False."""
    if raw is None or isinstance(raw, bool):
        return bool(raw)
    if isinstance(raw, str) and raw.strip().lower() in ("true", "false"):
        return raw.strip().lower() == "true"
    warnings.append(f"Connection {conn_id}: {label} {raw!r} is not a boolean; treated as false")
    return False


def _build_node(record: Mapping, warnings: list[str]) -> GraphNode:
    item_id = str(record["id"])
    name = str(record.get("name") or "")
    status = str(record.get("status") or "not_started")
    if status not in WORK_ITEM_STATUSES:
        warnings.append(f"Work item {item_id}: unknown status {status!r}")

    present = [f for f in _SCHEDULE_FIELDS if _present(record.get(f))]
    duration = None
    if len(present) == len(_SCHEDULE_FIELDS):
        duration = _parse_duration(record["duration_days"])
        if duration is None:
            warnings.append(
                f"Work item {item_id}: duration_days {record['duration_days']!r} is not a number; "
                "excluded from critical path"
            )
        elif duration < 0:
            warnings.append(
                f"Work item {item_id}: negative duration_days {duration}; excluded from critical path"
            )
            duration = None
    elif present:
        missing = ", ".join(f for f in _SCHEDULE_FIELDS if f not in present)
        warnings.append(
            f"Work item {item_id}: incomplete schedule (missing {missing}); excluded from critical path"
        )

    return GraphNode(id=item_id, name=name, status=status, duration_days=duration)


# ═════════════════════════════════════════════════════════════════════════════
# Builder
# ═════════════════════════════════════════════════════════════════════════════


def build_dependency_graph(work_items, connections) -> DependencyGraph:
    """Build the analysis snapshot from raw records.

    Args:
        work_items: Iterable of ``{id, name, status, start_date?, end_date?,
            duration_days?}`` mappings.
        connections: Iterable of ``{id, source_item_id, target_item_id,
            connection_type, status?, strength?, confidence?,
            is_bidirectional?}`` mappings.  Inactive ones are skipped.

    Returns:
        DependencyGraph snapshot with accumulated input warnings.

    Raises:
        GraphInputError: on structurally corrupt input.
    """
    item_records = _as_records(work_items, "work_items")
    conn_records = _as_records(connections, "connections")
    warnings: list[str] = []

    # ── Nodes ────────────────────────────────────────────────────────────
    seen: set[str] = set()
    for pos, record in enumerate(item_records):
        raw_id = record.get("id")
        if not _present(raw_id):
            raise GraphInputError(
                f"work_items[{pos}] has no id",
                details={"work_items": f"position {pos} missing id"},
            )
        item_id = str(raw_id)
        if item_id in seen:
            raise GraphInputError(
                f"Duplicate work item id {item_id}",
                details={"work_items": f"duplicate id {item_id}"},
            )
        seen.add(item_id)

    ordered = sorted(item_records, key=lambda r: str(r["id"]))
    nodes = tuple(_build_node(record, warnings) for record in ordered)
    index = {node.id: idx for idx, node in enumerate(nodes)}

    # ── Edges ────────────────────────────────────────────────────────────
    edges: list[GraphEdge] = []
    succ_sets: list[set[int]] = [set() for _ in nodes]
    pred_sets: list[set[int]] = [set() for _ in nodes]

    for pos, record in enumerate(conn_records):
        conn_id = str(record.get("id") or f"#{pos}")
        if str(record.get("status") or "active") != "active":
            continue

        source_id = record.get("source_item_id")
        target_id = record.get("target_item_id")
        source_id = str(source_id) if _present(source_id) else None
        target_id = str(target_id) if _present(target_id) else None

        if source_id is None or target_id is None:
            warnings.append(f"Connection {conn_id}: missing source or target; ignored")
            continue
        if source_id == target_id:
            warnings.append(f"Connection {conn_id}: self-referencing work item {source_id}; ignored")
            continue
        missing = [i for i in (source_id, target_id) if i not in index]
        if missing:
            warnings.append(
                f"Connection {conn_id}: references unknown work item(s) {', '.join(missing)}; ignored"
            )
            continue

        conn_type = str(record.get("connection_type") or "")
        if conn_type not in CONNECTION_TYPES:
            warnings.append(f"Connection {conn_id}: unknown connection type {conn_type!r}; ignored")
            continue

        edge = GraphEdge(
            id=conn_id,
            source=index[source_id],
            target=index[target_id],
            connection_type=conn_type,
            strength=_parse_unit_interval(
                record.get("strength"), DEFAULT_STRENGTH, "strength", conn_id, warnings),
            confidence=_parse_unit_interval(
                record.get("confidence"), DEFAULT_CONFIDENCE, "confidence", conn_id, warnings),
            is_bidirectional=_parse_flag(
                record.get("is_bidirectional"), "is_bidirectional", conn_id, warnings),
        )
        edges.append(edge)

        if edge.is_ordering:
            succ_sets[edge.source].add(edge.target)
            pred_sets[edge.target].add(edge.source)
            if edge.is_bidirectional:
                succ_sets[edge.target].add(edge.source)
                pred_sets[edge.source].add(edge.target)

    graph = DependencyGraph(
        nodes=nodes,
        index=index,
        edges=tuple(edges),
        successors=tuple(tuple(sorted(s)) for s in succ_sets),
        predecessors=tuple(tuple(sorted(p)) for p in pred_sets),
        warnings=tuple(warnings),
    )
    logger.debug(
        "Dependency graph built: %d items, %d edges (%d dropped/adjusted warnings)",
        len(nodes), len(edges), len(warnings),
    )
    return graph
