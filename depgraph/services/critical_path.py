"""
Critical Path Calculator (CPM) — dependency analysis, step 3.

Two-pass Critical Path Method over the scheduled work items (those with a
full start_date / end_date / duration_days triple) and the ordering
connections between them.

    Forward pass   ES = max(0, max(pred.EF))      EF = ES + duration
    Project end    max(EF)
    Backward pass  LF = project end for sinks, else min(succ.LS)
                   LS = LF - duration
    Slack          LS - ES   (critical when |slack| <= CRITICAL_SLACK_EPSILON)

Both passes walk a topological order produced by Kahn's algorithm with a
min-heap on the node index, so no recursion is involved and the order is
the same on every run.  Requires an acyclic ordering subgraph; the cycle
detector gates this in ``dependency_analysis``.
"""

from __future__ import annotations

import heapq
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field

from depgraph.core.exceptions import ValidationError
from depgraph.services.graph_builder import DependencyGraph

logger = logging.getLogger(__name__)

CRITICAL_SLACK_EPSILON = 1e-3

# Critical nodes with at least this many ordering successors are bottlenecks
BOTTLENECK_MIN_SUCCESSORS = 2


@dataclass(frozen=True)
class CpmNode:
    """Schedule figures for one scheduled work item (days from project start)."""
    id: str
    duration: int | float
    earliest_start: int | float
    earliest_finish: int | float
    latest_start: int | float
    latest_finish: int | float
    slack: int | float
    is_critical: bool

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "earliestStart": self.earliest_start,
            "earliestFinish": self.earliest_finish,
            "latestStart": self.latest_start,
            "latestFinish": self.latest_finish,
            "slack": self.slack,
            "isCritical": self.is_critical,
        }


@dataclass(frozen=True)
class CriticalPathResult:
    nodes: Mapping[str, CpmNode] = field(default_factory=dict)
    critical_path: tuple[str, ...] = ()
    project_duration: int | float = 0
    bottlenecks: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            "criticalPath": list(self.critical_path),
            "projectDuration": self.project_duration,
            "nodes": {node_id: node.to_dict() for node_id, node in self.nodes.items()},
            "bottlenecks": list(self.bottlenecks),
        }


def topological_order(
    members: list[int],
    successors: Mapping[int, list[int]],
    predecessors: Mapping[int, list[int]],
) -> list[int]:
    """Kahn's algorithm; ready nodes are released in ascending index order.

    Raises:
        ValidationError: when the subgraph contains a cycle.
    """
    in_degree = {i: len(predecessors[i]) for i in members}
    ready = [i for i in members if in_degree[i] == 0]
    heapq.heapify(ready)

    order: list[int] = []
    while ready:
        current = heapq.heappop(ready)
        order.append(current)
        for succ in successors[current]:
            in_degree[succ] -= 1
            if in_degree[succ] == 0:
                heapq.heappush(ready, succ)

    if len(order) != len(members):
        raise ValidationError(
            "Critical path requires an acyclic dependency graph",
            details={"unordered_items": len(members) - len(order)},
        )
    return order


def calculate_critical_path(graph: DependencyGraph) -> CriticalPathResult:
    """Run the CPM forward/backward passes over the graph's scheduled items."""
    scheduled = [i for i, node in enumerate(graph.nodes) if node.is_scheduled]
    if not scheduled:
        return CriticalPathResult()

    members = set(scheduled)
    successors = {i: [s for s in graph.successors[i] if s in members] for i in scheduled}
    predecessors = {i: [p for p in graph.predecessors[i] if p in members] for i in scheduled}
    duration = {i: graph.nodes[i].duration_days for i in scheduled}

    order = topological_order(scheduled, successors, predecessors)

    # ── Forward pass ─────────────────────────────────────────────────────
    earliest_start: dict[int, int | float] = {}
    earliest_finish: dict[int, int | float] = {}
    for i in order:
        start = max((earliest_finish[p] for p in predecessors[i]), default=0)
        earliest_start[i] = max(0, start)
        earliest_finish[i] = earliest_start[i] + duration[i]

    project_end = max(earliest_finish.values())

    # ── Backward pass ────────────────────────────────────────────────────
    latest_start: dict[int, int | float] = {}
    latest_finish: dict[int, int | float] = {}
    for i in reversed(order):
        if successors[i]:
            latest_finish[i] = min(latest_start[s] for s in successors[i])
        else:
            latest_finish[i] = project_end
        latest_start[i] = latest_finish[i] - duration[i]

    # ── Slack & criticality ──────────────────────────────────────────────
    nodes: dict[str, CpmNode] = {}
    critical: list[int] = []
    for i in scheduled:
        slack = latest_start[i] - earliest_start[i]
        is_critical = abs(slack) <= CRITICAL_SLACK_EPSILON
        if is_critical:
            slack = 0
            critical.append(i)
        nodes[graph.node_id(i)] = CpmNode(
            id=graph.node_id(i),
            duration=duration[i],
            earliest_start=earliest_start[i],
            earliest_finish=earliest_finish[i],
            latest_start=latest_start[i],
            latest_finish=latest_finish[i],
            slack=slack,
            is_critical=is_critical,
        )

    critical.sort(key=lambda i: (earliest_start[i], i))
    bottlenecks = [
        i for i in critical
        if len(graph.successors[i]) >= BOTTLENECK_MIN_SUCCESSORS
    ]

    result = CriticalPathResult(
        nodes=nodes,
        critical_path=tuple(graph.ids(critical)),
        project_duration=project_end,
        bottlenecks=tuple(graph.ids(bottlenecks)),
    )
    logger.debug(
        "CPM complete: %d scheduled items, duration=%s, %d critical, %d bottlenecks",
        len(scheduled), project_end, len(critical), len(bottlenecks),
    )
    return result
