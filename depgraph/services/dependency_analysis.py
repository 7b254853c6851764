"""
Dependency Graph Analysis Engine.

Runs the full pipeline over one immutable snapshot of work items and
connections and returns an ``AnalysisReport``:

    records ─▶ graph_builder ─▶ cycle_detection ─┬─▶ critical_path
                                                  │   (skipped when cycles exist)
                                                  ├─▶ blocked_items
                                                  ├─▶ graph_scoring
                                                  └─▶ graph_statistics

The engine is pure: no database access, no shared state, no I/O.  Concurrent
calls need no locking.  Host-level concerns (loading a workspace, wall-clock
budget) live in ``dependency_service``.

Usage:
    from depgraph.services.dependency_analysis import analyze_dependency_graph
    report = analyze_dependency_graph(work_items, connections)
    payload = report.to_dict()
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from depgraph.services.blocked_items import BlockedItem, resolve_blocked_items
from depgraph.services.critical_path import CriticalPathResult, calculate_critical_path
from depgraph.services.cycle_detection import CycleDetectionResult, detect_cycles
from depgraph.services.graph_builder import DependencyGraph, build_dependency_graph
from depgraph.services.graph_scoring import (
    DEFAULT_WEIGHTS,
    RiskItem,
    ScoringWeights,
    calculate_health_score,
    rank_risk_items,
)
from depgraph.services.graph_statistics import (
    Cluster,
    compute_graph_stats,
    connection_breakdown,
    detect_clusters,
)

logger = logging.getLogger(__name__)

CYCLE_WARNING = "Circular dependencies detected. Resolve cycles before calculating critical path."


@dataclass(frozen=True)
class AnalysisReport:
    """Everything one analysis invocation produces."""
    cycles: CycleDetectionResult
    schedule: CriticalPathResult
    health_score: int
    blocked_items: tuple[BlockedItem, ...] = ()
    blocked_count: int = 0
    risk_items: tuple[RiskItem, ...] = ()
    total_dependencies: int = 0
    by_type: tuple[dict, ...] = ()
    stats: dict = field(default_factory=dict)
    clusters: tuple[Cluster, ...] = ()
    warnings: tuple[str, ...] = ()

    @property
    def has_cycles(self) -> bool:
        return self.cycles.has_cycles

    def to_dict(self) -> dict:
        return {
            **self.cycles.to_dict(),
            **self.schedule.to_dict(),
            "healthScore": self.health_score,
            "blockedItems": [b.to_dict() for b in self.blocked_items],
            "blockedCount": self.blocked_count,
            "riskItems": [r.to_dict() for r in self.risk_items],
            "totalDependencies": self.total_dependencies,
            "byType": [dict(t) for t in self.by_type],
            "stats": dict(self.stats),
            "clusters": [c.to_dict() for c in self.clusters],
            "warnings": list(self.warnings),
        }


def analyze_graph(
    graph: DependencyGraph,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> AnalysisReport:
    """Run cycle detection, CPM, blocking and scoring over a built graph."""
    warnings = list(graph.warnings)

    cycles = detect_cycles(graph)
    if cycles.has_cycles:
        schedule = CriticalPathResult()
        warnings.append(CYCLE_WARNING)
    else:
        schedule = calculate_critical_path(graph)
        unscheduled = sum(1 for node in graph.nodes if not node.is_scheduled)
        if unscheduled:
            warnings.append(
                f"{unscheduled} work item(s) without start_date, end_date and duration_days "
                "were excluded from critical path analysis"
            )

    blocked = resolve_blocked_items(graph)
    completed = sum(1 for node in graph.nodes if node.status == "completed")
    health = calculate_health_score(
        total_items=len(graph),
        blocked_count=len(blocked),
        completed_count=completed,
        dependency_count=len(graph.edges),
        weights=weights,
    )

    return AnalysisReport(
        cycles=cycles,
        schedule=schedule,
        health_score=health,
        blocked_items=tuple(blocked[:weights.blocked_items_limit]),
        blocked_count=len(blocked),
        risk_items=tuple(rank_risk_items(graph, weights)),
        total_dependencies=len(graph.edges),
        by_type=tuple(connection_breakdown(graph)),
        stats=compute_graph_stats(graph),
        clusters=tuple(detect_clusters(graph)),
        warnings=tuple(warnings),
    )


def analyze_dependency_graph(
    work_items,
    connections,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> AnalysisReport:
    """Build the graph from raw records and analyse it.

    Raises:
        GraphInputError: when the records are structurally corrupt.
    """
    graph = build_dependency_graph(work_items, connections)
    report = analyze_graph(graph, weights)
    logger.debug(
        "Dependency analysis: items=%d edges=%d cycles=%d health=%d warnings=%d",
        len(graph), len(graph.edges), report.cycles.total_cycles,
        report.health_score, len(report.warnings),
    )
    return report
