"""
Dependency analysis service: the host layer around the analysis engine.

Responsibilities:
    - Load a workspace (or a whole team) snapshot from the database
    - Run the engine under a wall-clock budget for large graphs
    - Shape the dependency-health analytics payload

The engine itself (``dependency_analysis``) never touches the database;
this module is the only place that does.

Usage:
    from depgraph.services import dependency_service
    report = dependency_service.analyze_workspace("ws-123")
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError

from flask import current_app

from depgraph.core.exceptions import ComputationTimeout, NotFoundError, ValidationError
from depgraph.models import db
from depgraph.models.workspace import WorkItem, WorkItemConnection, Workspace
from depgraph.services.dependency_analysis import AnalysisReport, analyze_dependency_graph
from depgraph.services.graph_scoring import ScoringWeights

logger = logging.getLogger(__name__)

ANALYTICS_SCOPES = {"workspace", "team"}


# ── Config helpers ───────────────────────────────────────────────────────────


def _scoring_weights() -> ScoringWeights:
    return ScoringWeights.from_mapping(current_app.config.get("GRAPH_SCORING_WEIGHTS"))


def _budget() -> tuple[int, float]:
    threshold = int(current_app.config.get("GRAPH_TIMEOUT_EDGE_THRESHOLD", 5000))
    timeout = float(current_app.config.get("GRAPH_ANALYSIS_TIMEOUT_SECONDS", 10.0))
    return threshold, timeout


# ═════════════════════════════════════════════════════════════════════════════
# Snapshot loading
# ═════════════════════════════════════════════════════════════════════════════


def get_workspace(workspace_id: str, team_id: str | None = None) -> Workspace:
    """Return the workspace or raise NotFoundError (also when it is in another team)."""
    workspace = db.session.get(Workspace, workspace_id)
    if workspace is None or (team_id is not None and workspace.team_id != team_id):
        raise NotFoundError(resource="Workspace", resource_id=workspace_id)
    return workspace


def load_workspace_snapshot(workspace_id: str) -> tuple[list[dict], list[dict]]:
    """Work items and active connections of one workspace as engine records."""
    get_workspace(workspace_id)
    items = WorkItem.query.filter_by(workspace_id=workspace_id).order_by(WorkItem.id).all()
    connections = (
        WorkItemConnection.query
        .filter_by(workspace_id=workspace_id, status="active")
        .order_by(WorkItemConnection.id)
        .all()
    )
    return [i.to_graph_record() for i in items], [c.to_graph_record() for c in connections]


def load_team_snapshot(team_id: str) -> tuple[list[dict], list[dict]]:
    """Work items of every workspace in a team plus connections leaving them."""
    items = WorkItem.query.filter_by(team_id=team_id).order_by(WorkItem.id).all()
    item_ids = [i.id for i in items]
    connections = []
    if item_ids:
        connections = (
            WorkItemConnection.query
            .filter(WorkItemConnection.status == "active")
            .filter(WorkItemConnection.source_item_id.in_(item_ids))
            .order_by(WorkItemConnection.id)
            .all()
        )
    return [i.to_graph_record() for i in items], [c.to_graph_record() for c in connections]


def list_connections(workspace_id: str) -> list[dict]:
    """Active connections of a workspace, newest first."""
    get_workspace(workspace_id)
    rows = (
        WorkItemConnection.query
        .filter_by(workspace_id=workspace_id, status="active")
        .order_by(WorkItemConnection.created_at.desc(), WorkItemConnection.id)
        .all()
    )
    return [c.to_dict() for c in rows]


# ═════════════════════════════════════════════════════════════════════════════
# Budgeted execution
# ═════════════════════════════════════════════════════════════════════════════


def run_analysis(
    work_items: list,
    connections: list,
    *,
    weights: ScoringWeights | None = None,
    edge_threshold: int | None = None,
    timeout_seconds: float | None = None,
) -> AnalysisReport:
    """Run the engine; graphs above ``edge_threshold`` connections get a time budget.

    Raises:
        ComputationTimeout: the budget was exceeded.
        GraphInputError: the snapshot is structurally corrupt.
    """
    if weights is None:
        weights = _scoring_weights()
    if edge_threshold is None or timeout_seconds is None:
        default_threshold, default_timeout = _budget()
        edge_threshold = default_threshold if edge_threshold is None else edge_threshold
        timeout_seconds = default_timeout if timeout_seconds is None else timeout_seconds

    edge_count = len(connections) if isinstance(connections, (list, tuple)) else 0
    if edge_count <= edge_threshold:
        return analyze_dependency_graph(work_items, connections, weights)

    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="dependency-analysis")
    future = executor.submit(analyze_dependency_graph, work_items, connections, weights)
    try:
        return future.result(timeout=timeout_seconds)
    except FuturesTimeoutError as exc:
        logger.warning(
            "Dependency analysis timed out after %.1fs (items=%d edges=%d)",
            timeout_seconds, len(work_items) if isinstance(work_items, (list, tuple)) else 0,
            edge_count,
        )
        raise ComputationTimeout(timeout_seconds, edge_count) from exc
    finally:
        executor.shutdown(wait=False, cancel_futures=True)


# ═════════════════════════════════════════════════════════════════════════════
# Entry points used by the blueprint
# ═════════════════════════════════════════════════════════════════════════════


def analyze_workspace(workspace_id: str) -> dict:
    """Full analysis report for a stored workspace."""
    t0 = time.perf_counter()
    work_items, connections = load_workspace_snapshot(workspace_id)
    report = run_analysis(work_items, connections)
    logger.info(
        "Workspace analysed workspace=%s items=%d edges=%d cycles=%d health=%d (%.0fms)",
        workspace_id, len(work_items), len(connections), report.cycles.total_cycles,
        report.health_score, (time.perf_counter() - t0) * 1000,
    )
    return report.to_dict()


def analyze_snapshot(data: dict) -> dict:
    """Full analysis report for an inline ``{work_items, connections}`` payload."""
    work_items = data.get("work_items")
    connections = data.get("connections")
    report = run_analysis(work_items, connections)
    logger.info(
        "Snapshot analysed items=%d edges=%d cycles=%d health=%d",
        report.stats["nodeCount"], report.total_dependencies,
        report.cycles.total_cycles, report.health_score,
    )
    return report.to_dict()


def dependency_health(workspace_id: str, team_id: str, scope: str = "workspace") -> dict:
    """Dependency-health dashboard payload for a workspace or its whole team.

    Returns:
        {totalDependencies, blockedCount, byType, healthScore,
         criticalPath: {length, items, projectDuration}, blockedItems, riskItems}
    """
    if scope not in ANALYTICS_SCOPES:
        raise ValidationError(
            f"scope must be one of {sorted(ANALYTICS_SCOPES)}",
            details={"scope": scope},
        )
    get_workspace(workspace_id, team_id=team_id)
    if scope == "team":
        work_items, connections = load_team_snapshot(team_id)
    else:
        work_items, connections = load_workspace_snapshot(workspace_id)

    report = run_analysis(work_items, connections)
    names = {item["id"]: item["name"] for item in work_items}
    path = report.schedule.critical_path

    logger.info(
        "Dependency health computed team=%s workspace=%s scope=%s health=%d",
        team_id, workspace_id, scope, report.health_score,
    )
    return {
        "totalDependencies": report.total_dependencies,
        "blockedCount": report.blocked_count,
        "byType": [dict(t) for t in report.by_type],
        "healthScore": report.health_score,
        "criticalPath": {
            "length": len(path),
            "items": [{"id": item_id, "name": names.get(item_id, "")} for item_id in path],
            "projectDuration": report.schedule.project_duration,
        },
        "blockedItems": [b.to_dict() for b in report.blocked_items],
        "riskItems": [r.to_dict() for r in report.risk_items],
        "warnings": list(report.warnings),
    }
