"""
Health probes.

    GET /api/v1/health        uptime monitors
    GET /api/v1/health/ready  load balancer readiness, no dependencies touched
    GET /api/v1/health/live   database round-trip plus an engine self-check;
                              503 when either fails
"""

import logging
import time

from flask import Blueprint, current_app, jsonify

from depgraph.models import db
from depgraph.services.dependency_analysis import analyze_dependency_graph

logger = logging.getLogger(__name__)

health_bp = Blueprint("health", __name__, url_prefix="/api/v1/health")

SERVICE_NAME = "Roadmap Dependency Graph Engine"

# a(2) -> b(3); expected project duration 5
_SELF_CHECK_ITEMS = [
    {"id": "a", "name": "a", "status": "in_progress",
     "start_date": "2026-01-01", "end_date": "2026-01-03", "duration_days": 2},
    {"id": "b", "name": "b", "status": "not_started",
     "start_date": "2026-01-03", "end_date": "2026-01-06", "duration_days": 3},
]
_SELF_CHECK_CONNECTIONS = [
    {"id": "ab", "source_item_id": "a", "target_item_id": "b", "connection_type": "dependency"},
]


def _timed(check):
    t0 = time.perf_counter()
    detail = check()
    detail["latency_ms"] = round((time.perf_counter() - t0) * 1000, 1)
    return detail


def _check_database() -> dict:
    db.session.execute(db.text("SELECT 1"))
    return {"status": "ok"}


def _check_engine() -> dict:
    report = analyze_dependency_graph(_SELF_CHECK_ITEMS, _SELF_CHECK_CONNECTIONS)
    if report.schedule.project_duration != 5 or report.has_cycles:
        return {"status": "error", "detail": "unexpected self-check result"}
    return {"status": "ok"}


@health_bp.route("", methods=["GET"])
def health():
    return jsonify({"status": "ok", "app": SERVICE_NAME}), 200


@health_bp.route("/ready", methods=["GET"])
def ready():
    return jsonify({"status": "ok"}), 200


@health_bp.route("/live", methods=["GET"])
def live():
    checks = {}
    for name, check in (("database", _check_database), ("engine", _check_engine)):
        try:
            checks[name] = _timed(check)
        except Exception as exc:
            logger.error("Liveness check %s failed: %s", name, exc)
            checks[name] = {"status": "error", "detail": str(exc)}

    checks["analysis_budget"] = {
        "timeout_edge_threshold": current_app.config.get("GRAPH_TIMEOUT_EDGE_THRESHOLD"),
        "timeout_seconds": current_app.config.get("GRAPH_ANALYSIS_TIMEOUT_SECONDS"),
    }

    healthy = all(checks[name]["status"] == "ok" for name in ("database", "engine"))
    return jsonify({
        "status": "ok" if healthy else "degraded",
        "app": SERVICE_NAME,
        "checks": checks,
    }), 200 if healthy else 503
