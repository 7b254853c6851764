"""
Dependency Analysis Blueprint.

Endpoints:
  Connections:        GET  /api/v1/dependencies?workspace_id=
  Analysis:           POST /api/v1/dependencies/analyze            {workspace_id}
                      POST /api/v1/dependencies/analyze/snapshot   {work_items, connections}
  Health analytics:   GET  /api/v1/analytics/dependencies?workspace_id=&team_id=&scope=

Circular dependencies are not an error: the analysis returns 200 with
hasCycles=true and empty schedule fields.  Authentication is handled by the
hosting platform, not here.  Service layer owns all business logic.
"""

from __future__ import annotations

import logging

from flask import Blueprint, jsonify, request
from werkzeug.exceptions import HTTPException

from depgraph.core.exceptions import (
    ComputationTimeout,
    GraphInputError,
    NotFoundError,
    ValidationError,
)
from depgraph.services import dependency_service
from depgraph.utils.errors import E, api_error, api_error_for

logger = logging.getLogger(__name__)

dependency_bp = Blueprint("dependencies", __name__, url_prefix="/api/v1")


# ── Error handlers ────────────────────────────────────────────────────────────


@dependency_bp.errorhandler(NotFoundError)
def _handle_not_found(error: NotFoundError):
    logger.info("Lookup failed: %s", error)
    return api_error_for(error)


@dependency_bp.errorhandler(GraphInputError)
@dependency_bp.errorhandler(ValidationError)
def _handle_bad_input(error: Exception):
    logger.info("Rejected analysis input endpoint=%s: %s", request.endpoint, error)
    return api_error_for(error)


@dependency_bp.errorhandler(ComputationTimeout)
def _handle_timeout(error: ComputationTimeout):
    return api_error_for(error)


@dependency_bp.errorhandler(Exception)
def _handle_unexpected(error: Exception):
    if isinstance(error, HTTPException):
        return jsonify({"error": error.description}), error.code
    logger.exception("Unexpected error in dependency_bp endpoint=%s", request.endpoint)
    return api_error(E.INTERNAL, "Internal server error")


# ── Helpers ───────────────────────────────────────────────────────────────────


def _json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


# ═════════════════════════════════════════════════════════════════════════
# Connections
# ═════════════════════════════════════════════════════════════════════════


@dependency_bp.route("/dependencies", methods=["GET"])
def list_dependencies():
    """List active connections of a workspace.

    Query params: workspace_id (required)
    Returns: {connections: [...], totalCount}
    """
    workspace_id = request.args.get("workspace_id")
    if not workspace_id:
        return api_error(E.VALIDATION_REQUIRED, "workspace_id is required")
    connections = dependency_service.list_connections(workspace_id)
    return jsonify({"connections": connections, "totalCount": len(connections)}), 200


# ═════════════════════════════════════════════════════════════════════════
# Analysis
# ═════════════════════════════════════════════════════════════════════════


@dependency_bp.route("/dependencies/analyze", methods=["POST"])
def analyze_workspace():
    """Cycle detection, critical path, blocking and scores for a stored workspace.

    Body: {workspace_id}
    Returns: analysis report (200), including when cycles are found.
    """
    data = _json_body()
    workspace_id = data.get("workspace_id")
    if not workspace_id:
        return api_error(E.VALIDATION_REQUIRED, "workspace_id is required")
    report = dependency_service.analyze_workspace(str(workspace_id))
    return jsonify(report), 200


@dependency_bp.route("/dependencies/analyze/snapshot", methods=["POST"])
def analyze_snapshot():
    """Same analysis over records supplied in the request body.

    Body: {work_items: [...], connections: [...]}
    Returns: analysis report (200); 400 when the records are malformed.
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return api_error(E.VALIDATION_INVALID, "Request body must be a JSON object")
    if "work_items" not in data:
        return api_error(E.VALIDATION_REQUIRED, "work_items is required")
    report = dependency_service.analyze_snapshot(data)
    return jsonify(report), 200


# ═════════════════════════════════════════════════════════════════════════
# Dependency health analytics
# ═════════════════════════════════════════════════════════════════════════


@dependency_bp.route("/analytics/dependencies", methods=["GET"])
def dependency_health():
    """Dependency health dashboard data.

    Query params: workspace_id, team_id (both required), scope=workspace|team
    Returns: {data: {totalDependencies, blockedCount, byType, healthScore,
                     criticalPath, blockedItems, riskItems, warnings}}
    """
    workspace_id = request.args.get("workspace_id")
    team_id = request.args.get("team_id")
    scope = request.args.get("scope", "workspace")
    if not workspace_id or not team_id:
        return api_error(E.VALIDATION_REQUIRED, "workspace_id and team_id are required")
    if scope not in dependency_service.ANALYTICS_SCOPES:
        return api_error(E.VALIDATION_INVALID, "scope must be 'workspace' or 'team'")
    data = dependency_service.dependency_health(workspace_id, team_id, scope)
    return jsonify({"data": data}), 200
