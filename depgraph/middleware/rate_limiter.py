"""
Rate limiting for the analysis endpoints.

A full analysis recomputes the whole graph, so the dependency blueprint is
limited per workspace (falling back to the client address when the request
names no workspace).  Health probes are exempt.  The Limiter itself is
created in depgraph/__init__.py without default limits.

Usage:
    from depgraph.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

from flask import request

from depgraph.middleware.timing import _scope_from_request

logger = logging.getLogger(__name__)

DEFAULT_ANALYZE_LIMIT = "30/minute"


def analysis_rate_key() -> str:
    """Bucket key: the workspace under analysis, else the remote address.

    Limits are checked before the timing hook fills ``g``.
    """
    workspace_id, _ = _scope_from_request()
    if workspace_id:
        return f"workspace:{workspace_id}"
    return request.remote_addr or "unknown"


def init_rate_limits(app, limiter):
    """Attach limits to registered blueprints; no-op when TESTING."""
    if app.config.get("TESTING"):
        logger.info("Rate limiter disabled (TESTING=True)")
        return

    analyze_limit = app.config.get("GRAPH_ANALYZE_RATE_LIMIT") or DEFAULT_ANALYZE_LIMIT

    dependencies = app.blueprints.get("dependencies")
    if dependencies is not None:
        limiter.limit(analyze_limit, key_func=analysis_rate_key)(dependencies)

    health = app.blueprints.get("health")
    if health is not None:
        limiter.exempt(health)

    logger.info("Rate limiter configured: dependencies=%s per workspace", analyze_limit)
