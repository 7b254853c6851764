"""
Request timing and correlation.

- assigns a request id (honours an incoming ``X-Request-ID``)
- stores the workspace / team named by the request on ``flask.g`` so every
  log line of the request carries them (see ``AnalysisContextFilter``)
- returns ``X-Request-ID`` and ``X-Request-Duration-Ms`` on every response
- access log: DEBUG normally, WARNING above ``SLOW_REQUEST_MS`` config,
  ERROR for 5xx
"""

import logging
import time
import uuid

from flask import Flask, current_app, g, request

logger = logging.getLogger(__name__)

# Probes polled by load balancers are not access-logged
QUIET_PATHS = frozenset({"/api/v1/health", "/api/v1/health/ready", "/api/v1/health/live"})

DEFAULT_SLOW_REQUEST_MS = 1000


def _scope_from_request() -> tuple[str | None, str | None]:
    """workspace_id / team_id from the query string, else from a JSON body."""
    values = {key: request.args.get(key) for key in ("workspace_id", "team_id")}
    if None in values.values() and request.is_json:
        body = request.get_json(silent=True)
        if isinstance(body, dict):
            for key, current in values.items():
                if current is None and body.get(key) is not None:
                    values[key] = body[key]
    return tuple(str(v) if v is not None else None for v in values.values())


def init_request_timing(app: Flask):
    """Register before/after hooks for correlation ids and timing."""

    @app.before_request
    def _begin_request():
        g.request_started = time.perf_counter()
        g.request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:12]
        g.workspace_id, g.team_id = _scope_from_request()

    @app.after_request
    def _finish_request(response):
        started = g.get("request_started")
        if started is None:
            return response

        elapsed_ms = (time.perf_counter() - started) * 1000
        response.headers["X-Request-ID"] = g.request_id
        response.headers["X-Request-Duration-Ms"] = f"{elapsed_ms:.1f}"

        if request.path in QUIET_PATHS:
            return response

        extra = {
            "method": request.method,
            "path": request.path,
            "status": response.status_code,
            "duration_ms": elapsed_ms,
            "remote_addr": request.remote_addr,
        }
        slow_ms = current_app.config.get("SLOW_REQUEST_MS", DEFAULT_SLOW_REQUEST_MS)
        if response.status_code >= 500:
            level = logging.ERROR
        elif elapsed_ms > slow_ms:
            level = logging.WARNING
        else:
            level = logging.DEBUG
        logger.log(level, "%s %s -> %d", request.method, request.path,
                   response.status_code, extra=extra)
        return response
