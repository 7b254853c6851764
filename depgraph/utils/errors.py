"""JSON error envelopes for the dependency API.

Every error body has the same shape::

    {"error": "<human message>", "code": "ERR_...", "details": {...}}

``details`` is omitted when empty.

Usage
-----
    from depgraph.utils.errors import api_error, api_error_for, E

    return api_error(E.VALIDATION_REQUIRED, "workspace_id is required")
    return api_error_for(exc)      # exc is a depgraph.core.exceptions error
"""

from __future__ import annotations

from flask import jsonify

from depgraph.core.exceptions import (
    ComputationTimeout,
    GraphInputError,
    NotFoundError,
    ValidationError,
)


class E:
    """Machine-readable error codes."""

    VALIDATION_REQUIRED = "ERR_VALIDATION_REQUIRED"      # 400 missing parameter
    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"        # 400 malformed snapshot / parameter
    VALIDATION_CONSTRAINT = "ERR_VALIDATION_CONSTRAINT"  # 422 well-formed but not analysable
    NOT_FOUND = "ERR_NOT_FOUND"                          # 404 workspace / team scope
    COMPUTATION_TIMEOUT = "ERR_COMPUTATION_TIMEOUT"      # 503 analysis budget exceeded
    INTERNAL = "ERR_INTERNAL"                            # 500


_STATUS_BY_CODE: dict[str, int] = {
    E.VALIDATION_REQUIRED: 400,
    E.VALIDATION_INVALID: 400,
    E.VALIDATION_CONSTRAINT: 422,
    E.NOT_FOUND: 404,
    E.COMPUTATION_TIMEOUT: 503,
    E.INTERNAL: 500,
}

_CODE_BY_EXCEPTION: tuple[tuple[type[Exception], str], ...] = (
    (NotFoundError, E.NOT_FOUND),
    (GraphInputError, E.VALIDATION_INVALID),
    (ValidationError, E.VALIDATION_CONSTRAINT),
    (ComputationTimeout, E.COMPUTATION_TIMEOUT),
)


def api_error(
    code: str,
    message: str,
    *,
    status: int | None = None,
    details: dict | None = None,
):
    """Build ``(response, status)`` for a Flask view.

    ``status`` overrides the code's default HTTP status (400 for unknown codes).
    """
    body: dict = {"error": message, "code": code}
    if details:
        body["details"] = details
    return jsonify(body), status or _STATUS_BY_CODE.get(code, 400)


def api_error_for(exc: Exception):
    """Envelope for a domain exception, using its message and details."""
    for exc_type, code in _CODE_BY_EXCEPTION:
        if isinstance(exc, exc_type):
            break
    else:
        return api_error(E.INTERNAL, "Internal server error")

    if isinstance(exc, NotFoundError):
        return api_error(code, f"{exc.resource} not found", details={"id": exc.resource_id})
    if isinstance(exc, ComputationTimeout):
        return api_error(
            code,
            "Dependency analysis timed out; retry with a smaller scope",
            details={"timeout_seconds": exc.timeout_seconds, "connections": exc.edge_count},
        )
    return api_error(code, str(exc), details=getattr(exc, "details", None))
