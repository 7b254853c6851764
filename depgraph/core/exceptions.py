"""
Exceptions raised by the dependency graph engine and its service layer.

    NotFoundError       404  analysis scope (workspace / team) missing
    GraphInputError     400  snapshot too corrupt to build a graph
    ValidationError     422  well-formed input the engine refuses to analyse
    ComputationTimeout  503  analysis exceeded its wall-clock budget

The dependency blueprint maps each type to its status once, through
``depgraph.utils.errors.api_error_for``.

Usage:
    from depgraph.core.exceptions import NotFoundError, GraphInputError

    raise NotFoundError(resource="Workspace", resource_id="ws-1")
    raise GraphInputError("work_items must be a list", details={"work_items": "dict"})
"""


class NotFoundError(Exception):
    """The workspace (or the workspace within the given team) was not found.

    A workspace owned by another team is reported the same way, so callers
    cannot probe for ids outside their team.
    """

    def __init__(self, resource: str, resource_id: str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        label = resource if resource_id is None else f"{resource} {resource_id!r}"
        super().__init__(f"{label} not found")


class ValidationError(Exception):
    """Input is well formed but cannot be analysed as given.

    Raised for unknown scoring-weight overrides, an unsupported analytics
    scope, or a cyclic graph handed straight to the critical path pass.
    ``details`` maps offending fields to a short reason.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class GraphInputError(Exception):
    """Raised when the input snapshot is structurally corrupt.

    Only raised when no graph can be built at all (records that are not
    mappings, missing or duplicate item ids, collections of the wrong type).
    Recoverable problems such as dangling edges are reported as warnings
    instead.  Maps to HTTP 400.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class ComputationTimeout(Exception):
    """Raised when a graph analysis exceeds its wall-clock budget.

    The caller may retry with a reduced scope.  Maps to HTTP 503.

    Args:
        timeout_seconds: The budget that was exceeded.
        edge_count: Size of the connection set that was being analysed.
    """

    def __init__(self, timeout_seconds: float, edge_count: int | None = None) -> None:
        self.timeout_seconds = timeout_seconds
        self.edge_count = edge_count
        msg = f"Dependency analysis exceeded {timeout_seconds:g}s budget"
        if edge_count is not None:
            msg += f" ({edge_count} connections)"
        super().__init__(msg)
