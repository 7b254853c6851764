"""
Blocked-item resolver (dependency analysis, step 5).

An item is blocked when
    (a) its own status is ``blocked``, or
    (b) it is the target of an active ``blocks`` / ``dependency`` connection
        whose source is not ``completed``.

Only immediate predecessors are checked: in a chain A → B → C where A and B
are incomplete, B and C are blocked (each by its direct predecessor), but C
does not list A.  Bidirectional blocking connections block both ends.
"""

from __future__ import annotations

from dataclasses import dataclass

from depgraph.models.workspace import BLOCKING_CONNECTION_TYPES
from depgraph.services.graph_builder import DependencyGraph


@dataclass(frozen=True)
class BlockedItem:
    id: str
    name: str
    blocked_by: tuple[str, ...] = ()

    @property
    def blocked_by_count(self) -> int:
        return len(self.blocked_by)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "blockedBy": list(self.blocked_by),
            "blockedByCount": self.blocked_by_count,
        }


def resolve_blocked_items(graph: DependencyGraph) -> list[BlockedItem]:
    """Every blocked item, most blockers first, ties by ascending id."""
    blockers: list[set[int]] = [set() for _ in graph.nodes]

    for edge in graph.edges:
        if edge.connection_type not in BLOCKING_CONNECTION_TYPES:
            continue
        directions = [(edge.source, edge.target)]
        if edge.is_bidirectional:
            directions.append((edge.target, edge.source))
        for source, target in directions:
            if graph.nodes[source].status != "completed":
                blockers[target].add(source)

    blocked = [
        (idx, BlockedItem(node.id, node.name, tuple(graph.ids(sorted(blockers[idx])))))
        for idx, node in enumerate(graph.nodes)
        if node.status == "blocked" or blockers[idx]
    ]
    blocked.sort(key=lambda pair: (-pair[1].blocked_by_count, pair[0]))
    return [item for _, item in blocked]
