"""
Cycle Detector — dependency analysis, step 2.

Iterative three-colour depth-first search over the ordering subgraph:

    WHITE  not yet visited
    GRAY   on the current DFS path
    BLACK  fully explored, never entered again

An edge into a GRAY node closes a cycle; the cycle is the slice of the
current path from that node to the tip.  Every back edge contributes one
cycle and every node is expanded once, so total work is O(V + E) however
dense the graph is.  Roots and successors are visited in ascending id order,
making the reported cycles deterministic.

Any cycle disables critical path analysis for the request.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from depgraph.services.graph_builder import DependencyGraph

logger = logging.getLogger(__name__)

WHITE, GRAY, BLACK = 0, 1, 2


@dataclass(frozen=True)
class CycleDetectionResult:
    """Cycles found in the ordering subgraph (item ids, closing node not repeated)."""
    cycles: tuple[tuple[str, ...], ...] = ()
    affected_work_items: tuple[str, ...] = ()

    @property
    def has_cycles(self) -> bool:
        return bool(self.cycles)

    @property
    def total_cycles(self) -> int:
        return len(self.cycles)

    def to_dict(self) -> dict:
        return {
            "hasCycles": self.has_cycles,
            "cycles": [list(c) for c in self.cycles],
            "totalCycles": self.total_cycles,
            "affectedWorkItems": list(self.affected_work_items),
        }


def find_cycles(successors: Sequence[Sequence[int]]) -> list[list[int]]:
    """Return one index cycle per back edge in the adjacency list."""
    color = [WHITE] * len(successors)
    cycles: list[list[int]] = []

    for root in range(len(successors)):
        if color[root] != WHITE:
            continue

        color[root] = GRAY
        path = [root]
        depth = {root: 0}
        stack = [(root, iter(successors[root]))]

        while stack:
            node, children = stack[-1]
            descended = False
            for child in children:
                if color[child] == WHITE:
                    color[child] = GRAY
                    depth[child] = len(path)
                    path.append(child)
                    stack.append((child, iter(successors[child])))
                    descended = True
                    break
                if color[child] == GRAY:
                    cycles.append(path[depth[child]:])
            if descended:
                continue
            stack.pop()
            path.pop()
            del depth[node]
            color[node] = BLACK

    return cycles


def detect_cycles(graph: DependencyGraph) -> CycleDetectionResult:
    """Detect every cycle closed by a back edge in the graph's ordering edges."""
    index_cycles = find_cycles(graph.successors)
    if not index_cycles:
        return CycleDetectionResult()

    affected = sorted({i for cycle in index_cycles for i in cycle})
    result = CycleDetectionResult(
        cycles=tuple(tuple(graph.ids(cycle)) for cycle in index_cycles),
        affected_work_items=tuple(graph.ids(affected)),
    )
    logger.info(
        "Circular dependencies detected: %d cycle(s) across %d work item(s)",
        result.total_cycles, len(result.affected_work_items),
    )
    return result
