"""
Structural summaries reported next to the analysis.

    - connection breakdown: total active connections and count per type
    - degree / density stats and isolated work items
    - clusters: weakly connected groups of two or more work items
"""

from __future__ import annotations

from collections import Counter, deque
from dataclasses import dataclass

from depgraph.services.graph_builder import DependencyGraph


def format_label(value: str) -> str:
    """``relates_to`` → ``Relates To``."""
    return " ".join(word[:1].upper() + word[1:] for word in value.split("_"))


def connection_breakdown(graph: DependencyGraph) -> list[dict]:
    """Active connection counts per type, ordered by type name."""
    counts = Counter(edge.connection_type for edge in graph.edges)
    return [
        {"name": format_label(conn_type), "value": counts[conn_type]}
        for conn_type in sorted(counts)
    ]


def compute_graph_stats(graph: DependencyGraph) -> dict:
    node_count = len(graph)
    edge_count = len(graph.edges)

    touched = set()
    for edge in graph.edges:
        touched.add(edge.source)
        touched.add(edge.target)
    isolated = [node.id for idx, node in enumerate(graph.nodes) if idx not in touched]

    # every edge adds one to some in-degree and one to some out-degree
    avg_degree = edge_count / node_count if node_count else 0
    possible = node_count * (node_count - 1)

    return {
        "nodeCount": node_count,
        "edgeCount": edge_count,
        "avgInDegree": round(avg_degree, 2),
        "avgOutDegree": round(avg_degree, 2),
        "density": round(edge_count / possible, 4) if possible else 0,
        "isolatedNodeCount": len(isolated),
        "isolatedNodes": isolated,
    }


@dataclass(frozen=True)
class Cluster:
    items: tuple[str, ...]
    density: float

    @property
    def size(self) -> int:
        return len(self.items)

    def to_dict(self) -> dict:
        return {"size": self.size, "items": list(self.items), "density": self.density}


def detect_clusters(graph: DependencyGraph) -> list[Cluster]:
    """Weakly connected components of size >= 2 over all active connections."""
    neighbours: list[set[int]] = [set() for _ in graph.nodes]
    for edge in graph.edges:
        neighbours[edge.source].add(edge.target)
        neighbours[edge.target].add(edge.source)

    component = [-1] * len(graph)
    groups: list[list[int]] = []
    for start in range(len(graph)):
        if component[start] != -1 or not neighbours[start]:
            continue
        label = len(groups)
        component[start] = label
        members = [start]
        queue = deque([start])
        while queue:
            current = queue.popleft()
            for nxt in sorted(neighbours[current]):
                if component[nxt] == -1:
                    component[nxt] = label
                    members.append(nxt)
                    queue.append(nxt)
        groups.append(sorted(members))

    internal = Counter(component[edge.source] for edge in graph.edges)
    clusters = []
    for label, members in enumerate(groups):
        possible = len(members) * (len(members) - 1)
        clusters.append((members[0], Cluster(
            items=tuple(graph.ids(members)),
            density=round(internal[label] / possible, 4),
        )))
    clusters.sort(key=lambda pair: (-pair[1].size, pair[0]))
    return [cluster for _, cluster in clusters]
