"""
Risk & Health Scorer — dependency analysis, step 4.

Per-item risk (0-100):
    min(degree * 15, 60)  +30 when blocked  +10 when not_started
    degree counts incoming + outgoing active connections of every type.

Graph health (0-100):
    100
    - min(blocked_ratio * 100, 40)
    - min((avg_dependencies - 3) * 5, 20)   only when avg_dependencies > 3
    + completed_ratio * 20
    clamped to [0, 100] and rounded half-up.  An empty graph scores 100.

All weights are carried by an immutable ``ScoringWeights`` value so that
alternative weighting schemes can be passed in (see GRAPH_SCORING_WEIGHTS).
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass, fields

from depgraph.core.exceptions import ValidationError
from depgraph.services.graph_builder import DependencyGraph

logger = logging.getLogger(__name__)


# ═════════════════════════════════════════════════════════════════════════════
# Weights
# ═════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class ScoringWeights:
    # Risk score
    dependency_risk_weight: float = 15
    dependency_risk_cap: float = 60
    blocked_status_risk: float = 30
    not_started_status_risk: float = 10
    max_risk_score: float = 100
    risk_item_threshold: float = 30
    risk_items_limit: int = 10

    # Health score
    blocked_penalty_cap: float = 40
    density_threshold: float = 3
    density_penalty_weight: float = 5
    density_penalty_cap: float = 20
    completion_bonus_weight: float = 20

    # Blocked-item listing
    blocked_items_limit: int = 10

    @classmethod
    def from_mapping(cls, overrides: Mapping | None) -> ScoringWeights:
        """Build weights from a config mapping, rejecting unknown keys."""
        if not overrides:
            return cls()
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(overrides) - known)
        if unknown:
            raise ValidationError(
                "Unknown scoring weight(s)",
                details={name: "not a scoring weight" for name in unknown},
            )
        return cls(**dict(overrides))


DEFAULT_WEIGHTS = ScoringWeights()


# ═════════════════════════════════════════════════════════════════════════════
# Risk score
# ═════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class RiskItem:
    id: str
    name: str
    dependency_count: int
    risk_score: int | float

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "dependencyCount": self.dependency_count,
            "riskScore": self.risk_score,
        }


def dependency_degrees(graph: DependencyGraph) -> list[int]:
    """Incoming + outgoing active connections per node, all types."""
    degrees = [0] * len(graph)
    for edge in graph.edges:
        degrees[edge.source] += 1
        degrees[edge.target] += 1
    return degrees


def calculate_risk_score(
    dependency_count: int,
    status: str,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> int | float:
    score = min(dependency_count * weights.dependency_risk_weight, weights.dependency_risk_cap)
    if status == "blocked":
        score += weights.blocked_status_risk
    elif status == "not_started":
        score += weights.not_started_status_risk
    return min(score, weights.max_risk_score)


def rank_risk_items(
    graph: DependencyGraph,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> list[RiskItem]:
    """Items above the risk threshold, riskiest first (ties by id), truncated."""
    degrees = dependency_degrees(graph)
    scored = []
    for idx, node in enumerate(graph.nodes):
        score = calculate_risk_score(degrees[idx], node.status, weights)
        if score > weights.risk_item_threshold:
            scored.append((idx, RiskItem(node.id, node.name, degrees[idx], score)))
    scored.sort(key=lambda pair: (-pair[1].risk_score, pair[0]))
    return [item for _, item in scored[:weights.risk_items_limit]]


# ═════════════════════════════════════════════════════════════════════════════
# Health score
# ═════════════════════════════════════════════════════════════════════════════


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def calculate_health_score(
    total_items: int,
    blocked_count: int,
    completed_count: int,
    dependency_count: int,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> int:
    """Composite graph health; ``dependency_count`` is the active connection count."""
    if total_items == 0:
        return 100

    score = 100.0

    blocked_ratio = blocked_count / total_items
    score -= min(blocked_ratio * 100, weights.blocked_penalty_cap)

    avg_dependencies = dependency_count / total_items
    if avg_dependencies > weights.density_threshold:
        score -= min(
            (avg_dependencies - weights.density_threshold) * weights.density_penalty_weight,
            weights.density_penalty_cap,
        )

    completed_ratio = completed_count / total_items
    score += completed_ratio * weights.completion_bonus_weight

    return _round_half_up(max(0.0, min(100.0, score)))
