"""
Aggregator

Combines named score components into a single 0-100 score.
"""

from typing import Dict, Mapping

from .contracts import ScoreComponent


def clamp_score(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def compute_final_score(scores: Mapping[str, ScoreComponent]) -> float:
    """
    Final score used by the orchestrator.

    Sums score * weight / 100 over the present components. When the weights
    present do not add up to exactly 100, the sum is renormalized by
    dividing by the total weight and multiplying by 100.

    Returns:
        Score clamped to [0, 100]; 0 when there are no weighted components
    """
    total_weight = sum(component.weight for component in scores.values())
    if total_weight <= 0:
        return 0.0

    total = sum(component.score * component.weight / 100 for component in scores.values())
    if total_weight != 100:
        total = total / total_weight * 100

    return clamp_score(total)


def aggregate_scores(scores: Mapping[str, ScoreComponent]) -> float:
    """Weighted average of the components, as the strategies report it."""
    total_weight = sum(component.weight for component in scores.values())
    if total_weight <= 0:
        return 0.0
    weighted = sum(component.score * component.weight for component in scores.values())
    return round(clamp_score(weighted / total_weight), 1)


def sum_points(scores: Mapping[str, ScoreComponent]) -> float:
    """
    Absolute-points total: each component's 0-100 score scaled into its slot.

    A component with weight 40 and score 75 contributes 30 points.
    """
    return round(clamp_score(sum(c.score * c.weight / 100 for c in scores.values())), 1)


def component_points(scores: Mapping[str, ScoreComponent]) -> Dict[str, float]:
    """Points each component contributes to an absolute-points total."""
    return {name: round(c.score * c.weight / 100, 1) for name, c in scores.items()}
