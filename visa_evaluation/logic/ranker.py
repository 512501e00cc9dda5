"""
Ranker

Orders recommendations by priority and drops duplicates.
"""

from typing import List, Set, Tuple

from .constants import PRIORITY_ORDER
from .contracts import Recommendation


def rank_recommendations(recommendations: List[Recommendation]) -> List[Recommendation]:
    """
    De-duplicate by (type, message) and sort by priority.

    The sort is stable, so recommendations of equal priority keep the
    order in which the strategy produced them.
    """
    seen: Set[Tuple[str, str]] = set()
    unique: List[Recommendation] = []
    for rec in recommendations:
        key = (rec.type, rec.message)
        if key in seen:
            continue
        seen.add(key)
        unique.append(rec)

    return sorted(unique, key=lambda rec: PRIORITY_ORDER.get(rec.priority, len(PRIORITY_ORDER)))
