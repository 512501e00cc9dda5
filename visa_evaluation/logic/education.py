"""
Education Scale

Ordinal comparison over the ranked education levels
(high_school < associate < bachelor < masters < doctorate).
"""

from typing import Any, Optional

from .constants import EDUCATION_ORDER, EDUCATION_ALIASES


def normalize_education(value: Any) -> Optional[str]:
    """
    Map a free-form education value onto the ranked scale.

    Returns:
        The canonical level name, or None if it is not recognized
    """
    if value is None:
        return None
    key = str(value).strip().lower().replace("-", "_")
    key = EDUCATION_ALIASES.get(key, key)
    return key if key in EDUCATION_ORDER else None


def education_ordinal(value: Any) -> int:
    """Position of a level on the scale; -1 when unknown."""
    level = normalize_education(value)
    if level is None:
        return -1
    return EDUCATION_ORDER.index(level)


def meets_education(candidate: Any, required: Any) -> bool:
    """
    Check an education requirement.

    Args:
        candidate: Applicant's education level
        required: Minimum level demanded

    Returns:
        True iff the candidate's ordinal is at least the required ordinal.
        An unknown candidate level never meets a requirement; an unknown
        requirement cannot be met either.
    """
    required_rank = education_ordinal(required)
    if required_rank < 0:
        return False
    return education_ordinal(candidate) >= required_rank


def next_education_level(value: Any) -> Optional[str]:
    """The level one step above the given one, or None at the top."""
    rank = education_ordinal(value)
    if rank < 0:
        return EDUCATION_ORDER[0]
    if rank + 1 >= len(EDUCATION_ORDER):
        return None
    return EDUCATION_ORDER[rank + 1]
