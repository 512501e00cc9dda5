"""
Classifier

Classifies an applicant's free-text change reason into a fixed category.
Rules are evaluated in order; the first matching pattern wins.
"""

import re
from typing import List, Pattern, Tuple

from .constants import DEFAULT_REASON_CATEGORY, REASON_CATEGORY_SCORES

# (pattern, category) in evaluation order
REASON_RULES: List[Tuple[Pattern, str]] = [
    (re.compile(r"promot|career|advance|senior|professor|승진|경력", re.IGNORECASE), "career_advancement"),
    (re.compile(r"graduat|degree|complet|diploma|thesis|졸업|학위", re.IGNORECASE), "education_completion"),
    (re.compile(r"marri|spouse|family|child|parent|결혼|가족|배우자", re.IGNORECASE), "family_circumstances"),
    (re.compile(r"job|employ|hire|offer|company|work|취업|이직|고용", re.IGNORECASE), "employment_change"),
    (re.compile(r"expir|limit|maximum|extension|만료|연장", re.IGNORECASE), "visa_limitation"),
]


def classify_reason(text: str) -> str:
    """
    Map a change reason to its category.

    Args:
        text: Applicant's free-text reason

    Returns:
        Category name; the default category when nothing matches
    """
    for pattern, category in REASON_RULES:
        if pattern.search(text or ""):
            return category
    return DEFAULT_REASON_CATEGORY


def reason_base_score(category: str) -> float:
    return REASON_CATEGORY_SCORES.get(category, REASON_CATEGORY_SCORES[DEFAULT_REASON_CATEGORY])
