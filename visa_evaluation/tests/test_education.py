"""
Tests for the ordinal education scale.
"""

import itertools

from visa_evaluation.logic.constants import EDUCATION_ORDER
from visa_evaluation.logic.education import (
    education_ordinal,
    meets_education,
    next_education_level,
    normalize_education,
)


def test_meets_education_matches_ordinal_comparison():
    for candidate, required in itertools.product(EDUCATION_ORDER, repeat=2):
        expected = EDUCATION_ORDER.index(candidate) >= EDUCATION_ORDER.index(required)
        assert meets_education(candidate, required) is expected


def test_meets_education_is_reflexive_and_transitive():
    for level in EDUCATION_ORDER:
        assert meets_education(level, level)

    for a, b, c in itertools.product(EDUCATION_ORDER, repeat=3):
        if meets_education(a, b) and meets_education(b, c):
            assert meets_education(a, c)


def test_aliases_are_normalized():
    assert normalize_education("PhD") == "doctorate"
    assert normalize_education("Master's") == "masters"
    assert normalize_education("high school") == "high_school"
    assert normalize_education("Bachelors") == "bachelor"
    assert normalize_education("kindergarten") is None


def test_unknown_levels():
    assert education_ordinal(None) == -1
    assert not meets_education("kindergarten", "high_school")
    assert not meets_education("doctorate", "unknown-level")


def test_next_education_level():
    assert next_education_level("bachelor") == "masters"
    assert next_education_level("doctorate") is None
    assert next_education_level(None) == "high_school"
