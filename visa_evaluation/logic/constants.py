"""
Visa Evaluation Constants

Defines all band tables, weights, thresholds, and enums used by the evaluation engine.
All values are deterministic; nothing here is learned or fetched at runtime.
"""

from enum import Enum
from typing import Dict, List, Tuple


# =============================================================================
# ENUMS
# =============================================================================

class Mode(str, Enum):
    """The three ways an application can be filed."""
    NEW = "new"
    EXTENSION = "extension"
    CHANGE = "change"


def mode_value(mode) -> str:
    """Plain string form of a mode, for dictionary lookups."""
    return mode.value if isinstance(mode, Enum) else str(mode)


class Complexity(str, Enum):
    """Processing complexity tier of a visa category."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    VERY_HIGH = "very-high"


class EducationLevel(str, Enum):
    """Ranked education scale, lowest first."""
    HIGH_SCHOOL = "high_school"
    ASSOCIATE = "associate"
    BACHELOR = "bachelor"
    MASTERS = "masters"
    DOCTORATE = "doctorate"


class Priority(str, Enum):
    """Recommendation priority, most urgent first."""
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ErrorCode(str, Enum):
    """Stable error codes carried by failure envelopes."""
    INVALID_VISA_TYPE = "INVALID_VISA_TYPE"
    INVALID_APPLICATION_TYPE = "INVALID_APPLICATION_TYPE"
    MISSING_REQUIRED_FIELD = "MISSING_REQUIRED_FIELD"
    INVALID_APPLICANT_DATA = "INVALID_APPLICANT_DATA"
    EVALUATION_FAILED = "EVALUATION_FAILED"
    CHANGE_NOT_ALLOWED = "CHANGE_NOT_ALLOWED"
    UNKNOWN_WORKFLOW = "UNKNOWN_WORKFLOW"


# =============================================================================
# EDUCATION SCALE
# =============================================================================

EDUCATION_ORDER: List[str] = [level.value for level in EducationLevel]

# Free-form spellings accepted from applicants
EDUCATION_ALIASES: Dict[str, str] = {
    "high school": "high_school",
    "highschool": "high_school",
    "secondary": "high_school",
    "associates": "associate",
    "associate_degree": "associate",
    "diploma": "associate",
    "bachelors": "bachelor",
    "bachelor's": "bachelor",
    "ba": "bachelor",
    "bs": "bachelor",
    "master": "masters",
    "master's": "masters",
    "ms": "masters",
    "ma": "masters",
    "phd": "doctorate",
    "ph.d": "doctorate",
    "ph.d.": "doctorate",
    "doctoral": "doctorate",
    "doctor": "doctorate",
}


# =============================================================================
# ORCHESTRATOR
# =============================================================================

# Processing-day multiplier per complexity tier
COMPLEXITY_MULTIPLIERS: Dict[str, float] = {
    Complexity.LOW.value: 0.7,
    Complexity.MEDIUM.value: 1.0,
    Complexity.HIGH.value: 1.3,
    Complexity.VERY_HIGH.value: 1.5,
}

COMPLEXITY_ORDER: List[str] = [tier.value for tier in Complexity]

DEFAULT_PROCESSING_DAYS: Tuple[int, int] = (7, 30)

# Fallback weight for a component the mode config does not name
DEFAULT_COMPONENT_WEIGHT = 10

PRIORITY_ORDER: Dict[str, int] = {
    Priority.CRITICAL.value: 0,
    Priority.HIGH.value: 1,
    Priority.MEDIUM.value: 2,
    Priority.LOW.value: 3,
}

# Visas whose eligible applicants still go through conditional review
CONDITIONAL_REVIEW_VISAS: Tuple[str, ...] = ("E-7", "F-2", "F-5")

# Visa categories scored by the detailed multi-factor evaluator
POINT_SCORED_VISAS: Tuple[str, ...] = ("E-1",)


# =============================================================================
# SHARED STRATEGY TABLES
# =============================================================================

# Neutral score when an applicant has not submitted any documents yet
PENDING_DOCUMENT_SCORE = 50.0

# Authenticity credit per document
AUTHENTICITY_SCORES: Dict[str, float] = {
    "apostilled": 100.0,
    "notarized": 80.0,
    "verified": 60.0,
    "unverified": 40.0,
}

# Within this many points below passing, a "close to passing" hint is emitted
NEAR_PASSING_MARGIN = 10

FAMILY_DOCUMENTS: Tuple[str, ...] = ("family_relation_certificate", "family_member_passports")

# Nationality -> extra documents
NATIONALITY_DOCUMENTS: Dict[str, Tuple[str, ...]] = {
    "CN": ("temporary_residence_permit",),
    "CHINA": ("temporary_residence_permit",),
}


# =============================================================================
# NEW APPLICATION
# =============================================================================

ACCREDITED_INSTITUTION_TYPES: Tuple[str, ...] = (
    "university",
    "college",
    "junior_college",
    "research_institute",
    "graduate_school",
)

# Eligibility multiplier when the inviting institution is not accredited
UNACCREDITED_INSTITUTION_FACTOR = 0.8

# General expertise credit per education level
GENERAL_EDUCATION_POINTS: Dict[str, float] = {
    "doctorate": 30.0,
    "masters": 25.0,
    "bachelor": 20.0,
    "associate": 15.0,
    "high_school": 10.0,
}

# Salary floor for specialist workers, as a fraction of reference income
SPECIALIST_SALARY_FRACTION = 0.8

PREPARATION_THRESHOLD = 70


# =============================================================================
# EXTENSION
# =============================================================================

EXTENSION_VIOLATION_PENALTIES: Dict[str, float] = {
    "OVERSTAY": 30,
    "ILLEGAL_EMPLOYMENT": 40,
    "CRIMINAL_RECORD": 50,
    "TAX_DELINQUENCY": 20,
    "INSURANCE_VIOLATION": 15,
    "ADDRESS_UNREPORTED": 10,
}
DEFAULT_EXTENSION_PENALTY = 10

CONSISTENT_TAX_BONUS = 10
SOCIAL_CONTRIBUTION_BONUS = 5
LOW_DEPARTURE_BONUS = 5
FREQUENT_DEPARTURE_PENALTY = 10

# Average days in-country per departure
LONG_STAY_PER_DEPARTURE_DAYS = 90
SHORT_STAY_PER_DEPARTURE_DAYS = 30

# Contract continuity bands: (lower bound inclusive, delta), checked top-down
REMAINING_MONTHS_BANDS: List[Tuple[float, float]] = [
    (12, 5),
    (6, 0),
    (3, -5),
    (float("-inf"), -15),
]

# (minimum employer changes, delta), checked top-down
EMPLOYER_CHANGE_BANDS: List[Tuple[int, float]] = [
    (3, -20),
    (2, -10),
    (0, 0),
]

# (minimum gap days, delta), checked top-down
GAP_DAY_BANDS: List[Tuple[int, float]] = [
    (91, -25),
    (31, -15),
    (1, -5),
    (0, 0),
]

SALARY_TREND_DELTAS: Dict[str, float] = {
    "increasing": 10,
    "stable": 0,
    "decreasing": -10,
}

# (minimum tenure months, delta), checked top-down
TENURE_BANDS: List[Tuple[int, float]] = [
    (36, 10),
    (12, 5),
    (0, 0),
]

# Document checklist; values sum to 100
EXTENSION_DOCUMENT_POINTS: Dict[str, float] = {
    "passport": 20,
    "alien_registration_card": 20,
    "employment_contract": 20,
    "income_proof": 15,
    "tax_certificate": 15,
    "residence_proof": 10,
}

MAX_EXTENSIONS: Dict[str, int] = {
    "E-1": 5,
    "E-2": 5,
    "E-7": 3,
    "D-2": 4,
    "D-4": 2,
    "H-1": 1,
    "H-2": 2,
}
DEFAULT_MAX_EXTENSIONS = 3

MAX_STAY_YEARS: Dict[str, float] = {
    "E-1": 10,
    "E-2": 10,
    "E-7": 5,
    "D-2": 6,
    "H-1": 2,
    "H-2": 3,
}
DEFAULT_MAX_STAY_YEARS = 5

LOW_PERFORMANCE_THRESHOLD = 60
CONTRACT_EXPIRY_WARNING_MONTHS = 3


# =============================================================================
# CHANGE
# =============================================================================

CHANGE_CONDITION_PENALTIES: Dict[str, float] = {
    "education": 30,
    "job_offer": 40,
    "salary": 20,
    "stay_months": 15,
    "language_level": 10,
}

CHANGE_VIOLATION_PENALTIES: Dict[str, float] = {
    "OVERSTAY": 40,
    "ILLEGAL_ACTIVITY": 50,
    "FALSE_REPORT": 30,
    "TAX_DELINQUENCY": 25,
    "INSURANCE_VIOLATION": 20,
}
DEFAULT_CHANGE_PENALTY = 15

CLEAN_RECORD_BONUS = 10
EXPIRING_VISA_DAYS = 30
EXPIRING_VISA_PENALTY = 30
EXPIRY_WARNING_DAYS = 60

# Change reason categories -> base validity score
REASON_CATEGORY_SCORES: Dict[str, float] = {
    "career_advancement": 90,
    "education_completion": 85,
    "family_circumstances": 80,
    "employment_change": 70,
    "visa_limitation": 60,
    "other": 40,
}
DEFAULT_REASON_CATEGORY = "other"
SUPPORTING_DOCUMENT_BONUS = 10

CHANGE_DOCUMENTS: Tuple[str, ...] = ("current_visa_copy", "change_reason_statement")

LOW_SUCCESS_RATE = 50
MAX_INTERMEDIATE_ALTERNATIVES = 2

EXIT_AND_REAPPLY_PATH = "exit-and-reapply"


# =============================================================================
# DETAILED ACADEMIC EVALUATION
# =============================================================================

# Per-factor caps; their sum is the raw maximum
ACADEMIC_FACTOR_CAPS: Dict[str, float] = {
    "academic": 25,
    "experience": 30,
    "research": 30,
    "language": 20,
    "age": 15,
    "institution": 20,
}
ACADEMIC_MAX_POINTS = sum(ACADEMIC_FACTOR_CAPS.values())

DEGREE_POINTS: Dict[str, float] = {
    "doctorate": 25,
    "masters": 20,
    "bachelor": 12,
    "associate": 6,
    "high_school": 2,
}

FIELD_WEIGHTS: Dict[str, float] = {
    "medicine": 1.3,
    "natural_sciences": 1.2,
    "law": 1.2,
    "engineering": 1.15,
    "humanities": 1.1,
    "social_sciences": 1.1,
    "business": 1.1,
    "arts": 1.05,
    "education": 1.0,
    "other": 0.9,
}

# (minimum years, points), checked top-down
TEACHING_EXPERIENCE_BANDS: List[Tuple[float, float]] = [
    (10, 30),
    (7, 25),
    (5, 20),
    (3, 15),
    (1, 10),
]

POSITION_POINTS: Dict[str, float] = {
    "professor": 10,
    "associate_professor": 7,
    "assistant_professor": 4,
    "lecturer": 2,
    "senior_researcher": 7,
    "researcher": 2,
}

# Position -> next title on the ladder
PROMOTION_LADDER: Dict[str, str] = {
    "lecturer": "assistant_professor",
    "assistant_professor": "associate_professor",
    "associate_professor": "professor",
    "researcher": "senior_researcher",
}

# (minimum publications, points), checked top-down
PUBLICATION_BANDS: List[Tuple[int, float]] = [
    (20, 25),
    (15, 20),
    (10, 15),
    (5, 10),
    (1, 5),
]
PROJECT_POINTS_EACH = 2
PROJECT_POINTS_CAP = 10
AWARD_POINTS_EACH = 3
AWARD_POINTS_CAP = 15

LANGUAGE_POINTS: Dict[str, float] = {
    "native": 20,
    "advanced": 16,
    "intermediate": 10,
    "beginner": 5,
}
LANGUAGE_ORDER: List[str] = ["beginner", "intermediate", "advanced", "native"]

TOPIK_POINTS: Dict[int, float] = {6: 20, 5: 16, 4: 12, 3: 10, 2: 5, 1: 3}

INSTITUTION_POINTS: Dict[str, float] = {
    "university": 20,
    "graduate_school": 18,
    "college": 15,
    "research_institute": 14,
    "academy": 10,
}
DEFAULT_INSTITUTION_POINTS = 8

# Raw academic + experience + research points that must be reached regardless of normalization
MANUAL_MINIMUM_POINTS = 40

ACADEMIC_PASSING_SCORE = 70

SCORE_LEVELS: List[Tuple[float, str]] = [
    (80, "excellent"),
    (70, "good"),
    (60, "fair"),
    (50, "poor"),
]
LOWEST_SCORE_LEVEL = "insufficient"

STRENGTH_RATIO = 0.8
WEAKNESS_RATIO = 0.6

DIFFICULTY_WEIGHTS: Dict[str, float] = {
    "low": 1,
    "medium": 2,
    "high": 3,
}
MAX_PRIORITY_ACTIONS = 3

# Months to reach the next degree from the current one
EDUCATION_UPGRADE_MONTHS: Dict[str, int] = {
    "high_school": 48,
    "associate": 24,
    "bachelor": 24,
    "masters": 48,
}
PROMOTION_MONTHS = 24
MONTHS_PER_PUBLICATION = 4
LANGUAGE_UPGRADE_MONTHS = 6

# (start month, end month, share of gap, cap)
ROADMAP_PHASES: List[Tuple[int, int, float, float]] = [
    (0, 3, 0.3, 10),
    (3, 6, 0.4, 15),
    (6, 12, 0.3, 15),
]

# Position grade -> income floor as a fraction of reference income
INCOME_FLOOR_FRACTIONS: Dict[str, float] = {
    "E-1-1": 1.5,
    "E-1-2": 1.125,
    "E-1-3": 0.75,
}
DEFAULT_POSITION_GRADE = "E-1-3"

TAX_DELAY_PENALTY = 10
TAX_PASSING_SCORE = 70
ACTIVITY_PASSING_SCORE = 50
MIN_WEEKLY_HOURS = 6
MAX_ONLINE_RATIO = 0.5
MAX_WORKPLACES = 2
MIN_EXPERIENCE_YEARS = 2


# =============================================================================
# RULE EVALUATOR
# =============================================================================

# Simple points used by the minimum-points rule for academic visas
RULE_DEGREE_POINTS: Dict[str, float] = {
    "doctorate": 40,
    "masters": 30,
    "bachelor": 20,
}
RULE_EXPERIENCE_POINTS_EACH = 5
RULE_EXPERIENCE_POINTS_CAP = 30
RULE_PUBLICATION_POINTS_EACH = 5
RULE_PUBLICATION_POINTS_CAP = 30

# (upper age bound exclusive, points), checked in order
RULE_AGE_BANDS: List[Tuple[int, float]] = [
    (30, 20),
    (40, 15),
    (50, 10),
    (60, 5),
]

RULE_TOPIK_POINTS: Dict[int, float] = {6: 20, 5: 15, 4: 10, 3: 5}

MIN_CHANGE_REASON_LENGTH = 10

# Applicant data field -> alternative keys accepted for it
FIELD_ALIASES: Dict[str, Tuple[str, ...]] = {
    "experience_years": ("experience",),
}
