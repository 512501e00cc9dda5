"""
Configuration Provider

Supplies immutable visa, application-mode and change-path records to the engine.
Records are built once (from the built-in tables below, or from already-parsed
records handed in by the caller) and are read-only afterwards.
"""

import logging
from typing import Dict, Iterable, List, Optional, Tuple

from .constants import Complexity, Mode, mode_value
from .contracts import (
    ApplicationModeConfig,
    BaseRequirements,
    ChangeConditions,
    ChangePathRule,
    ProcessingDays,
    VisaConfig,
)

logger = logging.getLogger(__name__)

ALL_MODES = (Mode.NEW, Mode.EXTENSION, Mode.CHANGE)


# =============================================================================
# BUILT-IN RECORDS
# =============================================================================

def _visa(
    code: str,
    name: str,
    category: str,
    complexity: Complexity,
    days: Tuple[int, int],
    modes: Tuple[Mode, ...] = ALL_MODES,
    special_documents: Tuple[str, ...] = (),
    **requirements,
) -> VisaConfig:
    return VisaConfig(
        code=code,
        name=name,
        category=category,
        base_requirements=BaseRequirements(**requirements),
        supported_modes=modes,
        complexity=complexity,
        processing_days=ProcessingDays(min=days[0], max=days[1]),
        special_documents=special_documents,
    )


def default_visa_configs() -> List[VisaConfig]:
    """Built-in visa categories."""
    return [
        _visa("D-2", "Student", "education", Complexity.LOW, (7, 21),
              special_documents=("admission_letter", "financial_proof"),
              education="high_school", flags=("admission_letter",)),
        _visa("D-4", "General Training", "education", Complexity.LOW, (7, 21)),
        _visa("D-10", "Job Seeking", "work", Complexity.LOW, (14, 30),
              education="bachelor"),
        _visa("E-1", "Professor", "work", Complexity.MEDIUM, (7, 30),
              special_documents=("employment_contract", "degree_certificate", "career_certificate"),
              education="masters", experience_years=2),
        _visa("E-2", "Foreign Language Instructor", "work", Complexity.MEDIUM, (14, 30),
              special_documents=("degree_certificate", "criminal_record_check", "health_check"),
              education="bachelor", flags=("native_speaker",)),
        _visa("E-3", "Researcher", "work", Complexity.MEDIUM, (14, 30),
              education="masters"),
        _visa("E-4", "Technical Guidance", "work", Complexity.MEDIUM, (14, 30),
              education="bachelor", experience_years=3),
        _visa("E-5", "Professional Employment", "work", Complexity.HIGH, (21, 45),
              education="bachelor", flags=("professional_license",)),
        _visa("E-7", "Specially Designated Activities", "work", Complexity.HIGH, (21, 60),
              special_documents=("employment_contract", "degree_certificate", "business_registration"),
              education="bachelor", experience_years=1, points=52),
        _visa("F-2", "Residence", "residence", Complexity.HIGH, (30, 90),
              special_documents=("family_relation_certificate", "income_proof"),
              points=80, stay_years=5),
        _visa("F-4", "Overseas Korean", "residence", Complexity.MEDIUM, (14, 30)),
        _visa("F-5", "Permanent Residence", "residence", Complexity.VERY_HIGH, (60, 180),
              modes=(Mode.NEW, Mode.CHANGE),
              special_documents=("family_relation_certificate", "income_proof"),
              stay_years=5),
        _visa("H-1", "Working Holiday", "exchange", Complexity.LOW, (7, 14),
              modes=(Mode.NEW, Mode.EXTENSION), age_min=18, age_max=30),
        _visa("H-2", "Work and Visit", "work", Complexity.MEDIUM, (14, 30),
              modes=(Mode.NEW, Mode.EXTENSION), age_min=25),
    ]


def default_mode_configs() -> List[ApplicationModeConfig]:
    """Built-in application-mode records."""
    return [
        ApplicationModeConfig(
            mode=Mode.NEW,
            passing_score=70,
            scoring_weights={"eligibility": 40, "documents": 30, "expertise": 30},
            required_documents=("passport", "photo", "application_form"),
            optional_documents=("recommendation_letter", "portfolio"),
        ),
        ApplicationModeConfig(
            mode=Mode.EXTENSION,
            passing_score=65,
            scoring_weights={"stay_history": 40, "performance": 30, "continuity": 20, "documents": 10},
            required_documents=(
                "passport",
                "alien_registration_card",
                "employment_contract",
                "income_proof",
                "tax_certificate",
                "residence_proof",
            ),
            optional_documents=("performance_report",),
        ),
        ApplicationModeConfig(
            mode=Mode.CHANGE,
            passing_score=60,
            scoring_weights={
                "changeability": 30,
                "stay_history": 20,
                "new_requirements": 30,
                "reason": 10,
                "documents": 10,
            },
            required_documents=(
                "passport",
                "alien_registration_card",
                "current_visa_copy",
                "change_reason_statement",
            ),
            optional_documents=("release_letter",),
        ),
    ]


# Legal change matrix: current visa -> reachable visas
CHANGE_MATRIX: Dict[str, Tuple[str, ...]] = {
    "D-2": ("D-10", "E-1", "E-2", "E-3", "E-7", "F-2"),
    "D-4": ("D-2",),
    "D-10": ("E-7",),
    "E-1": ("E-2", "E-3", "E-4", "E-5", "E-7", "F-2"),
    "E-2": ("E-1", "E-3", "E-7", "F-2"),
    "E-7": ("E-1", "E-2", "E-3", "E-4", "E-5", "F-2"),
    "F-2": ("E-1", "E-2", "E-3", "E-4", "E-5", "E-7", "F-5"),
    "F-4": ("F-5",),
}

# Pairs that skip the usual work-visa conditions
EASY_CHANGES = {("D-2", "D-10"), ("D-4", "D-2")}

# Pairs with a salary and language floor on top of the work-visa conditions
SPECIALIST_CHANGES = {("D-2", "E-7"), ("D-10", "E-7")}


def default_change_rules(visas: Iterable[VisaConfig]) -> List[ChangePathRule]:
    """
    Build change-path rules from the legal matrix.

    Work targets inherit the target's education floor and need a job offer;
    residence targets need a minimum stay and language level instead.
    """
    by_code = {visa.code: visa for visa in visas}
    rules: List[ChangePathRule] = []

    for from_visa, targets in CHANGE_MATRIX.items():
        for to_visa in targets:
            target = by_code.get(to_visa)
            if target is None:
                continue
            pair = (from_visa, to_visa)

            if pair in EASY_CHANGES:
                rules.append(ChangePathRule(
                    from_visa=from_visa,
                    to_visa=to_visa,
                    conditions=ChangeConditions(education=target.base_requirements.education),
                    difficulty="low",
                    success_rate=90,
                ))
            elif target.category == "residence":
                rules.append(ChangePathRule(
                    from_visa=from_visa,
                    to_visa=to_visa,
                    conditions=ChangeConditions(min_stay_months=36, language_level=3),
                    difficulty="high",
                    success_rate=45,
                ))
            elif pair in SPECIALIST_CHANGES:
                rules.append(ChangePathRule(
                    from_visa=from_visa,
                    to_visa=to_visa,
                    conditions=ChangeConditions(
                        education=target.base_requirements.education,
                        job_offer=True,
                        salary_income_fraction=0.8,
                        language_level=3,
                    ),
                    difficulty="medium",
                    success_rate=60,
                ))
            else:
                rules.append(ChangePathRule(
                    from_visa=from_visa,
                    to_visa=to_visa,
                    conditions=ChangeConditions(
                        education=target.base_requirements.education,
                        job_offer=True,
                    ),
                    difficulty="medium",
                    success_rate=70,
                ))

    return rules


# =============================================================================
# PROVIDER
# =============================================================================

class ConfigurationProvider:
    """
    Read-only lookup over visa, mode and change-path records.

    Construct once at process start and pass the instance to the engine.
    """

    def __init__(
        self,
        visa_configs: Iterable[VisaConfig],
        mode_configs: Iterable[ApplicationModeConfig],
        change_rules: Iterable[ChangePathRule] = (),
        reference_income: float = 44_000_000,
    ):
        self._visas: Dict[str, VisaConfig] = {visa.code: visa for visa in visa_configs}
        self._modes: Dict[str, ApplicationModeConfig] = {
            mode_value(config.mode): config for config in mode_configs
        }
        self._change_rules: Dict[Tuple[str, str], ChangePathRule] = {
            (rule.from_visa, rule.to_visa): rule for rule in change_rules
        }
        self.reference_income = reference_income

        logger.info(
            f"📚 Configuration loaded: {len(self._visas)} visas, "
            f"{len(self._modes)} modes, {len(self._change_rules)} change paths"
        )

    @classmethod
    def default(cls, reference_income: Optional[float] = None) -> "ConfigurationProvider":
        """Provider populated with the built-in records."""
        from .. import settings

        visas = default_visa_configs()
        return cls(
            visa_configs=visas,
            mode_configs=default_mode_configs(),
            change_rules=default_change_rules(visas),
            reference_income=(
                reference_income if reference_income is not None
                else settings.REFERENCE_NATIONAL_INCOME
            ),
        )

    def get_visa_config(self, code: str) -> Optional[VisaConfig]:
        return self._visas.get(code)

    def get_application_mode_config(self, mode: str) -> Optional[ApplicationModeConfig]:
        return self._modes.get(mode_value(mode))

    def get_change_path_rule(self, from_visa: str, to_visa: str) -> Optional[ChangePathRule]:
        return self._change_rules.get((from_visa, to_visa))

    def get_change_paths_from(self, from_visa: str) -> List[ChangePathRule]:
        """All configured rules leaving the given visa, in configuration order."""
        return [rule for (source, _), rule in self._change_rules.items() if source == from_visa]

    def get_supported_visa_types(self) -> List[str]:
        return list(self._visas.keys())

    def replace_visa_config(self, config: VisaConfig) -> None:
        """Swap in a whole new record for one visa code."""
        self._visas[config.code] = config
        logger.info(f"🔁 Visa configuration replaced: {config.code}")
