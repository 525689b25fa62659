"""
Risk Scorer: additive point system over the working set.
"""
from dataclasses import dataclass
from datetime import date
from typing import Optional

from .aggregation import WorkingSet
from .clinical_rules import ClinicalRules


class RiskLevel:
    LOW = "LOW"
    MODERATE = "MODERATE"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"

    ORDER = [LOW, MODERATE, HIGH, CRITICAL]


# Points per contributing factor
CRITICAL_ALLERGY_POINTS = 30
CHRONIC_CONDITION_POINTS = 20
POLYPHARMACY_POINTS = 15
MISSING_CONTACTS_POINTS = 10
MISSING_INSURANCE_POINTS = 10

# Lower edge of each band, inclusive
RISK_BANDS = [
    (76, RiskLevel.CRITICAL),
    (51, RiskLevel.HIGH),
    (21, RiskLevel.MODERATE),
    (0, RiskLevel.LOW),
]


@dataclass(frozen=True)
class RiskAssessment:
    patient_id: str
    risk_score: int
    risk_level: str
    has_critical_allergies: bool
    has_chronic_conditions: bool
    has_multiple_medications: bool
    missing_emergency_contacts: bool
    missing_insurance: bool


def risk_level_for(score: int) -> str:
    score = max(0, min(100, score))
    for lower_edge, level in RISK_BANDS:
        if score >= lower_edge:
            return level
    return RiskLevel.LOW


def level_rank(level: str) -> int:
    return RiskLevel.ORDER.index(level)


def compute_risk_assessment(
    working_set: WorkingSet, rules: ClinicalRules, today: Optional[date] = None
) -> RiskAssessment:
    today = today or date.today()

    has_critical_allergies = any(rules.is_critical_reaction(a.reaction) for a in working_set.allergies)
    has_chronic_conditions = any(rules.is_chronic_condition(h.condition) for h in working_set.medical_history)
    active_count = sum(1 for m in working_set.medications if m.is_active(today))
    has_multiple_medications = active_count > rules.polypharmacy_threshold
    missing_contacts = not working_set.emergency_contacts
    missing_insurance = not working_set.insurance

    score = 0
    if has_critical_allergies:
        score += CRITICAL_ALLERGY_POINTS
    if has_chronic_conditions:
        score += CHRONIC_CONDITION_POINTS
    if has_multiple_medications:
        score += POLYPHARMACY_POINTS
    if missing_contacts:
        score += MISSING_CONTACTS_POINTS
    if missing_insurance:
        score += MISSING_INSURANCE_POINTS
    score = max(0, min(100, score))

    return RiskAssessment(
        patient_id=working_set.patient.id,
        risk_score=score,
        risk_level=risk_level_for(score),
        has_critical_allergies=has_critical_allergies,
        has_chronic_conditions=has_chronic_conditions,
        has_multiple_medications=has_multiple_medications,
        missing_emergency_contacts=missing_contacts,
        missing_insurance=missing_insurance,
    )
