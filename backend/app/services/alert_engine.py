"""
Rule-based safety alert evaluator.
Pure function of the working set; alerts are recomputed on every request.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import List, Optional

from .aggregation import WorkingSet
from .clinical_rules import ClinicalRules
from .records import MedicationRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SafetyAlerts:
    critical_allergies: List[str] = field(default_factory=list)
    active_medications: List[str] = field(default_factory=list)
    expiring_medications: List[MedicationRecord] = field(default_factory=list)
    chronic_conditions: List[str] = field(default_factory=list)
    missing_emergency_contacts: bool = True
    missing_insurance: bool = True

    @property
    def has_critical_allergies(self) -> bool:
        return bool(self.critical_allergies)

    @property
    def has_expiring_medications(self) -> bool:
        return bool(self.expiring_medications)

    @property
    def has_chronic_conditions(self) -> bool:
        return bool(self.chronic_conditions)


def critical_allergies(working_set: WorkingSet, rules: ClinicalRules) -> List[str]:
    return [a.allergen for a in working_set.allergies if rules.is_critical_reaction(a.reaction)]


def chronic_conditions(working_set: WorkingSet, rules: ClinicalRules) -> List[str]:
    return [h.condition for h in working_set.medical_history if rules.is_chronic_condition(h.condition)]


def active_medications(working_set: WorkingSet, today: date) -> List[MedicationRecord]:
    return [m for m in working_set.medications if m.is_active(today)]


def expiring_medications(working_set: WorkingSet, today: date, horizon_days: int) -> List[MedicationRecord]:
    """Active medications whose end date falls within [today, today + horizon]."""
    horizon_end = today + timedelta(days=max(horizon_days, 0))
    return [
        m for m in active_medications(working_set, today)
        if m.end_date is not None and today <= m.end_date <= horizon_end
    ]


def compute_safety_alerts(
    working_set: WorkingSet, rules: ClinicalRules, today: Optional[date] = None
) -> SafetyAlerts:
    today = today or date.today()

    # ── Rule 1: Critical allergies (reaction text matches severity keywords) ─
    allergies = critical_allergies(working_set, rules)

    # ── Rule 2: Medications ending within the horizon ───────────────────────
    expiring = expiring_medications(working_set, today, rules.expiring_medication_days)

    # ── Rule 3: Chronic conditions ──────────────────────────────────────────
    conditions = chronic_conditions(working_set, rules)

    alerts = SafetyAlerts(
        critical_allergies=allergies,
        active_medications=[m.medication_name for m in active_medications(working_set, today)],
        expiring_medications=expiring,
        chronic_conditions=conditions,
        missing_emergency_contacts=not working_set.emergency_contacts,
        missing_insurance=not working_set.insurance,
    )
    if alerts.has_critical_allergies:
        logger.info(
            "Patient %s has %d critical allergies", working_set.patient.id, len(alerts.critical_allergies)
        )
    return alerts
