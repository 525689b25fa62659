"""
Medication Conflict Checker.
Evaluates one proposed medication against the patient's active medications
(interaction table) and recorded allergens (cross-reactivity table).
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional

from ..core.exceptions import InvalidArgumentError
from .aggregation import WorkingSet
from .clinical_rules import ClinicalRules, normalize

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MedicationSafetyResult:
    new_medication: str
    current_medications: List[str] = field(default_factory=list)
    allergens: List[str] = field(default_factory=list)
    potential_interactions: List[str] = field(default_factory=list)
    conflicting_allergens: List[str] = field(default_factory=list)
    already_taking: bool = False

    @property
    def has_conflicts(self) -> bool:
        return bool(self.potential_interactions)

    @property
    def has_allergy_conflict(self) -> bool:
        return bool(self.conflicting_allergens)

    @property
    def is_safe_to_add(self) -> bool:
        return not self.has_conflicts and not self.has_allergy_conflict


def check_medication_safety(
    working_set: WorkingSet,
    new_medication_name: Optional[str],
    rules: ClinicalRules,
    today: Optional[date] = None,
) -> MedicationSafetyResult:
    if new_medication_name is None or not new_medication_name.strip():
        raise InvalidArgumentError("New medication name must not be blank", argument="new_medication")

    today = today or date.today()
    proposed = new_medication_name.strip()
    current = [m.medication_name for m in working_set.medications if m.is_active(today)]
    allergens = [a.allergen for a in working_set.allergies]

    interactions = [name for name in current if rules.interacts(proposed, name)]
    conflicting = [allergen for allergen in allergens if rules.cross_reacts(allergen, proposed)]
    already_taking = any(normalize(name) == normalize(proposed) for name in current)

    if interactions or conflicting:
        logger.warning(
            "Medication %s flagged for patient %s: interactions=%s allergens=%s",
            proposed, working_set.patient.id, interactions, conflicting,
        )

    return MedicationSafetyResult(
        new_medication=proposed,
        current_medications=current,
        allergens=allergens,
        potential_interactions=interactions,
        conflicting_allergens=conflicting,
        already_taking=already_taking,
    )
