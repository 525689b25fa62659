"""
Configurable clinical rule tables shared by the risk scorer, the safety alert
evaluator and the medication conflict checker.
"""
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple

from ..core.config import Settings, settings as app_settings


def normalize(text: Optional[str]) -> str:
    return " ".join((text or "").lower().split())


def matches_any(text: Optional[str], keywords: Iterable[str]) -> bool:
    """Case-insensitive substring match against any keyword."""
    haystack = normalize(text)
    if not haystack:
        return False
    return any(k and k in haystack for k in keywords)


@dataclass(frozen=True)
class ClinicalRules:
    critical_reaction_keywords: Tuple[str, ...] = ()
    chronic_condition_keywords: Tuple[str, ...] = ()
    # Unordered pairs: frozenset({a, b}) covers both (a, b) and (b, a)
    drug_interactions: FrozenSet[FrozenSet[str]] = frozenset()
    allergen_cross_reactivity: Dict[str, FrozenSet[str]] = field(default_factory=dict)
    polypharmacy_threshold: int = 3
    expiring_medication_days: int = 7
    dashboard_recent_history_count: int = 5
    care_plan_max_appointments: int = 5

    @classmethod
    def build(
        cls,
        critical_reaction_keywords: Iterable[str] = (),
        chronic_condition_keywords: Iterable[str] = (),
        drug_interactions: Iterable[Tuple[str, str]] = (),
        allergen_cross_reactivity: Optional[Dict[str, List[str]]] = None,
        **thresholds,
    ) -> "ClinicalRules":
        """Normalise raw configuration values into lookup-ready tables."""
        pairs = set()
        for a, b in drug_interactions:
            a, b = normalize(a), normalize(b)
            if a and b and a != b:
                pairs.add(frozenset((a, b)))
        cross = {
            normalize(allergen): frozenset(normalize(m) for m in meds if normalize(m))
            for allergen, meds in (allergen_cross_reactivity or {}).items()
            if normalize(allergen)
        }
        return cls(
            critical_reaction_keywords=tuple(normalize(k) for k in critical_reaction_keywords if normalize(k)),
            chronic_condition_keywords=tuple(normalize(k) for k in chronic_condition_keywords if normalize(k)),
            drug_interactions=frozenset(pairs),
            allergen_cross_reactivity=cross,
            **thresholds,
        )

    @classmethod
    def from_settings(cls, settings: Settings = app_settings) -> "ClinicalRules":
        return cls.build(
            critical_reaction_keywords=settings.CRITICAL_REACTION_KEYWORDS,
            chronic_condition_keywords=settings.CHRONIC_CONDITION_KEYWORDS,
            drug_interactions=settings.DRUG_INTERACTIONS,
            allergen_cross_reactivity=settings.ALLERGEN_CROSS_REACTIVITY,
            polypharmacy_threshold=settings.POLYPHARMACY_THRESHOLD,
            expiring_medication_days=settings.EXPIRING_MEDICATION_DAYS,
            dashboard_recent_history_count=settings.DASHBOARD_RECENT_HISTORY_COUNT,
            care_plan_max_appointments=settings.CARE_PLAN_MAX_APPOINTMENTS,
        )

    def is_critical_reaction(self, reaction: Optional[str]) -> bool:
        return matches_any(reaction, self.critical_reaction_keywords)

    def is_chronic_condition(self, condition: Optional[str]) -> bool:
        return matches_any(condition, self.chronic_condition_keywords)

    def interacts(self, medication_a: str, medication_b: str) -> bool:
        return frozenset((normalize(medication_a), normalize(medication_b))) in self.drug_interactions

    def cross_reacts(self, allergen: str, medication: str) -> bool:
        """
        True when either name contains the other ("Penicillin G" vs "penicillin"),
        or when a table allergen found in the recorded allergen lists a
        medication found in the proposed name.
        """
        allergen_key, med = normalize(allergen), normalize(medication)
        if not allergen_key or not med:
            return False
        if med in allergen_key or allergen_key in med:
            return True
        return any(
            key in allergen_key and any(related in med for related in related_meds)
            for key, related_meds in self.allergen_cross_reactivity.items()
        )
