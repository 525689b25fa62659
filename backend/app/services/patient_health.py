"""
Patient health service: one operation per derived view, plus cross-patient searches.
Each operation builds fresh working sets and projects them; nothing is cached.
"""
import asyncio
import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable, List, Optional

from ..core.config import settings
from ..core.exceptions import InvalidArgumentError, PatientNotFoundError
from .aggregation import AggregationEngine, WorkingSet, gather_or_cancel
from .alert_engine import (
    SafetyAlerts,
    active_medications,
    chronic_conditions,
    compute_safety_alerts,
    critical_allergies,
)
from .clinical_rules import ClinicalRules, normalize
from .health_views import (
    CarePlan,
    Dashboard,
    HealthSummary,
    Timeline,
    build_care_plan,
    build_dashboard,
    build_health_summary,
    build_timeline,
)
from .medication_safety import MedicationSafetyResult, check_medication_safety
from .risk_scorer import RiskAssessment, RiskLevel, compute_risk_assessment, level_rank
from .records import PatientRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HighRiskPatient:
    patient_id: str
    assessment: RiskAssessment


class PatientHealthService:
    def __init__(
        self,
        engine: AggregationEngine,
        rules: Optional[ClinicalRules] = None,
        clock: Callable[[], datetime] = datetime.utcnow,
        search_concurrency: int = settings.SEARCH_CONCURRENCY,
    ):
        self.engine = engine
        self.rules = rules or ClinicalRules.from_settings()
        self.clock = clock
        self.search_concurrency = search_concurrency

    def _today(self) -> date:
        return self.clock().date()

    async def health_summary(self, patient_id: str) -> HealthSummary:
        logger.info("Getting comprehensive health summary for patient %s", patient_id)
        ws = await self.engine.build_working_set(patient_id)
        return build_health_summary(ws, today=self._today())

    async def risk_assessment(self, patient_id: str) -> RiskAssessment:
        logger.info("Getting risk assessment for patient %s", patient_id)
        ws = await self.engine.build_working_set(patient_id)
        return compute_risk_assessment(ws, self.rules, today=self._today())

    async def safety_alerts(self, patient_id: str) -> SafetyAlerts:
        logger.info("Getting safety alerts for patient %s", patient_id)
        ws = await self.engine.build_working_set(patient_id)
        return compute_safety_alerts(ws, self.rules, today=self._today())

    async def dashboard(self, patient_id: str) -> Dashboard:
        logger.info("Getting dashboard data for patient %s", patient_id)
        ws = await self.engine.build_working_set(patient_id)
        alerts = compute_safety_alerts(ws, self.rules, today=self._today())
        return build_dashboard(ws, alerts, self.rules)

    async def care_plan(self, patient_id: str) -> CarePlan:
        logger.info("Getting care plan for patient %s", patient_id)
        ws = await self.engine.build_working_set(patient_id)
        now = self.clock()
        alerts = compute_safety_alerts(ws, self.rules, today=now.date())
        return build_care_plan(ws, alerts, self.rules, now=now)

    async def timeline(self, patient_id: str, days_back: int = settings.DEFAULT_TIMELINE_DAYS) -> Timeline:
        logger.info("Getting timeline for patient %s for last %s days", patient_id, days_back)
        ws = await self.engine.build_working_set(patient_id)
        return build_timeline(ws, days_back, now=self.clock())

    async def medication_safety(self, patient_id: str, new_medication: Optional[str]) -> MedicationSafetyResult:
        if new_medication is None or not new_medication.strip():
            raise InvalidArgumentError("New medication name must not be blank", argument="new_medication")
        logger.info("Checking medication safety of %s for patient %s", new_medication, patient_id)
        ws = await self.engine.build_working_set(patient_id)
        return check_medication_safety(ws, new_medication, self.rules, today=self._today())

    # ── Cross-patient searches ──────────────────────────────────────────────
    # Each search loads the records of every active patient, at most
    # search_concurrency at a time, and filters with the same rules the
    # per-patient views use. Collaborators are not called.

    async def _scan(self) -> List[WorkingSet]:
        patient_ids = await self.engine.list_patient_ids()
        semaphore = asyncio.Semaphore(max(self.search_concurrency, 1))

        async def load(patient_id: str) -> Optional[WorkingSet]:
            async with semaphore:
                try:
                    return await self.engine.load_records(patient_id)
                except PatientNotFoundError:
                    # Deactivated between listing and loading
                    logger.info("Patient %s disappeared during search", patient_id)
                    return None

        loaded = await gather_or_cancel(*[load(pid) for pid in patient_ids])
        return [ws for ws in loaded if ws is not None]

    async def _search(self, description: str, predicate: Callable[[WorkingSet], bool]) -> List[PatientRecord]:
        logger.info("Searching patients %s", description)
        matches = [ws.patient for ws in await self._scan() if predicate(ws)]
        logger.info("Found %d patients %s", len(matches), description)
        return matches

    async def high_risk_patients(self, minimum_level: str = RiskLevel.HIGH) -> List[HighRiskPatient]:
        """Assess every active patient and keep those at or above minimum_level."""
        if minimum_level not in RiskLevel.ORDER:
            raise InvalidArgumentError(f"Unknown risk level: {minimum_level}", argument="minimum_level")
        logger.info("Searching patients at risk level %s or above", minimum_level)

        threshold = level_rank(minimum_level)
        today = self._today()
        results: List[HighRiskPatient] = []
        for ws in await self._scan():
            assessment = compute_risk_assessment(ws, self.rules, today=today)
            if level_rank(assessment.risk_level) >= threshold:
                results.append(HighRiskPatient(patient_id=ws.patient.id, assessment=assessment))
        results.sort(key=lambda r: r.assessment.risk_score, reverse=True)
        return results

    async def patients_with_critical_allergies(self) -> List[PatientRecord]:
        return await self._search(
            "with critical allergies",
            lambda ws: bool(critical_allergies(ws, self.rules)),
        )

    async def patients_with_chronic_conditions(self) -> List[PatientRecord]:
        return await self._search(
            "with chronic conditions",
            lambda ws: bool(chronic_conditions(ws, self.rules)),
        )

    async def patients_without_insurance(self) -> List[PatientRecord]:
        return await self._search("without insurance", lambda ws: not ws.insurance)

    async def patients_without_emergency_contacts(self) -> List[PatientRecord]:
        return await self._search("without emergency contacts", lambda ws: not ws.emergency_contacts)

    async def patients_with_multiple_medications(self, minimum_medications: int = 3) -> List[PatientRecord]:
        """Patients with at least minimum_medications active medications."""
        if minimum_medications < 1:
            raise InvalidArgumentError(
                "Minimum medication count must be at least 1", argument="minimum_medications"
            )
        today = self._today()
        return await self._search(
            f"with {minimum_medications} or more active medications",
            lambda ws: len(active_medications(ws, today)) >= minimum_medications,
        )

    async def patients_by_medical_condition(self, condition: Optional[str]) -> List[PatientRecord]:
        term = _search_term(condition, "condition")
        return await self._search(
            f"with condition '{term}'",
            lambda ws: any(term in normalize(h.condition) for h in ws.medical_history),
        )

    async def patients_by_medication(self, medication_name: Optional[str]) -> List[PatientRecord]:
        term = _search_term(medication_name, "medication_name")
        return await self._search(
            f"with medication '{term}'",
            lambda ws: any(term in normalize(m.medication_name) for m in ws.medications),
        )

    async def patients_by_allergy(self, allergen: Optional[str]) -> List[PatientRecord]:
        term = _search_term(allergen, "allergen")
        return await self._search(
            f"with allergy '{term}'",
            lambda ws: any(term in normalize(a.allergen) for a in ws.allergies),
        )


def _search_term(value: Optional[str], argument: str) -> str:
    term = normalize(value)
    if not term:
        raise InvalidArgumentError(f"Search term {argument} must not be blank", argument=argument)
    return term
