"""Tests for PatientHealthService operations over in-memory records."""
import asyncio
from datetime import timedelta

import pytest

from app.core.exceptions import InvalidArgumentError, PatientNotFoundError
from app.models.patient import EntityStatus
from app.services.patient_health import PatientHealthService
from app.services.risk_scorer import RiskLevel
from support import (
    NOW,
    TODAY,
    FakeUserClient,
    InMemoryRecordSource,
    allergy,
    contact,
    history,
    make_engine,
    make_patient,
    make_rules,
    medication,
    new_id,
    policy,
)


class TestPatientHealthService:
    def setup_method(self):
        self.source = InMemoryRecordSource()
        self.patient = self.source.add_patient(make_patient())
        pid = self.patient.id
        self.source.add("allergies", allergy(pid, "Penicillin", "anaphylaxis (critical)"))
        for name in ("Metformin", "Lisinopril", "Atorvastatin"):
            self.source.add("medications", medication(pid, name))
        self.source.add("medications", medication(pid, "Warfarin", end=TODAY + timedelta(days=5)))
        self.source.add("history", history(pid, "Type 2 Diabetes", recorded_at=NOW - timedelta(days=20)))
        self.service = PatientHealthService(make_engine(self.source), rules=make_rules(), clock=lambda: NOW)

    def test_health_summary(self):
        summary = asyncio.run(self.service.health_summary(self.patient.id))
        assert summary.patient.patient == self.patient
        assert len(summary.current_medications) == 4

    def test_risk_assessment(self):
        assessment = asyncio.run(self.service.risk_assessment(self.patient.id))
        # critical allergy 30 + chronic 20 + polypharmacy 15 + no contacts 10 + no insurance 10
        assert assessment.risk_score == 85
        assert assessment.risk_level == RiskLevel.CRITICAL

    def test_safety_alerts(self):
        alerts = asyncio.run(self.service.safety_alerts(self.patient.id))
        assert alerts.critical_allergies == ["Penicillin"]
        assert [m.medication_name for m in alerts.expiring_medications] == ["Warfarin"]
        assert alerts.chronic_conditions == ["Type 2 Diabetes"]

    def test_dashboard(self):
        dashboard = asyncio.run(self.service.dashboard(self.patient.id))
        assert dashboard.profile_completeness == 71
        assert dashboard.has_critical_allergies
        assert len(dashboard.recent_medical_history) == 1

    def test_care_plan(self):
        plan = asyncio.run(self.service.care_plan(self.patient.id))
        assert plan.chronic_conditions == ["Type 2 Diabetes"]
        assert plan.upcoming_appointments == []

    def test_timeline(self):
        timeline = asyncio.run(self.service.timeline(self.patient.id, days_back=30))
        assert [h.condition for h in timeline.medical_history] == ["Type 2 Diabetes"]
        assert timeline.days_back == 30

    def test_medication_safety(self):
        result = asyncio.run(self.service.medication_safety(self.patient.id, "Aspirin"))
        assert result.potential_interactions == ["Warfarin"]
        assert not result.is_safe_to_add

    def test_blank_medication_rejected_before_fetch(self):
        with pytest.raises(InvalidArgumentError):
            asyncio.run(self.service.medication_safety(self.patient.id, "  "))
        assert self.source.calls == []

    def test_unknown_patient(self):
        with pytest.raises(PatientNotFoundError):
            asyncio.run(self.service.dashboard(new_id()))

    def test_operations_reflect_record_changes(self):
        before = asyncio.run(self.service.risk_assessment(self.patient.id))
        self.source.add("contacts", contact(self.patient.id))
        self.source.add("insurance", policy(self.patient.id))
        after = asyncio.run(self.service.risk_assessment(self.patient.id))
        assert after.risk_score == before.risk_score - 20


class TestHighRiskPatients:
    def setup_method(self):
        self.source = InMemoryRecordSource()
        self.service = PatientHealthService(make_engine(self.source), rules=make_rules(), clock=lambda: NOW)

        self.low = self.source.add_patient(make_patient())
        self.source.add("contacts", contact(self.low.id))
        self.source.add("insurance", policy(self.low.id))

        self.high = self.source.add_patient(make_patient())
        self.source.add("allergies", allergy(self.high.id, "Latex", "anaphylaxis"))
        self.source.add("history", history(self.high.id, "Asthma"))  # 30 + 20 + 10 + 10 = 70

        self.critical = self.source.add_patient(make_patient())
        self.source.add("allergies", allergy(self.critical.id, "Latex", "anaphylaxis"))
        self.source.add("history", history(self.critical.id, "Hypertension"))
        for name in ("A", "B", "C", "D"):
            self.source.add("medications", medication(self.critical.id, name))

        hidden = self.source.add_patient(make_patient(status=EntityStatus.INACTIVE))
        self.source.add("allergies", allergy(hidden.id, "Latex", "anaphylaxis"))

    def test_default_threshold_is_high(self):
        results = asyncio.run(self.service.high_risk_patients())
        assert [r.patient_id for r in results] == [self.critical.id, self.high.id]
        assert results[0].assessment.risk_level == RiskLevel.CRITICAL

    def test_low_threshold_includes_everyone_active(self):
        results = asyncio.run(self.service.high_risk_patients(RiskLevel.LOW))
        assert {r.patient_id for r in results} == {self.low.id, self.high.id, self.critical.id}

    def test_unknown_level_rejected(self):
        with pytest.raises(InvalidArgumentError):
            asyncio.run(self.service.high_risk_patients("SEVERE"))

    def test_ids_that_are_not_uuids_are_searched(self):
        legacy = self.source.add_patient(make_patient(id="legacy-42"))
        results = asyncio.run(self.service.high_risk_patients(RiskLevel.LOW))
        assert legacy.id in {r.patient_id for r in results}

    def test_collaborators_are_not_called(self):
        users = FakeUserClient()
        service = PatientHealthService(make_engine(self.source, user_client=users), rules=make_rules(),
                                       clock=lambda: NOW)
        asyncio.run(service.high_risk_patients(RiskLevel.LOW))
        assert users.requested == []


class _ConcurrencyTrackingSource(InMemoryRecordSource):
    def __init__(self):
        super().__init__()
        self.active = 0
        self.peak = 0

    async def get_patient(self, patient_id):
        self.active += 1
        self.peak = max(self.peak, self.active)
        try:
            await asyncio.sleep(0.01)
            return await super().get_patient(patient_id)
        finally:
            self.active -= 1


class TestPatientSearches:
    def setup_method(self):
        self.source = InMemoryRecordSource()
        self.service = PatientHealthService(make_engine(self.source), rules=make_rules(), clock=lambda: NOW)

        self.allergic = self.source.add_patient(make_patient())
        self.source.add("allergies", allergy(self.allergic.id, "Penicillin G", "anaphylaxis"))
        self.source.add("contacts", contact(self.allergic.id))
        self.source.add("insurance", policy(self.allergic.id))
        self.source.add("medications", medication(self.allergic.id, "Warfarin"))
        self.source.add("medications", medication(self.allergic.id, "Metformin"))

        self.chronic = self.source.add_patient(make_patient())
        self.source.add("history", history(self.chronic.id, "Type 2 Diabetes"))
        self.source.add("contacts", contact(self.chronic.id))
        for name in ("Metformin", "Lisinopril", "Atorvastatin"):
            self.source.add("medications", medication(self.chronic.id, name))
        self.source.add("medications", medication(self.chronic.id, "Amoxicillin", end=TODAY - timedelta(days=9)))

        self.bare = self.source.add_patient(make_patient())

        hidden = self.source.add_patient(make_patient(status=EntityStatus.INACTIVE))
        self.source.add("allergies", allergy(hidden.id, "Penicillin", "anaphylaxis"))

    def _ids(self, coro):
        return [p.id for p in asyncio.run(coro)]

    def test_critical_allergies(self):
        assert self._ids(self.service.patients_with_critical_allergies()) == [self.allergic.id]

    def test_chronic_conditions(self):
        assert self._ids(self.service.patients_with_chronic_conditions()) == [self.chronic.id]

    def test_without_insurance(self):
        assert self._ids(self.service.patients_without_insurance()) == [self.chronic.id, self.bare.id]

    def test_without_emergency_contacts(self):
        assert self._ids(self.service.patients_without_emergency_contacts()) == [self.bare.id]

    def test_multiple_medications_counts_active_only(self):
        assert self._ids(self.service.patients_with_multiple_medications()) == [self.chronic.id]
        assert self._ids(self.service.patients_with_multiple_medications(2)) == [self.allergic.id, self.chronic.id]

    def test_multiple_medications_rejects_non_positive_minimum(self):
        with pytest.raises(InvalidArgumentError):
            asyncio.run(self.service.patients_with_multiple_medications(0))

    def test_by_medical_condition_is_case_insensitive_substring(self):
        assert self._ids(self.service.patients_by_medical_condition("DIABETES")) == [self.chronic.id]

    def test_by_medication(self):
        assert self._ids(self.service.patients_by_medication("metformin")) == [self.allergic.id, self.chronic.id]
        assert self._ids(self.service.patients_by_medication("Lisino")) == [self.chronic.id]

    def test_by_allergy_skips_inactive_patients(self):
        assert self._ids(self.service.patients_by_allergy("penicillin")) == [self.allergic.id]

    @pytest.mark.parametrize("term", ["", "  ", None])
    def test_blank_search_term_rejected(self, term):
        with pytest.raises(InvalidArgumentError):
            asyncio.run(self.service.patients_by_allergy(term))

    def test_results_are_store_records(self):
        results = asyncio.run(self.service.patients_without_emergency_contacts())
        assert results == [self.bare]

    def test_concurrent_loads_are_bounded(self):
        source = _ConcurrencyTrackingSource()
        for _ in range(6):
            source.add_patient(make_patient())
        service = PatientHealthService(make_engine(source), rules=make_rules(), clock=lambda: NOW,
                                       search_concurrency=2)
        assert len(asyncio.run(service.patients_without_insurance())) == 6
        assert source.peak == 2
