"""
Projections of a working set into the consumer-facing views:
health summary, dashboard, care plan and timeline.
"""
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import List, Optional

from .aggregation import ResolvedAddress, ResolvedAppointment, WorkingSet
from .alert_engine import SafetyAlerts
from .clinical_rules import ClinicalRules
from .records import (
    AllergyRecord,
    EmergencyContactRecord,
    InsuranceRecord,
    MedicalHistoryRecord,
    MedicationRecord,
    PatientRecord,
)

CANCELLED_STATUSES = {"CANCELLED"}


@dataclass(frozen=True)
class PatientSummary:
    patient: PatientRecord
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


@dataclass(frozen=True)
class HealthSummary:
    patient: PatientSummary
    allergies: List[AllergyRecord]
    current_medications: List[MedicationRecord]
    all_medications: List[MedicationRecord]
    emergency_contacts: List[EmergencyContactRecord]
    insurance: List[InsuranceRecord]
    medical_history: List[MedicalHistoryRecord]
    addresses: List[ResolvedAddress]
    appointments: List[ResolvedAppointment]


@dataclass(frozen=True)
class Dashboard:
    patient: PatientSummary
    profile_completeness: int
    critical_allergies: List[str]
    active_medications: List[str]
    expiring_medications: List[MedicationRecord]
    emergency_contacts: List[EmergencyContactRecord]
    recent_medical_history: List[MedicalHistoryRecord]
    has_insurance: bool
    has_emergency_contacts: bool
    has_critical_allergies: bool


@dataclass(frozen=True)
class CarePlan:
    patient: PatientSummary
    current_medications: List[MedicationRecord]
    chronic_conditions: List[str]
    critical_allergies: List[str]
    upcoming_appointments: List[ResolvedAppointment]


@dataclass(frozen=True)
class Timeline:
    patient_id: str
    days_back: int
    medical_history: List[MedicalHistoryRecord]
    medication_history: List[MedicationRecord]
    appointments: List[ResolvedAppointment]


def patient_summary(working_set: WorkingSet) -> PatientSummary:
    identity = working_set.identity
    if identity is None:
        return PatientSummary(patient=working_set.patient)
    return PatientSummary(
        patient=working_set.patient,
        name=identity.full_name,
        email=identity.email,
        phone=identity.phone_number,
    )


def build_health_summary(working_set: WorkingSet, today: Optional[date] = None) -> HealthSummary:
    today = today or date.today()
    return HealthSummary(
        patient=patient_summary(working_set),
        allergies=list(working_set.allergies),
        current_medications=[m for m in working_set.medications if m.is_active(today)],
        all_medications=list(working_set.medications),
        emergency_contacts=list(working_set.emergency_contacts),
        insurance=list(working_set.insurance),
        medical_history=list(working_set.medical_history),
        addresses=list(working_set.addresses),
        appointments=list(working_set.appointments),
    )


def profile_completeness(working_set: WorkingSet) -> int:
    """Percentage of the seven profile items that are present."""
    p = working_set.patient
    items = [
        p.date_of_birth is not None,
        bool(p.gender),
        bool(p.blood_group),
        p.height_cm is not None,
        p.weight_kg is not None,
        bool(working_set.emergency_contacts),
        bool(working_set.insurance),
    ]
    return (sum(items) * 100) // len(items)


def _recorded_key(entry: MedicalHistoryRecord) -> datetime:
    return entry.recorded_at or datetime.min


def build_dashboard(working_set: WorkingSet, alerts: SafetyAlerts, rules: ClinicalRules) -> Dashboard:
    recent = sorted(working_set.medical_history, key=_recorded_key, reverse=True)
    return Dashboard(
        patient=patient_summary(working_set),
        profile_completeness=profile_completeness(working_set),
        critical_allergies=list(alerts.critical_allergies),
        active_medications=list(alerts.active_medications),
        expiring_medications=list(alerts.expiring_medications),
        emergency_contacts=list(working_set.emergency_contacts),
        recent_medical_history=recent[: max(rules.dashboard_recent_history_count, 0)],
        has_insurance=not alerts.missing_insurance,
        has_emergency_contacts=not alerts.missing_emergency_contacts,
        has_critical_allergies=alerts.has_critical_allergies,
    )


def build_care_plan(
    working_set: WorkingSet,
    alerts: SafetyAlerts,
    rules: ClinicalRules,
    now: Optional[datetime] = None,
    today: Optional[date] = None,
) -> CarePlan:
    now = now or datetime.utcnow()
    today = today or now.date()
    upcoming = [
        a for a in working_set.appointments
        if a.detail is not None
        and a.detail.scheduled_at is not None
        and _naive(a.detail.scheduled_at) > now
        and (a.detail.status or "").upper() not in CANCELLED_STATUSES
    ]
    upcoming.sort(key=lambda a: _naive(a.detail.scheduled_at))
    return CarePlan(
        patient=patient_summary(working_set),
        current_medications=[m for m in working_set.medications if m.is_active(today)],
        chronic_conditions=list(alerts.chronic_conditions),
        critical_allergies=list(alerts.critical_allergies),
        upcoming_appointments=upcoming[: max(rules.care_plan_max_appointments, 0)],
    )


def timeline_window_start(now: datetime, days_back: int) -> datetime:
    """now - days_back, saturating at datetime.min instead of overflowing."""
    try:
        return now - timedelta(days=days_back)
    except OverflowError:
        return datetime.min


def build_timeline(working_set: WorkingSet, days_back: int, now: Optional[datetime] = None) -> Timeline:
    if days_back <= 0:
        return Timeline(
            patient_id=working_set.patient.id,
            days_back=days_back,
            medical_history=[],
            medication_history=[],
            appointments=[],
        )

    now = now or datetime.utcnow()
    start = timeline_window_start(now, days_back)

    history = [
        h for h in working_set.medical_history
        if h.recorded_at is not None and start <= _naive(h.recorded_at) <= now
    ]
    medications = [
        m for m in working_set.medications
        if (m.start_date is None or m.start_date <= now.date())
        and (m.end_date is None or m.end_date >= start.date())
    ]
    appointments = [
        a for a in working_set.appointments
        if a.detail is not None
        and a.detail.scheduled_at is not None
        and start <= _naive(a.detail.scheduled_at) <= now
    ]
    return Timeline(
        patient_id=working_set.patient.id,
        days_back=days_back,
        medical_history=history,
        medication_history=medications,
        appointments=appointments,
    )


def _naive(value: datetime) -> datetime:
    """Collaborators may send offset-aware timestamps; compare everything as naive UTC."""
    if value.tzinfo is None:
        return value
    return (value - value.utcoffset()).replace(tzinfo=None)
