"""
Transport shapes for the health summary API and the functions that convert
service results into them. Conversion lives here, away from the engine.
"""
from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from ..services.aggregation import ResolvedAddress, ResolvedAppointment
from ..services.alert_engine import SafetyAlerts
from ..services.health_views import CarePlan, Dashboard, HealthSummary, PatientSummary, Timeline
from ..services.medication_safety import MedicationSafetyResult
from ..services.patient_health import HighRiskPatient
from ..services.records import PatientRecord
from ..services.risk_scorer import RiskAssessment


class PatientResponse(BaseModel):
    id: str
    user_id: str
    branch_id: Optional[str] = None
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None
    blood_group: Optional[str] = None
    height_cm: Optional[int] = None
    weight_kg: Optional[float] = None
    status: str
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


class AllergyResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    patient_id: str
    allergen: str
    reaction: Optional[str]
    recorded_at: Optional[datetime]


class MedicationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    patient_id: str
    medication_name: str
    dosage: Optional[str]
    start_date: Optional[date]
    end_date: Optional[date]


class MedicalHistoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    patient_id: str
    condition: str
    notes: Optional[str]
    recorded_at: Optional[datetime]


class EmergencyContactResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    patient_id: str
    name: str
    relationship: Optional[str]
    phone: Optional[str]


class InsuranceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    patient_id: str
    provider: str
    policy_number: Optional[str]
    coverage_details: Optional[str]


class AppointmentResponse(BaseModel):
    id: str
    patient_id: str
    appointment_id: str
    scheduled_at: Optional[datetime] = None
    duration_minutes: Optional[int] = None
    status: Optional[str] = None
    doctor_id: Optional[str] = None


class AddressResponse(BaseModel):
    id: str
    patient_id: str
    address_id: str
    type: Optional[str] = None
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    postal_code: Optional[str] = None


class HealthSummaryResponse(BaseModel):
    patient: PatientResponse
    allergies: List[AllergyResponse]
    current_medications: List[MedicationResponse]
    all_medications: List[MedicationResponse]
    emergency_contacts: List[EmergencyContactResponse]
    insurance: List[InsuranceResponse]
    medical_history: List[MedicalHistoryResponse]
    addresses: List[AddressResponse]
    appointments: List[AppointmentResponse]


class RiskAssessmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    patient_id: str
    risk_score: int
    risk_level: str
    has_critical_allergies: bool
    has_chronic_conditions: bool
    has_multiple_medications: bool
    missing_emergency_contacts: bool
    missing_insurance: bool


class SafetyAlertsResponse(BaseModel):
    critical_allergies: List[str]
    active_medications: List[str]
    expiring_medications: List[MedicationResponse]
    chronic_conditions: List[str]
    missing_emergency_contacts: bool
    missing_insurance: bool
    has_critical_allergies: bool
    has_expiring_medications: bool
    has_chronic_conditions: bool


class DashboardResponse(BaseModel):
    patient: PatientResponse
    profile_completeness: int
    critical_allergies: List[str]
    active_medications: List[str]
    expiring_medications: List[MedicationResponse]
    emergency_contacts: List[EmergencyContactResponse]
    recent_medical_history: List[MedicalHistoryResponse]
    has_insurance: bool
    has_emergency_contacts: bool
    has_critical_allergies: bool


class CarePlanResponse(BaseModel):
    patient: PatientResponse
    current_medications: List[MedicationResponse]
    chronic_conditions: List[str]
    critical_allergies: List[str]
    upcoming_appointments: List[AppointmentResponse]


class TimelineResponse(BaseModel):
    patient_id: str
    days_back: int
    medical_history: List[MedicalHistoryResponse]
    medication_history: List[MedicationResponse]
    appointments: List[AppointmentResponse]


class MedicationSafetyResponse(BaseModel):
    new_medication: str
    current_medications: List[str]
    allergens: List[str]
    has_conflicts: bool
    has_allergy_conflict: bool
    potential_interactions: List[str]
    already_taking: bool
    is_safe_to_add: bool


class HighRiskPatientResponse(BaseModel):
    patient_id: str
    risk_score: int
    risk_level: str


# ── Conversions ──────────────────────────────────────────────────────────────

def to_patient_response(summary: PatientSummary) -> PatientResponse:
    p = summary.patient
    return PatientResponse(
        id=p.id,
        user_id=p.user_id,
        branch_id=p.branch_id,
        date_of_birth=p.date_of_birth,
        gender=p.gender,
        blood_group=p.blood_group,
        height_cm=p.height_cm,
        weight_kg=p.weight_kg,
        status=p.status,
        name=summary.name,
        email=summary.email,
        phone=summary.phone,
    )


def to_appointment_response(appointment: ResolvedAppointment) -> AppointmentResponse:
    link, detail = appointment.link, appointment.detail
    return AppointmentResponse(
        id=link.id,
        patient_id=link.patient_id,
        appointment_id=link.appointment_id,
        scheduled_at=detail.scheduled_at if detail else None,
        duration_minutes=detail.duration_minutes if detail else None,
        status=detail.status if detail else None,
        doctor_id=detail.doctor_id if detail else None,
    )


def to_address_response(address: ResolvedAddress) -> AddressResponse:
    link, detail = address.link, address.detail
    fields = {}
    if detail is not None:
        fields = detail.model_dump(include={"type", "street", "city", "state", "country", "postal_code"})
    return AddressResponse(id=link.id, patient_id=link.patient_id, address_id=link.address_id, **fields)


def _medications(records) -> List[MedicationResponse]:
    return [MedicationResponse.model_validate(m) for m in records]


def to_health_summary_response(summary: HealthSummary) -> HealthSummaryResponse:
    return HealthSummaryResponse(
        patient=to_patient_response(summary.patient),
        allergies=[AllergyResponse.model_validate(a) for a in summary.allergies],
        current_medications=_medications(summary.current_medications),
        all_medications=_medications(summary.all_medications),
        emergency_contacts=[EmergencyContactResponse.model_validate(c) for c in summary.emergency_contacts],
        insurance=[InsuranceResponse.model_validate(i) for i in summary.insurance],
        medical_history=[MedicalHistoryResponse.model_validate(h) for h in summary.medical_history],
        addresses=[to_address_response(a) for a in summary.addresses],
        appointments=[to_appointment_response(a) for a in summary.appointments],
    )


def to_risk_assessment_response(assessment: RiskAssessment) -> RiskAssessmentResponse:
    return RiskAssessmentResponse.model_validate(assessment)


def to_safety_alerts_response(alerts: SafetyAlerts) -> SafetyAlertsResponse:
    return SafetyAlertsResponse(
        critical_allergies=alerts.critical_allergies,
        active_medications=alerts.active_medications,
        expiring_medications=_medications(alerts.expiring_medications),
        chronic_conditions=alerts.chronic_conditions,
        missing_emergency_contacts=alerts.missing_emergency_contacts,
        missing_insurance=alerts.missing_insurance,
        has_critical_allergies=alerts.has_critical_allergies,
        has_expiring_medications=alerts.has_expiring_medications,
        has_chronic_conditions=alerts.has_chronic_conditions,
    )


def to_dashboard_response(dashboard: Dashboard) -> DashboardResponse:
    return DashboardResponse(
        patient=to_patient_response(dashboard.patient),
        profile_completeness=dashboard.profile_completeness,
        critical_allergies=dashboard.critical_allergies,
        active_medications=dashboard.active_medications,
        expiring_medications=_medications(dashboard.expiring_medications),
        emergency_contacts=[EmergencyContactResponse.model_validate(c) for c in dashboard.emergency_contacts],
        recent_medical_history=[MedicalHistoryResponse.model_validate(h) for h in dashboard.recent_medical_history],
        has_insurance=dashboard.has_insurance,
        has_emergency_contacts=dashboard.has_emergency_contacts,
        has_critical_allergies=dashboard.has_critical_allergies,
    )


def to_care_plan_response(plan: CarePlan) -> CarePlanResponse:
    return CarePlanResponse(
        patient=to_patient_response(plan.patient),
        current_medications=_medications(plan.current_medications),
        chronic_conditions=plan.chronic_conditions,
        critical_allergies=plan.critical_allergies,
        upcoming_appointments=[to_appointment_response(a) for a in plan.upcoming_appointments],
    )


def to_timeline_response(timeline: Timeline) -> TimelineResponse:
    return TimelineResponse(
        patient_id=timeline.patient_id,
        days_back=timeline.days_back,
        medical_history=[MedicalHistoryResponse.model_validate(h) for h in timeline.medical_history],
        medication_history=_medications(timeline.medication_history),
        appointments=[to_appointment_response(a) for a in timeline.appointments],
    )


def to_medication_safety_response(result: MedicationSafetyResult) -> MedicationSafetyResponse:
    return MedicationSafetyResponse(
        new_medication=result.new_medication,
        current_medications=result.current_medications,
        allergens=result.allergens,
        has_conflicts=result.has_conflicts,
        has_allergy_conflict=result.has_allergy_conflict,
        potential_interactions=result.potential_interactions,
        already_taking=result.already_taking,
        is_safe_to_add=result.is_safe_to_add,
    )


def to_high_risk_response(entry: HighRiskPatient) -> HighRiskPatientResponse:
    return HighRiskPatientResponse(
        patient_id=entry.patient_id,
        risk_score=entry.assessment.risk_score,
        risk_level=entry.assessment.risk_level,
    )


def to_patient_list_response(patients: List[PatientRecord]) -> List[PatientResponse]:
    """Search results carry store data only; identity fields stay empty."""
    return [to_patient_response(PatientSummary(patient=p)) for p in patients]
