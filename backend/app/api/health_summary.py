"""Health summary API: derived clinical views for one patient."""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from ..core.config import settings
from ..models.base import SessionLocal
from ..services.aggregation import AggregationEngine
from ..services.integrations import default_clients
from ..services.patient_health import PatientHealthService
from ..services.record_source import SqlRecordSource
from ..services.risk_scorer import RiskLevel
from .schemas import (
    CarePlanResponse,
    DashboardResponse,
    HealthSummaryResponse,
    HighRiskPatientResponse,
    MedicationSafetyResponse,
    RiskAssessmentResponse,
    SafetyAlertsResponse,
    TimelineResponse,
    to_care_plan_response,
    to_dashboard_response,
    to_health_summary_response,
    to_high_risk_response,
    to_medication_safety_response,
    to_risk_assessment_response,
    to_safety_alerts_response,
    to_timeline_response,
)

router = APIRouter(prefix="/patient-health-summary", tags=["patient-health-summary"])


def get_health_service() -> PatientHealthService:
    user_client, schedule_client, address_client = default_clients()
    engine = AggregationEngine(
        source=SqlRecordSource(SessionLocal),
        user_client=user_client,
        schedule_client=schedule_client,
        address_client=address_client,
    )
    return PatientHealthService(engine)


# Declared before /{patient_id} so it is not captured as a patient id
@router.get("/high-risk", response_model=List[HighRiskPatientResponse])
async def get_high_risk_patients(
    minimum_level: str = Query(RiskLevel.HIGH),
    service: PatientHealthService = Depends(get_health_service),
):
    """Active patients whose risk level is at or above minimum_level, highest score first."""
    return [to_high_risk_response(e) for e in await service.high_risk_patients(minimum_level)]


@router.get("/{patient_id}", response_model=HealthSummaryResponse)
async def get_health_summary(patient_id: str, service: PatientHealthService = Depends(get_health_service)):
    return to_health_summary_response(await service.health_summary(patient_id))


@router.get("/{patient_id}/dashboard", response_model=DashboardResponse)
async def get_dashboard(patient_id: str, service: PatientHealthService = Depends(get_health_service)):
    return to_dashboard_response(await service.dashboard(patient_id))


@router.get("/{patient_id}/safety-alerts", response_model=SafetyAlertsResponse)
async def get_safety_alerts(patient_id: str, service: PatientHealthService = Depends(get_health_service)):
    return to_safety_alerts_response(await service.safety_alerts(patient_id))


@router.get("/{patient_id}/medication-safety", response_model=MedicationSafetyResponse)
async def check_medication_safety(
    patient_id: str,
    new_medication: Optional[str] = None,
    service: PatientHealthService = Depends(get_health_service),
):
    return to_medication_safety_response(await service.medication_safety(patient_id, new_medication))


@router.get("/{patient_id}/timeline", response_model=TimelineResponse)
async def get_timeline(
    patient_id: str,
    days_back: int = settings.DEFAULT_TIMELINE_DAYS,
    service: PatientHealthService = Depends(get_health_service),
):
    return to_timeline_response(await service.timeline(patient_id, days_back))


@router.get("/{patient_id}/care-plan", response_model=CarePlanResponse)
async def get_care_plan(patient_id: str, service: PatientHealthService = Depends(get_health_service)):
    return to_care_plan_response(await service.care_plan(patient_id))


@router.get("/{patient_id}/risk-assessment", response_model=RiskAssessmentResponse)
async def get_risk_assessment(patient_id: str, service: PatientHealthService = Depends(get_health_service)):
    return to_risk_assessment_response(await service.risk_assessment(patient_id))
