"""Cross-patient search API: active patients matching a clinical flag or record."""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from ..services.patient_health import PatientHealthService
from .health_summary import get_health_service
from .schemas import PatientResponse, to_patient_list_response

router = APIRouter(prefix="/patient-advanced-search", tags=["patient-advanced-search"])


@router.get("/critical-allergies", response_model=List[PatientResponse])
async def search_critical_allergies(service: PatientHealthService = Depends(get_health_service)):
    return to_patient_list_response(await service.patients_with_critical_allergies())


@router.get("/chronic-conditions", response_model=List[PatientResponse])
async def search_chronic_conditions(service: PatientHealthService = Depends(get_health_service)):
    return to_patient_list_response(await service.patients_with_chronic_conditions())


@router.get("/without-insurance", response_model=List[PatientResponse])
async def search_without_insurance(service: PatientHealthService = Depends(get_health_service)):
    return to_patient_list_response(await service.patients_without_insurance())


@router.get("/without-emergency-contacts", response_model=List[PatientResponse])
async def search_without_emergency_contacts(service: PatientHealthService = Depends(get_health_service)):
    return to_patient_list_response(await service.patients_without_emergency_contacts())


@router.get("/multiple-medications", response_model=List[PatientResponse])
async def search_multiple_medications(
    minimum_medications: int = Query(3),
    service: PatientHealthService = Depends(get_health_service),
):
    """Patients with at least minimum_medications active medications."""
    return to_patient_list_response(await service.patients_with_multiple_medications(minimum_medications))


@router.get("/by-medical-condition", response_model=List[PatientResponse])
async def search_by_medical_condition(
    condition: Optional[str] = None,
    service: PatientHealthService = Depends(get_health_service),
):
    return to_patient_list_response(await service.patients_by_medical_condition(condition))


@router.get("/by-medication", response_model=List[PatientResponse])
async def search_by_medication(
    medication_name: Optional[str] = None,
    service: PatientHealthService = Depends(get_health_service),
):
    return to_patient_list_response(await service.patients_by_medication(medication_name))


@router.get("/by-allergy", response_model=List[PatientResponse])
async def search_by_allergy(
    allergen: Optional[str] = None,
    service: PatientHealthService = Depends(get_health_service),
):
    return to_patient_list_response(await service.patients_by_allergy(allergen))
