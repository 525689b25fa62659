"""
Record Source: reads a patient's root record and sub-record collections.

The engine depends on the abstract RecordSource only. SqlRecordSource is the
SQLAlchemy implementation; each query runs on a worker thread with its own
session so that the engine can issue them concurrently.
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from ..models.patient import Patient, EntityStatus
from ..models.records import (
    PatientAllergy,
    PatientMedication,
    PatientMedicalHistory,
    PatientEmergencyContact,
    PatientInsurance,
    PatientAppointment,
    PatientAddress,
)
from .records import (
    PatientRecord,
    AllergyRecord,
    MedicationRecord,
    MedicalHistoryRecord,
    EmergencyContactRecord,
    InsuranceRecord,
    AppointmentLinkRecord,
    AddressLinkRecord,
)

logger = logging.getLogger(__name__)


class RecordSource(ABC):
    """Read contract for patient records. Lists come back in insertion order."""

    @abstractmethod
    async def get_patient(self, patient_id: str) -> Optional[PatientRecord]:
        ...

    @abstractmethod
    async def list_allergies(self, patient_id: str) -> List[AllergyRecord]:
        ...

    @abstractmethod
    async def list_medications(self, patient_id: str) -> List[MedicationRecord]:
        ...

    @abstractmethod
    async def list_medical_history(self, patient_id: str) -> List[MedicalHistoryRecord]:
        ...

    @abstractmethod
    async def list_emergency_contacts(self, patient_id: str) -> List[EmergencyContactRecord]:
        ...

    @abstractmethod
    async def list_insurance(self, patient_id: str) -> List[InsuranceRecord]:
        ...

    @abstractmethod
    async def list_appointment_links(self, patient_id: str) -> List[AppointmentLinkRecord]:
        ...

    @abstractmethod
    async def list_address_links(self, patient_id: str) -> List[AddressLinkRecord]:
        ...

    @abstractmethod
    async def list_patient_ids(self, include_inactive: bool = False) -> List[str]:
        ...


# ── Row → record conversions ────────────────────────────────────────────────

def patient_to_record(row: Patient) -> PatientRecord:
    return PatientRecord(
        id=row.id,
        user_id=row.user_id,
        status=row.status,
        date_of_birth=row.date_of_birth,
        gender=row.gender,
        blood_group=row.blood_group,
        height_cm=row.height_cm,
        weight_kg=row.weight_kg,
        branch_id=row.branch_id,
    )


def allergy_to_record(row: PatientAllergy) -> AllergyRecord:
    return AllergyRecord(
        id=row.id,
        patient_id=row.patient_id,
        allergen=row.allergen,
        reaction=row.reaction,
        recorded_at=row.recorded_at,
    )


def medication_to_record(row: PatientMedication) -> MedicationRecord:
    return MedicationRecord(
        id=row.id,
        patient_id=row.patient_id,
        medication_name=row.medication_name,
        dosage=row.dosage,
        start_date=row.start_date,
        end_date=row.end_date,
    )


def history_to_record(row: PatientMedicalHistory) -> MedicalHistoryRecord:
    return MedicalHistoryRecord(
        id=row.id,
        patient_id=row.patient_id,
        condition=row.condition,
        notes=row.notes,
        recorded_at=row.recorded_at,
    )


def contact_to_record(row: PatientEmergencyContact) -> EmergencyContactRecord:
    return EmergencyContactRecord(
        id=row.id,
        patient_id=row.patient_id,
        name=row.name,
        relationship=row.relationship,
        phone=row.phone,
    )


def insurance_to_record(row: PatientInsurance) -> InsuranceRecord:
    return InsuranceRecord(
        id=row.id,
        patient_id=row.patient_id,
        provider=row.provider,
        policy_number=row.policy_number,
        coverage_details=row.coverage_details,
    )


def appointment_link_to_record(row: PatientAppointment) -> AppointmentLinkRecord:
    return AppointmentLinkRecord(id=row.id, patient_id=row.patient_id, appointment_id=row.appointment_id)


def address_link_to_record(row: PatientAddress) -> AddressLinkRecord:
    return AddressLinkRecord(id=row.id, patient_id=row.patient_id, address_id=row.address_id)


class SqlRecordSource(RecordSource):
    """SQLAlchemy-backed record source."""

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    async def _run(self, query: Callable[[Session], object]):
        return await asyncio.to_thread(self._run_sync, query)

    def _run_sync(self, query: Callable[[Session], object]):
        db = self.session_factory()
        try:
            return query(db)
        finally:
            db.close()

    def _list(self, model, convert, patient_id: str):
        def query(db: Session):
            rows = (
                db.query(model)
                .filter(model.patient_id == patient_id)
                .order_by(model.created_at, model.id)
                .all()
            )
            return [convert(r) for r in rows]
        return self._run(query)

    async def get_patient(self, patient_id: str) -> Optional[PatientRecord]:
        def query(db: Session):
            row = db.query(Patient).filter(Patient.id == patient_id).first()
            return patient_to_record(row) if row else None
        return await self._run(query)

    async def list_allergies(self, patient_id: str) -> List[AllergyRecord]:
        return await self._list(PatientAllergy, allergy_to_record, patient_id)

    async def list_medications(self, patient_id: str) -> List[MedicationRecord]:
        return await self._list(PatientMedication, medication_to_record, patient_id)

    async def list_medical_history(self, patient_id: str) -> List[MedicalHistoryRecord]:
        return await self._list(PatientMedicalHistory, history_to_record, patient_id)

    async def list_emergency_contacts(self, patient_id: str) -> List[EmergencyContactRecord]:
        return await self._list(PatientEmergencyContact, contact_to_record, patient_id)

    async def list_insurance(self, patient_id: str) -> List[InsuranceRecord]:
        return await self._list(PatientInsurance, insurance_to_record, patient_id)

    async def list_appointment_links(self, patient_id: str) -> List[AppointmentLinkRecord]:
        return await self._list(PatientAppointment, appointment_link_to_record, patient_id)

    async def list_address_links(self, patient_id: str) -> List[AddressLinkRecord]:
        return await self._list(PatientAddress, address_link_to_record, patient_id)

    async def list_patient_ids(self, include_inactive: bool = False) -> List[str]:
        def query(db: Session):
            q = db.query(Patient.id)
            if not include_inactive:
                q = q.filter(Patient.status == EntityStatus.ACTIVE)
            return [pid for (pid,) in q.order_by(Patient.created_at, Patient.id).all()]
        return await self._run(query)
