"""In-memory doubles for the record source and the collaborating services."""
import asyncio
import uuid
from collections import defaultdict
from datetime import date, datetime
from typing import Dict, List, Optional

from app.core.exceptions import IntegrationError
from app.models.patient import EntityStatus
from app.services.aggregation import AggregationEngine, WorkingSet
from app.services.clinical_rules import ClinicalRules
from app.services.integrations import AddressDetail, AppointmentDetail, UserIdentity
from app.services.record_source import RecordSource
from app.services.records import (
    AddressLinkRecord,
    AllergyRecord,
    AppointmentLinkRecord,
    EmergencyContactRecord,
    InsuranceRecord,
    MedicalHistoryRecord,
    MedicationRecord,
    PatientRecord,
)

TODAY = date(2026, 3, 10)
NOW = datetime(2026, 3, 10, 12, 0, 0)


def new_id() -> str:
    return str(uuid.uuid4())


def make_rules(**overrides) -> ClinicalRules:
    params = dict(
        critical_reaction_keywords=["anaphylaxis", "critical", "life-threatening"],
        chronic_condition_keywords=["diabetes", "hypertension", "asthma", "chronic"],
        drug_interactions=[("warfarin", "aspirin"), ("simvastatin", "clarithromycin")],
        allergen_cross_reactivity={"penicillin": ["amoxicillin", "ampicillin"]},
    )
    params.update(overrides)
    return ClinicalRules.build(**params)


def make_patient(**fields) -> PatientRecord:
    values = dict(
        id=new_id(),
        user_id=new_id(),
        status=EntityStatus.ACTIVE,
        date_of_birth=date(1980, 1, 1),
        gender="FEMALE",
        blood_group="A+",
        height_cm=165,
        weight_kg=60.0,
    )
    values.update(fields)
    return PatientRecord(**values)


def allergy(patient_id: str, allergen: str, reaction: str = "rash", recorded_at=None) -> AllergyRecord:
    return AllergyRecord(id=new_id(), patient_id=patient_id, allergen=allergen, reaction=reaction,
                         recorded_at=recorded_at)


def medication(patient_id: str, name: str, start: Optional[date] = None, end: Optional[date] = None,
               dosage: str = "10mg") -> MedicationRecord:
    return MedicationRecord(id=new_id(), patient_id=patient_id, medication_name=name, dosage=dosage,
                            start_date=start, end_date=end)


def history(patient_id: str, condition: str, recorded_at: Optional[datetime] = None) -> MedicalHistoryRecord:
    return MedicalHistoryRecord(id=new_id(), patient_id=patient_id, condition=condition, notes=None,
                                recorded_at=recorded_at)


def contact(patient_id: str, name: str = "Sam Contact") -> EmergencyContactRecord:
    return EmergencyContactRecord(id=new_id(), patient_id=patient_id, name=name, relationship="Sibling",
                                  phone="+1-555-0101")


def policy(patient_id: str, provider: str = "Acme Health") -> InsuranceRecord:
    return InsuranceRecord(id=new_id(), patient_id=patient_id, provider=provider, policy_number="P-1",
                           coverage_details="Full")


def appointment_link(patient_id: str, appointment_id: Optional[str] = None) -> AppointmentLinkRecord:
    return AppointmentLinkRecord(id=new_id(), patient_id=patient_id, appointment_id=appointment_id or new_id())


def address_link(patient_id: str, address_id: Optional[str] = None) -> AddressLinkRecord:
    return AddressLinkRecord(id=new_id(), patient_id=patient_id, address_id=address_id or new_id())


def working_set(patient: Optional[PatientRecord] = None, **collections) -> WorkingSet:
    return WorkingSet(patient=patient or make_patient(), **collections)


class InMemoryRecordSource(RecordSource):
    def __init__(self):
        self.patients: Dict[str, PatientRecord] = {}
        self.collections: Dict[str, Dict[str, list]] = defaultdict(lambda: defaultdict(list))
        self.failing: Dict[str, Exception] = {}
        self.calls: List[str] = []

    def add_patient(self, patient: PatientRecord) -> PatientRecord:
        self.patients[patient.id] = patient
        return patient

    def add(self, kind: str, record) -> None:
        self.collections[kind][record.patient_id].append(record)

    async def _list(self, kind: str, patient_id: str) -> list:
        self.calls.append(kind)
        await asyncio.sleep(0)
        if kind in self.failing:
            raise self.failing[kind]
        return list(self.collections[kind][patient_id])

    async def get_patient(self, patient_id: str) -> Optional[PatientRecord]:
        self.calls.append("patient")
        if "patient" in self.failing:
            raise self.failing["patient"]
        return self.patients.get(patient_id)

    async def list_allergies(self, patient_id: str) -> List[AllergyRecord]:
        return await self._list("allergies", patient_id)

    async def list_medications(self, patient_id: str) -> List[MedicationRecord]:
        return await self._list("medications", patient_id)

    async def list_medical_history(self, patient_id: str) -> List[MedicalHistoryRecord]:
        return await self._list("history", patient_id)

    async def list_emergency_contacts(self, patient_id: str) -> List[EmergencyContactRecord]:
        return await self._list("contacts", patient_id)

    async def list_insurance(self, patient_id: str) -> List[InsuranceRecord]:
        return await self._list("insurance", patient_id)

    async def list_appointment_links(self, patient_id: str) -> List[AppointmentLinkRecord]:
        return await self._list("appointments", patient_id)

    async def list_address_links(self, patient_id: str) -> List[AddressLinkRecord]:
        return await self._list("addresses", patient_id)

    async def list_patient_ids(self, include_inactive: bool = False) -> List[str]:
        return [
            p.id for p in self.patients.values()
            if include_inactive or p.status == EntityStatus.ACTIVE
        ]


class FakeUserClient:
    def __init__(self, users: Optional[Dict[str, UserIdentity]] = None, error: Optional[Exception] = None):
        self.users = users or {}
        self.error = error
        self.requested: List[str] = []

    async def get_user(self, user_id: str) -> Optional[UserIdentity]:
        self.requested.append(user_id)
        if self.error:
            raise self.error
        return self.users.get(user_id)


class FakeScheduleClient:
    def __init__(self, appointments: Optional[Dict[str, AppointmentDetail]] = None,
                 failing_ids=(), delay: float = 0.0):
        self.appointments = appointments or {}
        self.failing_ids = set(failing_ids)
        self.delay = delay
        self.requested: List[str] = []

    async def get_appointment(self, appointment_id: str) -> Optional[AppointmentDetail]:
        self.requested.append(appointment_id)
        if self.delay:
            await asyncio.sleep(self.delay)
        if appointment_id in self.failing_ids:
            raise IntegrationError("schedule service down", source="schedule-service")
        return self.appointments.get(appointment_id)


class FakeAddressClient:
    def __init__(self, addresses: Optional[Dict[str, AddressDetail]] = None, error: Optional[Exception] = None):
        self.addresses = addresses or {}
        self.error = error

    async def get_address(self, address_id: str) -> Optional[AddressDetail]:
        if self.error:
            raise self.error
        return self.addresses.get(address_id)


def make_engine(source: RecordSource, user_client=None, schedule_client=None, address_client=None,
                timeout: float = 1.0) -> AggregationEngine:
    return AggregationEngine(
        source=source,
        user_client=user_client or FakeUserClient(),
        schedule_client=schedule_client or FakeScheduleClient(),
        address_client=address_client or FakeAddressClient(),
        collaborator_timeout=timeout,
    )
