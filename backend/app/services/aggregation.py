"""
Aggregation Engine.

Fetches the patient root, every sub-record collection and the collaborator data
for one patient, and joins them into a WorkingSet. Every derived view is
computed from a WorkingSet; builders never fetch anything themselves.

Failure policy:
  - missing or hidden patient root        -> PatientNotFoundError
  - root or sub-record fetch error        -> IntegrationError (whole call aborts)
  - identity / appointment / address error -> field degrades to absent, warning logged
"""
import asyncio
import logging
import uuid
from dataclasses import dataclass, field, replace
from typing import Awaitable, Callable, Dict, List, Optional, TypeVar

from ..core.config import settings
from ..core.exceptions import (
    IntegrationError,
    InvalidArgumentError,
    PatientNotFoundError,
    PatientServiceError,
)
from ..models.patient import EntityStatus
from .integrations import (
    AddressDetail,
    AddressServiceClient,
    AppointmentDetail,
    ScheduleServiceClient,
    UserIdentity,
    UserServiceClient,
)
from .record_source import RecordSource
from .records import (
    AddressLinkRecord,
    AllergyRecord,
    AppointmentLinkRecord,
    EmergencyContactRecord,
    InsuranceRecord,
    MedicalHistoryRecord,
    MedicationRecord,
    PatientRecord,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class ResolvedAppointment:
    link: AppointmentLinkRecord
    detail: Optional[AppointmentDetail] = None


@dataclass(frozen=True)
class ResolvedAddress:
    link: AddressLinkRecord
    detail: Optional[AddressDetail] = None


@dataclass
class WorkingSet:
    """Everything needed to compute any derived view for one patient."""
    patient: PatientRecord
    allergies: List[AllergyRecord] = field(default_factory=list)
    medications: List[MedicationRecord] = field(default_factory=list)
    medical_history: List[MedicalHistoryRecord] = field(default_factory=list)
    emergency_contacts: List[EmergencyContactRecord] = field(default_factory=list)
    insurance: List[InsuranceRecord] = field(default_factory=list)
    appointments: List[ResolvedAppointment] = field(default_factory=list)
    addresses: List[ResolvedAddress] = field(default_factory=list)
    identity: Optional[UserIdentity] = None


async def gather_or_cancel(*aws: Awaitable) -> list:
    """
    Run awaitables concurrently and return their results in order.
    If one fails, or the caller is cancelled, every outstanding task is cancelled.
    """
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


def validate_patient_id(patient_id) -> str:
    """Reject blank or non-UUID ids; the stripped id is returned as given, case included."""
    if patient_id is None or not str(patient_id).strip():
        raise InvalidArgumentError("Patient id must not be blank", argument="patient_id")
    patient_id = str(patient_id).strip()
    try:
        uuid.UUID(patient_id)
    except ValueError:
        raise InvalidArgumentError(f"Malformed patient id: {patient_id}", argument="patient_id") from None
    return patient_id


class AggregationEngine:
    def __init__(
        self,
        source: RecordSource,
        user_client: UserServiceClient,
        schedule_client: ScheduleServiceClient,
        address_client: AddressServiceClient,
        collaborator_timeout: Optional[float] = None,
    ):
        self.source = source
        self.user_client = user_client
        self.schedule_client = schedule_client
        self.address_client = address_client
        self.collaborator_timeout = (
            collaborator_timeout if collaborator_timeout is not None else settings.INTEGRATION_TIMEOUT
        )

    async def build_working_set(self, patient_id: str, include_inactive: bool = False) -> WorkingSet:
        patient_id = validate_patient_id(patient_id)
        records = await self._load_records(patient_id, include_inactive)
        return await self._resolve_collaborators(records)

    async def load_records(self, patient_id: str, include_inactive: bool = False) -> WorkingSet:
        """
        Working set built from the record store alone, for ids read back from the
        store itself. Collaborators are not consulted: identity is absent and
        appointment and address links stay unresolved.
        """
        return await self._load_records(patient_id, include_inactive)

    async def _load_records(self, patient_id: str, include_inactive: bool) -> WorkingSet:
        patient = await self._required("patients", lambda: self.source.get_patient(patient_id))
        if patient is None:
            raise PatientNotFoundError(patient_id)
        if patient.status != EntityStatus.ACTIVE and not include_inactive:
            logger.info("Patient %s is %s, hiding from aggregation", patient_id, patient.status)
            raise PatientNotFoundError(patient_id)

        (
            allergies,
            medications,
            history,
            contacts,
            insurance,
            appointment_links,
            address_links,
        ) = await gather_or_cancel(
            self._required("allergies", lambda: self.source.list_allergies(patient_id)),
            self._required("medications", lambda: self.source.list_medications(patient_id)),
            self._required("medical-history", lambda: self.source.list_medical_history(patient_id)),
            self._required("emergency-contacts", lambda: self.source.list_emergency_contacts(patient_id)),
            self._required("insurance", lambda: self.source.list_insurance(patient_id)),
            self._required("appointments", lambda: self.source.list_appointment_links(patient_id)),
            self._required("addresses", lambda: self.source.list_address_links(patient_id)),
        )

        return WorkingSet(
            patient=patient,
            allergies=list(allergies),
            medications=list(medications),
            medical_history=list(history),
            emergency_contacts=list(contacts),
            insurance=list(insurance),
            appointments=[ResolvedAppointment(link=link) for link in appointment_links],
            addresses=[ResolvedAddress(link=link) for link in address_links],
        )

    async def _resolve_collaborators(self, records: WorkingSet) -> WorkingSet:
        patient = records.patient
        appointment_links = [a.link for a in records.appointments]
        address_links = [a.link for a in records.addresses]

        identity, appointment_details, address_details = await gather_or_cancel(
            self._optional("user-service", patient.user_id, lambda: self.user_client.get_user(patient.user_id)),
            self._resolve_appointments(appointment_links),
            self._resolve_addresses(address_links),
        )

        return replace(
            records,
            appointments=[
                ResolvedAppointment(link=link, detail=appointment_details.get(link.appointment_id))
                for link in appointment_links
            ],
            addresses=[
                ResolvedAddress(link=link, detail=address_details.get(link.address_id))
                for link in address_links
            ],
            identity=identity,
        )

    async def list_patient_ids(self) -> List[str]:
        return await self._required("patients", self.source.list_patient_ids)

    async def _resolve_appointments(self, links: List[AppointmentLinkRecord]) -> Dict[str, AppointmentDetail]:
        ids = list(dict.fromkeys(link.appointment_id for link in links))
        results = await gather_or_cancel(*[
            self._optional("schedule-service", aid, lambda aid=aid: self.schedule_client.get_appointment(aid))
            for aid in ids
        ])
        return {aid: detail for aid, detail in zip(ids, results) if detail is not None}

    async def _resolve_addresses(self, links: List[AddressLinkRecord]) -> Dict[str, AddressDetail]:
        ids = list(dict.fromkeys(link.address_id for link in links))
        results = await gather_or_cancel(*[
            self._optional("address-service", aid, lambda aid=aid: self.address_client.get_address(aid))
            for aid in ids
        ])
        return {aid: detail for aid, detail in zip(ids, results) if detail is not None}

    async def _required(self, source_name: str, fetch: Callable[[], Awaitable[T]]) -> T:
        """Authoritative clinical data: any failure aborts the aggregation."""
        try:
            return await fetch()
        except PatientServiceError:
            logger.error("Required source %s failed", source_name)
            raise
        except Exception as exc:
            logger.error("Required source %s failed: %s", source_name, exc)
            raise IntegrationError(
                f"Failed to load {source_name}: {exc}", source=source_name, cause=exc
            ) from exc

    async def _optional(self, source_name: str, key: str, fetch: Callable[[], Awaitable[T]]) -> Optional[T]:
        """Best-effort collaborator lookup, bounded by its own timeout."""
        try:
            return await asyncio.wait_for(fetch(), timeout=self.collaborator_timeout)
        except asyncio.TimeoutError:
            logger.warning("%s lookup for %s timed out after %.1fs", source_name, key, self.collaborator_timeout)
        except Exception as exc:
            logger.warning("%s lookup for %s failed, continuing without it: %s", source_name, key, exc)
        return None
