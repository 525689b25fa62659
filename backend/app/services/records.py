"""
Plain record types consumed by the aggregation engine.
Storage adapters convert their rows into these before handing them over.
"""
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional


@dataclass(frozen=True)
class PatientRecord:
    id: str
    user_id: str
    status: str
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None
    blood_group: Optional[str] = None
    height_cm: Optional[int] = None
    weight_kg: Optional[float] = None
    branch_id: Optional[str] = None


@dataclass(frozen=True)
class AllergyRecord:
    id: str
    patient_id: str
    allergen: str
    reaction: Optional[str] = None
    recorded_at: Optional[datetime] = None


@dataclass(frozen=True)
class MedicationRecord:
    id: str
    patient_id: str
    medication_name: str
    dosage: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    def is_active(self, today: date) -> bool:
        """Active while the end date is absent or not before today."""
        return self.end_date is None or self.end_date >= today


@dataclass(frozen=True)
class MedicalHistoryRecord:
    id: str
    patient_id: str
    condition: str
    notes: Optional[str] = None
    recorded_at: Optional[datetime] = None


@dataclass(frozen=True)
class EmergencyContactRecord:
    id: str
    patient_id: str
    name: str
    relationship: Optional[str] = None
    phone: Optional[str] = None


@dataclass(frozen=True)
class InsuranceRecord:
    id: str
    patient_id: str
    provider: str
    policy_number: Optional[str] = None
    coverage_details: Optional[str] = None


@dataclass(frozen=True)
class AppointmentLinkRecord:
    id: str
    patient_id: str
    appointment_id: str


@dataclass(frozen=True)
class AddressLinkRecord:
    id: str
    patient_id: str
    address_id: str
