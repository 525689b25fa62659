"""
Clinical sub-records owned by a patient.
Each row references its patient by id only; there is no relationship graph.
"""
from sqlalchemy import Column, String, Text, Date, DateTime, ForeignKey
from .base import Base, TimestampMixin, generate_uuid


class PatientAllergy(Base, TimestampMixin):
    __tablename__ = "patient_allergies"

    id = Column(String, primary_key=True, default=generate_uuid)
    patient_id = Column(String, ForeignKey("patients.id"), nullable=False, index=True)
    allergen = Column(String(200), nullable=False)
    reaction = Column(Text, nullable=True)
    recorded_at = Column(DateTime, nullable=True)


class PatientMedication(Base, TimestampMixin):
    __tablename__ = "patient_medications"

    id = Column(String, primary_key=True, default=generate_uuid)
    patient_id = Column(String, ForeignKey("patients.id"), nullable=False, index=True)
    medication_name = Column(String(200), nullable=False)
    dosage = Column(String(100), nullable=True)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)  # open-ended when null


class PatientMedicalHistory(Base, TimestampMixin):
    __tablename__ = "patient_medical_history"

    id = Column(String, primary_key=True, default=generate_uuid)
    patient_id = Column(String, ForeignKey("patients.id"), nullable=False, index=True)
    condition = Column(String(500), nullable=False)
    notes = Column(Text, nullable=True)
    recorded_at = Column(DateTime, nullable=True)


class PatientEmergencyContact(Base, TimestampMixin):
    __tablename__ = "patient_emergency_contacts"

    id = Column(String, primary_key=True, default=generate_uuid)
    patient_id = Column(String, ForeignKey("patients.id"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    relationship = Column(String(100), nullable=True)
    phone = Column(String(30), nullable=True)


class PatientInsurance(Base, TimestampMixin):
    __tablename__ = "patient_insurance"

    id = Column(String, primary_key=True, default=generate_uuid)
    patient_id = Column(String, ForeignKey("patients.id"), nullable=False, index=True)
    provider = Column(String(200), nullable=False)
    policy_number = Column(String(100), nullable=True)
    coverage_details = Column(Text, nullable=True)


class PatientAppointment(Base, TimestampMixin):
    __tablename__ = "patient_appointments"

    id = Column(String, primary_key=True, default=generate_uuid)
    patient_id = Column(String, ForeignKey("patients.id"), nullable=False, index=True)
    appointment_id = Column(String, nullable=False)  # schedule service id


class PatientAddress(Base, TimestampMixin):
    __tablename__ = "patient_addresses"

    id = Column(String, primary_key=True, default=generate_uuid)
    patient_id = Column(String, ForeignKey("patients.id"), nullable=False, index=True)
    address_id = Column(String, nullable=False)  # address service id
