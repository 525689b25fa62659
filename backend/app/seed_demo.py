"""
Demo data seeder.

Creates one demo patient with allergies, medications, medical history, an
emergency contact, an insurance policy and an appointment link, so every
health summary endpoint returns something meaningful right after a fresh start.

The demo patient id is fixed (DEMO_PATIENT_ID) so it can be pasted into /docs.
This seeder is idempotent - it is safe to call on every startup.
"""
import logging
from datetime import date, datetime, timedelta

from .models.base import SessionLocal, Base, engine, generate_uuid
from .models.patient import Patient, EntityStatus, Gender
from .models.records import (
    PatientAllergy,
    PatientMedication,
    PatientMedicalHistory,
    PatientEmergencyContact,
    PatientInsurance,
    PatientAppointment,
)

logger = logging.getLogger(__name__)

DEMO_PATIENT_ID = "00000000-0000-4000-8000-000000000001"
DEMO_USER_ID = "00000000-0000-4000-8000-0000000000aa"
DEMO_APPOINTMENT_ID = "00000000-0000-4000-8000-0000000000bb"


def seed_demo_data() -> None:
    """Create the demo patient and its sub-records if they do not already exist."""
    # Ensure tables exist (no-op when already created by main.py)
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        if db.query(Patient).filter(Patient.id == DEMO_PATIENT_ID).first():
            return
        _seed_patient(db)
        _seed_records(db)
        db.commit()
        logger.info("Seeded demo patient %s", DEMO_PATIENT_ID)
    finally:
        db.close()


# ── helpers ──────────────────────────────────────────────────────────────────

def _seed_patient(db) -> None:
    db.add(Patient(
        id=DEMO_PATIENT_ID,
        user_id=DEMO_USER_ID,
        date_of_birth=date(1960, 6, 15),
        gender=Gender.MALE,
        blood_group="O+",
        height_cm=178,
        weight_kg=84.5,
        status=EntityStatus.ACTIVE,
    ))
    db.flush()


def _seed_records(db) -> None:
    today = date.today()
    now = datetime.utcnow()

    db.add(PatientAllergy(
        id=generate_uuid(), patient_id=DEMO_PATIENT_ID,
        allergen="Penicillin", reaction="Anaphylaxis (critical)", recorded_at=now - timedelta(days=400),
    ))
    db.add(PatientAllergy(
        id=generate_uuid(), patient_id=DEMO_PATIENT_ID,
        allergen="Latex", reaction="Mild skin rash", recorded_at=now - timedelta(days=200),
    ))

    medications = [
        ("Metformin", "500mg twice daily", today - timedelta(days=700), None),
        ("Lisinopril", "10mg daily", today - timedelta(days=365), None),
        ("Warfarin", "5mg daily", today - timedelta(days=90), today + timedelta(days=5)),
        ("Atorvastatin", "20mg nightly", today - timedelta(days=180), None),
        ("Amoxicillin", "250mg", today - timedelta(days=800), today - timedelta(days=790)),
    ]
    for name, dosage, start, end in medications:
        db.add(PatientMedication(
            id=generate_uuid(), patient_id=DEMO_PATIENT_ID,
            medication_name=name, dosage=dosage, start_date=start, end_date=end,
        ))

    db.add(PatientMedicalHistory(
        id=generate_uuid(), patient_id=DEMO_PATIENT_ID,
        condition="Type 2 Diabetes", notes="Diagnosed 2019, HbA1c 7.2%", recorded_at=now - timedelta(days=700),
    ))
    db.add(PatientMedicalHistory(
        id=generate_uuid(), patient_id=DEMO_PATIENT_ID,
        condition="Hypertension", notes="Controlled on ACE inhibitor", recorded_at=now - timedelta(days=365),
    ))
    db.add(PatientMedicalHistory(
        id=generate_uuid(), patient_id=DEMO_PATIENT_ID,
        condition="Sprained ankle", notes="Resolved", recorded_at=now - timedelta(days=30),
    ))

    db.add(PatientEmergencyContact(
        id=generate_uuid(), patient_id=DEMO_PATIENT_ID,
        name="Jane Demo", relationship="Spouse", phone="+1-555-0100",
    ))
    db.add(PatientInsurance(
        id=generate_uuid(), patient_id=DEMO_PATIENT_ID,
        provider="Demo Health Mutual", policy_number="DHM-000123", coverage_details="Full inpatient and outpatient",
    ))
    db.add(PatientAppointment(
        id=generate_uuid(), patient_id=DEMO_PATIENT_ID, appointment_id=DEMO_APPOINTMENT_ID,
    ))
