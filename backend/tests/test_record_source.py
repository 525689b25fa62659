"""Tests for the SQLAlchemy record source against a throwaway SQLite file."""
import asyncio
from datetime import date, datetime, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.models.base import Base
from app.models.patient import Patient, EntityStatus
from app.models.records import (
    PatientAddress,
    PatientAllergy,
    PatientAppointment,
    PatientMedication,
)
from app.services.patient_health import PatientHealthService
from app.services.record_source import SqlRecordSource
from app.services.risk_scorer import RiskLevel
from support import make_engine, make_rules


@pytest.fixture()
def session_factory(tmp_path):
    # A file database so worker threads share the same data
    test_engine = create_engine(
        f"sqlite:///{tmp_path / 'records.db'}", connect_args={"check_same_thread": False}
    )
    Base.metadata.create_all(bind=test_engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=test_engine)
    test_engine.dispose()


def _add(factory, *rows):
    db = factory()
    try:
        db.add_all(rows)
        db.commit()
    finally:
        db.close()


class TestSqlRecordSource:
    def test_get_patient_converts_row(self, session_factory):
        _add(session_factory, Patient(id="p-1", user_id="u-1", blood_group="B-", weight_kg=70.5,
                                      date_of_birth=date(1990, 5, 1)))
        record = asyncio.run(SqlRecordSource(session_factory).get_patient("p-1"))
        assert record.user_id == "u-1"
        assert record.status == EntityStatus.ACTIVE
        assert record.weight_kg == 70.5
        assert record.date_of_birth == date(1990, 5, 1)

    def test_missing_patient_is_none(self, session_factory):
        assert asyncio.run(SqlRecordSource(session_factory).get_patient("nope")) is None

    def test_lists_in_insertion_order(self, session_factory):
        base = datetime(2026, 1, 1)
        _add(
            session_factory,
            Patient(id="p-1", user_id="u-1"),
            PatientMedication(id="m-b", patient_id="p-1", medication_name="Second", created_at=base + timedelta(1)),
            PatientMedication(id="m-a", patient_id="p-1", medication_name="First", created_at=base),
            PatientMedication(id="m-c", patient_id="p-2", medication_name="Other patient", created_at=base),
        )
        meds = asyncio.run(SqlRecordSource(session_factory).list_medications("p-1"))
        assert [m.medication_name for m in meds] == ["First", "Second"]

    def test_link_collections(self, session_factory):
        _add(
            session_factory,
            Patient(id="p-1", user_id="u-1"),
            PatientAppointment(patient_id="p-1", appointment_id="appt-1"),
            PatientAddress(patient_id="p-1", address_id="addr-1"),
            PatientAllergy(patient_id="p-1", allergen="Latex"),
        )
        source = SqlRecordSource(session_factory)
        assert [a.appointment_id for a in asyncio.run(source.list_appointment_links("p-1"))] == ["appt-1"]
        assert [a.address_id for a in asyncio.run(source.list_address_links("p-1"))] == ["addr-1"]
        assert [a.allergen for a in asyncio.run(source.list_allergies("p-1"))] == ["Latex"]

    def test_list_patient_ids_hides_inactive(self, session_factory):
        _add(
            session_factory,
            Patient(id="active", user_id="u-1"),
            Patient(id="gone", user_id="u-2", status=EntityStatus.DELETED),
        )
        source = SqlRecordSource(session_factory)
        assert asyncio.run(source.list_patient_ids()) == ["active"]
        assert set(asyncio.run(source.list_patient_ids(include_inactive=True))) == {"active", "gone"}


class TestDemoDataEndToEnd:
    def test_seeded_patient_risk(self, session_factory, monkeypatch):
        import app.seed_demo as sd

        monkeypatch.setattr(sd, "engine", session_factory.kw["bind"])
        monkeypatch.setattr(sd, "SessionLocal", session_factory)
        sd.seed_demo_data()

        service = PatientHealthService(make_engine(SqlRecordSource(session_factory)), rules=make_rules())
        assessment = asyncio.run(service.risk_assessment(sd.DEMO_PATIENT_ID))
        # critical allergy 30 + chronic conditions 20 + four active medications 15
        assert assessment.risk_score == 65
        assert assessment.risk_level == RiskLevel.HIGH
        assert not assessment.missing_insurance
