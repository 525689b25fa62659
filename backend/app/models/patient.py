from sqlalchemy import Column, String, Date, Integer, Float
from .base import Base, TimestampMixin, generate_uuid


class EntityStatus:
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    DELETED = "DELETED"

    ALL = [ACTIVE, INACTIVE, DELETED]


class Gender:
    MALE = "MALE"
    FEMALE = "FEMALE"
    OTHER = "OTHER"


class Patient(Base, TimestampMixin):
    __tablename__ = "patients"

    id = Column(String, primary_key=True, default=generate_uuid)
    user_id = Column(String, nullable=False, index=True)  # identity lives in the user service
    branch_id = Column(String, nullable=True, index=True)
    # PHI fields - encrypted at rest in production
    date_of_birth = Column(Date, nullable=True)
    gender = Column(String(20), nullable=True)
    blood_group = Column(String(5), nullable=True)
    height_cm = Column(Integer, nullable=True)
    weight_kg = Column(Float, nullable=True)
    status = Column(String(20), nullable=False, default=EntityStatus.ACTIVE, index=True)
