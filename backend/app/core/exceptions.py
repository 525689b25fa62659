"""
Typed failures raised by the aggregation engine and its collaborators.
The HTTP layer maps each type to an outcome in app.api.errors.
"""
from typing import Optional


class PatientServiceError(Exception):
    """Base class for every failure surfaced to callers."""


class PatientNotFoundError(PatientServiceError):
    def __init__(self, patient_id: str):
        super().__init__(f"Patient not found with id: {patient_id}")
        self.patient_id = patient_id


class IntegrationError(PatientServiceError):
    """An upstream dependency was unreachable or answered with an error."""

    def __init__(self, message: str, source: str, cause: Optional[Exception] = None):
        super().__init__(message)
        self.source = source
        self.cause = cause


class InvalidArgumentError(PatientServiceError):
    def __init__(self, message: str, argument: Optional[str] = None):
        super().__init__(message)
        self.argument = argument
